import pytest
from actions import (
    Action,
    ActionKind,
    FoundationDest,
    ParseError,
    TableauDest,
    TableauSource,
    WasteSource,
    parse_action,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("DD", Action.draw()),
        ("dd", Action.draw()),
        ("Q", Action.quit()),
        ("quit", Action.quit()),
        ("help", Action.help()),
        ("W", Action.quick_move(WasteSource())),
        ("w0a", Action.move(WasteSource(), FoundationDest(0))),
        ("W7", Action.move(WasteSource(), TableauDest(6))),
        ("3B", Action.quick_move(TableauSource(2, 1))),
        ("3b0d", Action.move(TableauSource(2, 1), FoundationDest(3))),
        ("1A5", Action.move(TableauSource(0, 0), TableauDest(4))),
        ("7Z1", Action.move(TableauSource(6, 25), TableauDest(0))),
        ("  4c  ", Action.quick_move(TableauSource(3, 2))),
    ],
)
def test_parse_action(text, expected):
    assert parse_action(text) == expected


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("", "quit"),
        ("   ", "quit"),
        ("X", "unrecognized"),
        ("8A", "unrecognized"),
        ("0A", "destination"),
        ("3", "row"),
        ("31", "row"),
        ("3BW", "waste"),
        ("3B0E", "unrecognized"),
        ("3B0", "unrecognized"),
        ("3B8", "unrecognized"),
        ("3B5C", "trailing"),
        ("W0AA", "trailing"),
        ("DDD", "unrecognized"),
    ],
)
def test_parse_errors(text, message):
    with pytest.raises(ParseError) as excinfo:
        parse_action(text)
    assert message in str(excinfo.value)


@pytest.mark.parametrize("text", ["DD", "Q", "HELP", "W", "W0B", "W4", "6F", "6F0C", "2A7"])
def test_notation_matches_parsed_text(text):
    action = parse_action(text)
    assert action.to_notation() == text
    assert str(action) == text


def test_action_kinds():
    assert parse_action("DD").kind == ActionKind.DRAW
    assert parse_action("5E").kind == ActionKind.QUICK_MOVE
    move = parse_action("5E2")
    assert move.kind == ActionKind.MOVE
    assert move.source == TableauSource(4, 4)
    assert move.destination == TableauDest(1)


def test_actions_are_hashable():
    seen = {parse_action("W0A"), parse_action("w0a"), parse_action("DD")}
    assert len(seen) == 2
