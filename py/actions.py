from dataclasses import dataclass
from enum import Enum
from typing import override

COLUMN_DIGITS = "1234567"
FOUNDATION_LETTERS = "ABCD"
ROW_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

HELP_TEXT = """\
Moves are written as a source followed by an optional destination.
  W         the waste pile (source only)
  3B        column 3, row B (source); rows count from A at the top
  0A..0D    a foundation column (destination only)
  5         column 5 (destination only)
  DD        draw three cards, or recycle the waste when the stock is empty
  Q, QUIT   quit
  HELP      show this text
A source alone flips a face-down card or sends the card to a foundation.
Examples: W0A  3B5  7G  DD"""


class ParseError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class WasteSource:
    @override
    def __str__(self) -> str:
        return "W"


@dataclass(frozen=True, slots=True)
class TableauSource:
    column: int
    row: int

    @override
    def __str__(self) -> str:
        return f"{self.column + 1}{ROW_LETTERS[self.row]}"


@dataclass(frozen=True, slots=True)
class FoundationDest:
    index: int

    @override
    def __str__(self) -> str:
        return f"0{FOUNDATION_LETTERS[self.index]}"


@dataclass(frozen=True, slots=True)
class TableauDest:
    column: int

    @override
    def __str__(self) -> str:
        return f"{self.column + 1}"


type Source = WasteSource | TableauSource
type Destination = FoundationDest | TableauDest


class ActionKind(str, Enum):
    QUIT = "QUIT"
    HELP = "HELP"
    DRAW = "DRAW"
    MOVE = "MOVE"
    QUICK_MOVE = "QUICK_MOVE"


@dataclass(frozen=True, slots=True)
class Action:
    kind: ActionKind
    source: Source | None = None
    destination: Destination | None = None

    @staticmethod
    def quit() -> "Action":
        return Action(ActionKind.QUIT)

    @staticmethod
    def help() -> "Action":
        return Action(ActionKind.HELP)

    @staticmethod
    def draw() -> "Action":
        return Action(ActionKind.DRAW)

    @staticmethod
    def move(source: Source, destination: Destination) -> "Action":
        return Action(ActionKind.MOVE, source, destination)

    @staticmethod
    def quick_move(source: Source) -> "Action":
        return Action(ActionKind.QUICK_MOVE, source)

    def to_notation(self) -> str:
        if self.kind == ActionKind.QUIT:
            return "Q"
        if self.kind == ActionKind.HELP:
            return "HELP"
        if self.kind == ActionKind.DRAW:
            return "DD"
        if self.kind == ActionKind.QUICK_MOVE:
            return str(self.source)
        return f"{self.source}{self.destination}"

    @override
    def __str__(self) -> str:
        return self.to_notation()


def _parse_letter(text: str, pos: int, letters: str) -> int | None:
    if pos >= len(text):
        return None
    idx = letters.find(text[pos])
    return idx if idx >= 0 else None


def _parse_source(text: str) -> tuple[Source, int]:
    head = text[0]
    if head == "W":
        return WasteSource(), 1
    if head == "0":
        msg = "a foundation can only be a destination"
        raise ParseError(msg)
    if head in COLUMN_DIGITS:
        row = _parse_letter(text, 1, ROW_LETTERS)
        if row is None:
            msg = "a source column needs a row letter, e.g. 3B"
            raise ParseError(msg)
        return TableauSource(COLUMN_DIGITS.index(head), row), 2
    msg = "unrecognized input"
    raise ParseError(msg)


def _parse_destination(text: str, pos: int) -> tuple[Destination, int]:
    head = text[pos]
    if head == "W":
        msg = "can't move a card to the waste pile"
        raise ParseError(msg)
    if head == "0":
        index = _parse_letter(text, pos + 1, FOUNDATION_LETTERS)
        if index is None:
            msg = "unrecognized input"
            raise ParseError(msg)
        return FoundationDest(index), pos + 2
    if head in COLUMN_DIGITS:
        return TableauDest(COLUMN_DIGITS.index(head)), pos + 1
    msg = "unrecognized input"
    raise ParseError(msg)


def parse_action(text: str) -> Action:
    """Parse one move token such as ``W0A``, ``3B5``, ``7G`` or ``DD``."""
    text = text.strip().upper()
    if text == "":
        msg = "enter 'quit' to exit"
        raise ParseError(msg)
    if text in ("Q", "QUIT"):
        return Action.quit()
    if text == "HELP":
        return Action.help()
    if text == "DD":
        return Action.draw()

    source, pos = _parse_source(text)
    if pos == len(text):
        return Action.quick_move(source)

    destination, pos = _parse_destination(text, pos)
    if pos != len(text):
        msg = f"unexpected trailing input {text[pos:]!r}"
        raise ParseError(msg)
    return Action.move(source, destination)
