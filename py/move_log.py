import logging
import re
from collections.abc import Iterable
from pathlib import Path

from actions import Action, ParseError, parse_action
from klondike import GameState

logger = logging.getLogger(__name__)

_GAME_LINE = re.compile(r"^#\s*game\s+(-?\d+)\s*$", re.IGNORECASE)


def format_move_log(actions: Iterable[Action], game_number: int | None = None) -> str:
    lines = []
    if game_number is not None:
        lines.append(f"# game {game_number}")
    lines.extend(action.to_notation() for action in actions)
    return "\n".join(lines) + "\n"


def write_move_log(path: str | Path, actions: Iterable[Action], game_number: int | None = None) -> None:
    Path(path).write_text(format_move_log(actions, game_number), encoding="utf-8")


def parse_move_log(stream: Iterable[str]) -> tuple[int | None, list[Action]]:
    """Read a newline-delimited move log.

    A leading ``# game <n>`` line records the game number; later ``#`` lines and
    blank lines are skipped.
    """
    game_number = None
    actions: list[Action] = []
    for lineno, raw in enumerate(stream, start=1):
        line = raw.strip()
        if line == "":
            continue
        if line.startswith("#"):
            match = _GAME_LINE.match(line)
            if lineno == 1 and match:
                game_number = int(match.group(1))
            continue
        try:
            actions.append(parse_action(line))
        except ParseError as exc:
            msg = f"line {lineno}: {exc} ({line!r})"
            raise ParseError(msg) from exc
    return game_number, actions


def read_move_log(path: str | Path) -> tuple[int | None, list[Action]]:
    with Path(path).open(encoding="utf-8") as stream:
        return parse_move_log(stream)


def replay(actions: Iterable[Action], state: GameState) -> GameState:
    """Apply `actions` to `state` in order; an illegal move raises and stops the replay."""
    count = 0
    for action in actions:
        state.apply_action(action)
        count += 1
    logger.debug("Replayed %d moves, score %d", count, state.score)
    return state
