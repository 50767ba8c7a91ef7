import logging
import math
from dataclasses import dataclass
from typing import override

from actions import (
    Action,
    ActionKind,
    Destination,
    FoundationDest,
    Source,
    TableauDest,
    TableauSource,
    WasteSource,
)
from klondike import NUM_COLUMNS, NUM_FOUNDATIONS, Card, Facing, GameState, IllegalMoveError, Rank, StateFingerprint

logger = logging.getLogger(__name__)


class InvariantViolation(AssertionError):
    """The move generator proposed an action the game state rejects."""

    def __init__(self, action: Action, history: list[Action], error: IllegalMoveError):
        moves = " ".join(move.to_notation() for move in history) or "<none>"
        msg = f"generated move {action.to_notation()} was rejected ({error}) after: {moves}"
        super().__init__(msg)
        self.action = action
        self.history = list(history)


@dataclass(frozen=True, slots=True)
class SolverConfig:
    # Plays expanded per round in normal mode, taken from the end of the sorted fringe.
    expand: int = 200
    # Rounds without a new best score before escalating, and again before stopping.
    stalled_rounds: int = 20
    # Share of the fringe expanded per round once escalated.
    escalation_fraction: float = 0.25
    # Also offer Draw while only the waste holds cards, so the waste can be recycled.
    recycle_waste: bool = False

    def __post_init__(self) -> None:
        if self.expand < 1:
            msg = f"expand must be at least 1, got {self.expand}"
            raise ValueError(msg)
        if self.stalled_rounds < 1:
            msg = f"stalled_rounds must be at least 1, got {self.stalled_rounds}"
            raise ValueError(msg)
        if not 0.0 < self.escalation_fraction <= 1.0:
            msg = f"escalation_fraction must be in (0, 1], got {self.escalation_fraction}"
            raise ValueError(msg)


def _all_sources(gs: GameState) -> list[tuple[Source, Card]]:
    """All cards that can be moved."""
    sources: list[tuple[Source, Card]] = []
    for column in range(NUM_COLUMNS):
        for row, (card, facing) in enumerate(gs.tableau(column)):
            if facing == Facing.UP:
                sources.append((TableauSource(column, row), card))
    waste = gs.waste()
    if waste:
        sources.append((WasteSource(), waste[-1]))
    return sources


def _all_dests(gs: GameState) -> list[Destination]:
    """All cards that can be placed upon. Empty columns are left out."""
    dests: list[Destination] = []
    for column in range(NUM_COLUMNS):
        cards = gs.tableau(column)
        if cards and cards[-1][1] == Facing.UP:
            dests.append(TableauDest(column))
    for idx in range(NUM_FOUNDATIONS):
        if gs.foundation(idx) is not None:
            dests.append(FoundationDest(idx))
    return dests


def find_moves(gs: GameState) -> list[Action]:
    """Every legal move on `gs`, with the face-down flips last. Draw is left to the caller."""
    actions: list[Action] = []
    dests = _all_dests(gs)
    for source, card in _all_sources(gs):
        for dest in dests:
            if (
                isinstance(source, TableauSource)
                and isinstance(dest, FoundationDest)
                and not gs.is_bottom_of_tableau(source.column, source.row)
            ):
                continue
            if gs.can_stack(card, dest):
                actions.append(Action.move(source, dest))
        if card.rank == Rank.KING:
            for column in range(NUM_COLUMNS):
                if len(gs.tableau(column)) == 0:
                    actions.append(Action.move(source, TableauDest(column)))
        elif card.rank == Rank.ACE:
            # each suit always goes to the same foundation column
            home = FoundationDest(int(card.suit))
            if gs.can_stack(card, home):
                actions.append(Action.move(source, home))
    for column in range(NUM_COLUMNS):
        cards = gs.tableau(column)
        if cards and cards[-1][1] == Facing.DOWN:
            actions.append(Action.quick_move(TableauSource(column, len(cards) - 1)))
    return actions


class Play:
    """A search node: the moves taken so far and the state they lead to.

    `moves` may be shared with other plays that reached the same fingerprint; the
    solver rewrites a shared list in place when it finds a shorter route.
    """

    def __init__(self, state: GameState, moves: list[Action] | None = None):
        self.state = state
        self.moves = moves if moves is not None else []

    def copy(self) -> "Play":
        return Play(self.state.copy(), list(self.moves))

    @property
    def score(self) -> int:
        return self.state.score

    def apply(self, action: Action) -> None:
        try:
            self.state.apply_action(action)
        except IllegalMoveError as exc:
            raise InvariantViolation(action, self.moves, exc) from exc
        self.moves.append(action)

    def next(self, *, recycle_waste: bool = False) -> list["Play"]:
        base = self.copy()
        moves = find_moves(self.state)

        # flips go onto the base before branching
        flips = [move for move in moves if move.kind == ActionKind.QUICK_MOVE]
        for flip in flips:
            base.apply(flip)
        moves = [move for move in moves if move.kind != ActionKind.QUICK_MOVE]

        for move in moves:
            if isinstance(move.destination, FoundationDest) and base.state.foundation(move.destination.index) is None:
                # an ace onto its empty foundation is the only child
                base.apply(move)
                return [base]

        can_draw = base.state.can_draw() if recycle_waste else base.state.stock_size() > 0
        if can_draw:
            moves.append(Action.draw())

        if flips and not moves:
            return [base]

        children = []
        for move in moves:
            child = base.copy()
            child.apply(move)
            children.append(child)
        return children

    @override
    def __repr__(self) -> str:
        return f"Play(score={self.score}, moves={len(self.moves)})"


@dataclass(slots=True)
class SolverStats:
    rounds: int
    best_score: int
    best_len: int | None
    fringe: int
    dead: int
    seen: int
    stalled: int
    try_harder: bool

    @override
    def __str__(self) -> str:
        best_len = "-" if self.best_len is None else self.best_len
        return (
            f"{self.rounds}: best({self.best_score}/{best_len}) fringe({self.fringe}) "
            f"dead({self.dead}) seen({self.seen}) stalled({self.stalled})"
            + (" try_harder" if self.try_harder else "")
        )


def _best_key(play: Play) -> tuple[int, int]:
    return (-play.score, len(play.moves))


class Solver:
    def __init__(self, initial: GameState, config: SolverConfig | None = None):
        self.config = config or SolverConfig()
        root = Play(initial.copy())
        self.fringe: list[Play] = [root]
        self.dead: list[Play] = []
        self.seen: dict[StateFingerprint, list[Action]] = {initial.fingerprint(): root.moves}
        self.try_harder = False
        self.found_win = False

        self.rounds = 0
        self.stalled = 0
        self.best_score = 0
        self.best_len: int | None = None

    def solve(self, max_rounds: int | None = None) -> Play:
        """Search until the fringe empties or escalated search stalls; return the best play."""
        rounds = 0
        while self.fringe and self.stalled < self.config.stalled_rounds:
            if max_rounds is not None and rounds >= max_rounds:
                logger.info("Stopping after %d rounds", rounds)
                break
            self._track_best()
            logger.debug("%s", self.stats())
            self.iter()
            rounds += 1
            self.stalled += 1

            if self.stalled == self.config.stalled_rounds and not self.try_harder:
                logger.debug("No progress for %d rounds, escalating", self.stalled)
                self.try_harder = True
                self.stalled = 0

        self._track_best()
        logger.info("%s", self.stats())
        return self.best(include_fringe=not self.dead)

    def _track_best(self) -> None:
        for play in [*self.dead, *self.fringe]:
            score = play.score
            length = len(play.moves)
            if score > self.best_score:
                self.best_score = score
                self.best_len = length
                self.stalled = 0
                if not self.found_win:
                    self.try_harder = False
            elif score == self.best_score and (self.best_len is None or length < self.best_len):
                self.best_len = length

    def sort(self) -> None:
        """Sort the fringe by move count, then score, so the plays to expand come last."""
        self.fringe.sort(key=lambda play: (len(play.moves), play.score))

    def iter(self) -> None:
        """Expand one round of the fringe."""
        self.sort()
        size = len(self.fringe)
        if self.try_harder:
            split_idx = size - math.ceil(size * self.config.escalation_fraction)
        else:
            split_idx = max(0, size - self.config.expand)
        to_explore = self.fringe[split_idx:]
        del self.fringe[split_idx:]

        new_fringe: list[Play] = []
        for play in to_explore:
            any_novel = False
            for child in play.next(recycle_waste=self.config.recycle_waste):
                if not self.is_novel(child):
                    continue
                if child.state.is_win():
                    self.dead.append(child)
                    self.try_harder = True
                    if not self.found_win:
                        logger.info("Found a win in %d moves, score %d", len(child.moves), child.score)
                    self.found_win = True
                else:
                    new_fringe.append(child)
                    any_novel = True
            if not any_novel:
                self.dead.append(play)
        self.fringe.extend(new_fringe)
        self.rounds += 1

    def is_novel(self, play: Play) -> bool:
        """Record `play` in `seen`; plays reaching a known position share its shortest moves."""
        fingerprint = play.state.fingerprint()
        stored = self.seen.get(fingerprint)
        if stored is None:
            self.seen[fingerprint] = play.moves
            return True
        if len(stored) > len(play.moves):
            stored[:] = play.moves
        play.moves = stored
        return False

    def best(self, *, include_fringe: bool = False) -> Play:
        """The dead play with the highest score, fewest moves breaking ties."""
        candidates = [*self.dead, *self.fringe] if include_fringe else self.dead
        if not candidates:
            msg = "The solver has no finished plays"
            raise LookupError(msg)
        return min(candidates, key=_best_key)

    def stats(self) -> SolverStats:
        return SolverStats(
            rounds=self.rounds,
            best_score=self.best_score,
            best_len=self.best_len,
            fringe=len(self.fringe),
            dead=len(self.dead),
            seen=len(self.seen),
            stalled=self.stalled,
            try_harder=self.try_harder,
        )
