import random
from dataclasses import dataclass
from enum import Enum
from typing import override

from actions import Action, ActionKind, Destination, FoundationDest, Source, TableauSource


class Color(str, Enum):
    RED = "RED"
    BLACK = "BLACK"


class Suit(str, Enum):
    SPADE = "SPADE"
    CLUB = "CLUB"
    HEART = "HEART"
    DIAMOND = "DIAMOND"

    @staticmethod
    def index_map():
        return {
            0: Suit.SPADE,
            1: Suit.CLUB,
            2: Suit.HEART,
            3: Suit.DIAMOND,
        }

    @property
    def color(self) -> Color:
        if self == Suit.HEART or self == Suit.DIAMOND:
            return Color.RED
        return Color.BLACK

    @override
    def __str__(self) -> str:
        return {
            Suit.SPADE: "♠",
            Suit.CLUB: "♣",
            Suit.HEART: "♥",
            Suit.DIAMOND: "♦",
        }[self]

    def __int__(self) -> int:
        for idx, sut in Suit.index_map().items():
            if sut == self:
                return idx

        msg = f"Suit {self} not found in index map"
        raise ValueError(msg)


class Rank(str, Enum):
    ACE = "A"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"

    @property
    def int_repr(self) -> int:
        return _RANK_VALUES[self]

    @staticmethod
    def from_int(value: int) -> "Rank":
        for rank, rank_value in _RANK_VALUES.items():
            if rank_value == value:
                return rank
        msg = f"Invalid rank {value}, expected 1..13"
        raise ValueError(msg)

    @override
    def __str__(self) -> str:
        return self.value

    @override
    def __repr__(self) -> str:
        return self.value

    def __int__(self) -> int:
        return self.int_repr

    # str ordering would put "10" before "2"; ranks order by value
    @override
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rank):
            return NotImplemented
        return self.int_repr < other.int_repr

    @override
    def __le__(self, other: object) -> bool:
        if not isinstance(other, Rank):
            return NotImplemented
        return self.int_repr <= other.int_repr

    @override
    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Rank):
            return NotImplemented
        return self.int_repr > other.int_repr

    @override
    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Rank):
            return NotImplemented
        return self.int_repr >= other.int_repr


_RANK_VALUES = {rank: value for value, rank in enumerate(Rank, start=1)}


@dataclass(frozen=True, slots=True)
class Card:
    suit: Suit
    rank: Rank

    @property
    def color(self) -> Color:
        return self.suit.color

    @property
    def index(self) -> int:
        """Compact 0..51 id: suit-major, rank-minor."""
        return int(self.suit) * 13 + int(self.rank) - 1

    @override
    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

    @override
    def __repr__(self) -> str:
        return f"<{self.rank}{self.suit}>"


class Facing(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


NUM_COLUMNS = 7
NUM_FOUNDATIONS = 4


def new_deck() -> list[Card]:
    return [Card(suit, rank) for rank in Rank for suit in Suit]


def shuffled_deck(game_number: int) -> list[Card]:
    deck = new_deck()
    random.Random(game_number).shuffle(deck)
    return deck


class ErrorKind(str, Enum):
    SOURCE_EMPTY = "there is no card there"
    FACE_DOWN_CARD = "that card is face down"
    NOT_BOTTOM_OF_STACK = "only the bottom card of a column can go to a foundation"
    RANK_MISMATCH = "the ranks don't line up"
    COLOR_MISMATCH = "the colors must alternate"
    SUIT_MISMATCH = "the suits must match"
    NO_SUCH_COLUMN = "there is no such column"
    NO_FOUNDATION_FITS = "no foundation column accepts that card"


class IllegalMoveError(ValueError):
    def __init__(self, kind: ErrorKind):
        super().__init__(kind.value)
        self.kind = kind


class Stock:
    """Draw pile plus waste; the end of each list is its top."""

    def __init__(self, cards: list[Card] | None = None):
        self.stock = list(cards or [])
        self.waste: list[Card] = []

    def draw_three(self) -> bool:
        """Draw up to three cards onto the waste, or recycle the waste when the stock is empty.

        Returns True when the waste was recycled.
        """
        if len(self.stock) == 0:
            self.waste.reverse()
            self.stock.extend(self.waste)
            self.waste = []
            return True
        end = max(0, len(self.stock) - 3)
        drawn = self.stock[end:]
        del self.stock[end:]
        drawn.reverse()
        self.waste.extend(drawn)
        return False

    def stock_size(self) -> int:
        return len(self.stock)

    def showing(self) -> tuple[Card, ...]:
        return tuple(self.waste[-3:])

    def inspect_top(self) -> Card | None:
        if len(self.waste) == 0:
            return None
        return self.waste[-1]

    def take(self) -> Card | None:
        if len(self.waste) == 0:
            return None
        return self.waste.pop()

    def copy(self) -> "Stock":
        other = Stock.__new__(Stock)
        other.stock = self.stock.copy()
        other.waste = self.waste.copy()
        return other

    def __len__(self) -> int:
        return len(self.stock) + len(self.waste)


type TableauEntry = tuple[Card, Facing]


@dataclass(frozen=True, slots=True)
class StateFingerprint:
    """Board snapshot used only for dedup; tableau columns and foundations are unordered."""

    stock: tuple[int, ...]
    waste: tuple[int, ...]
    foundations: tuple[int, ...]
    tableau: tuple[tuple[int, ...], ...]


def _entry_atom(card: Card, facing: Facing) -> int:
    return card.index * 2 + (1 if facing == Facing.UP else 0)


class GameState:
    def __init__(self, game_number: int, deck: list[Card]):
        if len(deck) < 28:  # noqa: PLR2004
            msg = f"A deal needs at least 28 cards, got {len(deck)}"
            raise ValueError(msg)
        cards = list(deck)
        self.game_number = game_number
        self.score = 0
        self.foundations: list[list[Card]] = [[] for _ in range(NUM_FOUNDATIONS)]
        self.tableaus: list[list[TableauEntry]] = [[] for _ in range(NUM_COLUMNS)]
        for idx, column in enumerate(self.tableaus):
            for k in range(idx + 1):
                facing = Facing.UP if k == idx else Facing.DOWN
                column.append((cards.pop(), facing))
        self.stock = Stock(cards)

    @classmethod
    def new(cls, game_number: int, deck: list[Card] | None = None) -> "GameState":
        if deck is None:
            deck = shuffled_deck(game_number)
        return cls(game_number, deck)

    def copy(self) -> "GameState":
        other = GameState.__new__(GameState)
        other.game_number = self.game_number
        other.score = self.score
        other.foundations = [foundation.copy() for foundation in self.foundations]
        other.tableaus = [column.copy() for column in self.tableaus]
        other.stock = self.stock.copy()
        return other

    def draw_three(self) -> bool:
        return self.stock.draw_three()

    def stock_size(self) -> int:
        return self.stock.stock_size()

    def waste_size(self) -> int:
        return len(self.stock.waste)

    def waste(self) -> tuple[Card, ...]:
        return self.stock.showing()

    def can_draw(self) -> bool:
        return len(self.stock) > 0

    def tableau(self, idx: int) -> tuple[TableauEntry, ...]:
        return tuple(self.tableaus[idx])

    def foundation(self, idx: int) -> Card | None:
        foundation = self.foundations[idx]
        if len(foundation) == 0:
            return None
        return foundation[-1]

    def is_bottom_of_tableau(self, column: int, row: int) -> bool:
        return row == len(self.tableaus[column]) - 1

    def is_win(self) -> bool:
        return all(
            len(foundation) > 0 and foundation[-1].rank == Rank.KING for foundation in self.foundations
        )

    def fingerprint(self) -> StateFingerprint:
        return StateFingerprint(
            stock=tuple(card.index for card in self.stock.stock),
            waste=tuple(card.index for card in self.stock.waste),
            foundations=tuple(sorted(foundation[-1].index if foundation else -1 for foundation in self.foundations)),
            tableau=tuple(
                sorted(tuple(_entry_atom(card, facing) for card, facing in column) for column in self.tableaus),
            ),
        )

    def stack_error(self, card: Card, destination: Destination) -> ErrorKind | None:
        """Why `card` can't go onto `destination`, or None when it can."""
        if isinstance(destination, FoundationDest):
            if not 0 <= destination.index < NUM_FOUNDATIONS:
                return ErrorKind.NO_SUCH_COLUMN
            foundation = self.foundations[destination.index]
            if len(foundation) == 0:
                return None if card.rank == Rank.ACE else ErrorKind.RANK_MISMATCH
            top = foundation[-1]
            if top.suit != card.suit:
                return ErrorKind.SUIT_MISMATCH
            if int(card.rank) != int(top.rank) + 1:
                return ErrorKind.RANK_MISMATCH
            return None

        if not 0 <= destination.column < NUM_COLUMNS:
            return ErrorKind.NO_SUCH_COLUMN
        column = self.tableaus[destination.column]
        if len(column) == 0:
            return None if card.rank == Rank.KING else ErrorKind.RANK_MISMATCH
        top, facing = column[-1]
        if facing == Facing.DOWN:
            return ErrorKind.FACE_DOWN_CARD
        if top.color == card.color:
            return ErrorKind.COLOR_MISMATCH
        if int(card.rank) != int(top.rank) - 1:
            return ErrorKind.RANK_MISMATCH
        return None

    def can_stack(self, card: Card, destination: Destination) -> bool:
        return self.stack_error(card, destination) is None

    def apply_action(self, action: Action) -> None:
        """Apply `action` or raise IllegalMoveError; a rejected action changes nothing."""
        if action.kind == ActionKind.DRAW:
            self.draw_three()
        elif action.kind == ActionKind.QUICK_MOVE:
            assert action.source is not None  # noqa: S101
            self._quick_move(action.source)
        elif action.kind == ActionKind.MOVE:
            assert action.source is not None  # noqa: S101
            assert action.destination is not None  # noqa: S101
            self._move(action.source, action.destination)
        # QUIT and HELP belong to the caller

    def _source_card(self, source: Source) -> Card:
        if not isinstance(source, TableauSource):
            card = self.stock.inspect_top()
            if card is None:
                raise IllegalMoveError(ErrorKind.SOURCE_EMPTY)
            return card

        if not 0 <= source.column < NUM_COLUMNS:
            raise IllegalMoveError(ErrorKind.NO_SUCH_COLUMN)
        column = self.tableaus[source.column]
        if not 0 <= source.row < len(column):
            raise IllegalMoveError(ErrorKind.SOURCE_EMPTY)
        card, facing = column[source.row]
        if facing == Facing.DOWN:
            raise IllegalMoveError(ErrorKind.FACE_DOWN_CARD)
        return card

    def _quick_move(self, source: Source) -> None:
        if isinstance(source, TableauSource) and 0 <= source.column < NUM_COLUMNS:
            column = self.tableaus[source.column]
            if 0 <= source.row < len(column) and not self.is_bottom_of_tableau(source.column, source.row):
                raise IllegalMoveError(ErrorKind.NOT_BOTTOM_OF_STACK)
            if len(column) > 0 and source.row == len(column) - 1 and column[-1][1] == Facing.DOWN:
                column[-1] = (column[-1][0], Facing.UP)
                self.score += 5
                return

        card = self._source_card(source)
        for idx in range(NUM_FOUNDATIONS):
            destination = FoundationDest(idx)
            if self.can_stack(card, destination):
                self._move(source, destination)
                return
        raise IllegalMoveError(ErrorKind.NO_FOUNDATION_FITS)

    def _move(self, source: Source, destination: Destination) -> None:
        card = self._source_card(source)
        to_foundation = isinstance(destination, FoundationDest)
        if isinstance(source, TableauSource) and to_foundation:
            if not self.is_bottom_of_tableau(source.column, source.row):
                raise IllegalMoveError(ErrorKind.NOT_BOTTOM_OF_STACK)
        error = self.stack_error(card, destination)
        if error is not None:
            raise IllegalMoveError(error)

        # validated; nothing below can fail
        if isinstance(source, TableauSource):
            column = self.tableaus[source.column]
            run = column[source.row:]
            del column[source.row:]
        else:
            taken = self.stock.take()
            assert taken is not None  # noqa: S101
            run = [(taken, Facing.UP)]

        if to_foundation:
            self.foundations[destination.index].append(card)
            self.score += 10
        else:
            self.tableaus[destination.column].extend(run)
            if not isinstance(source, TableauSource):
                self.score += 5

    @override
    def __str__(self) -> str:
        return f"GameState(game={self.game_number}, score={self.score})"
