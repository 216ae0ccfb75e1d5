"""Card, hand and hand-type representation utilities."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional

from treys import Card as TreysCard


NUM_RANKS = 13
NUM_SUITS = 4
NUM_CARDS = 52


class Rank(IntEnum):
    """Card ranks (0-12 where 12 is Ace)."""
    TWO = 0
    THREE = 1
    FOUR = 2
    FIVE = 3
    SIX = 4
    SEVEN = 5
    EIGHT = 6
    NINE = 7
    TEN = 8
    JACK = 9
    QUEEN = 10
    KING = 11
    ACE = 12


class Suit(IntEnum):
    """Card suits."""
    CLUBS = 0
    DIAMONDS = 1
    HEARTS = 2
    SPADES = 3


# Mapping for string conversion
RANK_CHARS = "23456789TJQKA"
SUIT_CHARS = "cdhs"

RANK_STR = dict(enumerate(RANK_CHARS))
STR_RANK = {v: k for k, v in RANK_STR.items()}

SUIT_STR = dict(enumerate(SUIT_CHARS))
STR_SUIT = {v: k for k, v in SUIT_STR.items()}


@dataclass(frozen=True, order=True)
class Card:
    """
    A playing card encoded as a single integer.

    value = suit * 13 + rank, so 0 is the deuce of clubs and 51 the ace
    of spades. Any value outside [0, 52) is the invalid sentinel.
    """
    value: int

    @property
    def rank(self) -> int:
        return self.value % NUM_RANKS

    @property
    def suit(self) -> int:
        return self.value // NUM_RANKS

    @property
    def is_valid(self) -> bool:
        return 0 <= self.value < NUM_CARDS

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        if not self.is_valid:
            return "??"
        return f"{RANK_STR[self.rank]}{SUIT_STR[self.suit]}"

    def __repr__(self) -> str:
        return str(self)

    @classmethod
    def from_rank_suit(cls, rank: int, suit: int) -> "Card":
        return cls(int(suit) * NUM_RANKS + int(rank))

    @classmethod
    def from_string(cls, s: str) -> "Card":
        """Parse card from string like 'As', 'Th', '2c'."""
        if len(s) != 2:
            raise ValueError(f"Invalid card string: {s}")
        rank_char = s[0].upper()
        suit_char = s[1].lower()

        if rank_char not in STR_RANK:
            raise ValueError(f"Invalid rank: {rank_char}")
        if suit_char not in STR_SUIT:
            raise ValueError(f"Invalid suit: {suit_char}")

        return cls.from_rank_suit(STR_RANK[rank_char], STR_SUIT[suit_char])

    def to_treys(self) -> int:
        """Convert to treys library card format."""
        return TreysCard.new(str(self))


INVALID_CARD = Card(-1)


def parse_cards(text: str) -> list[Card]:
    """
    Parse a run of cards like 'AsKhTd' or 'As Kh Td'.

    Raises:
        ValueError: On malformed text or a repeated card
    """
    cleaned = "".join(text.split())
    if len(cleaned) % 2:
        raise ValueError(f"Invalid card list: {text}")

    cards = [Card.from_string(cleaned[i:i + 2]) for i in range(0, len(cleaned), 2)]
    if len(set(cards)) != len(cards):
        raise ValueError(f"Duplicate card in: {text}")
    return cards


@dataclass(frozen=True, order=True)
class Hand:
    """
    A two-card starting hand.

    Normalised so card1 has the higher rank (higher suit breaks ties),
    which makes equal hands compare and hash equal.
    """
    card1: Card
    card2: Card

    def __post_init__(self):
        c1, c2 = self.card1, self.card2
        if (c2.rank, c2.suit) > (c1.rank, c1.suit):
            object.__setattr__(self, "card1", c2)
            object.__setattr__(self, "card2", c1)

    @property
    def cards(self) -> tuple[Card, Card]:
        return (self.card1, self.card2)

    @property
    def is_valid(self) -> bool:
        return self.card1.is_valid and self.card2.is_valid and self.card1 != self.card2

    @property
    def is_pair(self) -> bool:
        """Check if hand is a pocket pair."""
        return self.card1.rank == self.card2.rank

    @property
    def is_suited(self) -> bool:
        """Check if hand is suited."""
        return self.card1.suit == self.card2.suit

    @property
    def gap_size(self) -> int:
        """Ranks skipped between the two cards (0 for connectors, -1 for pairs)."""
        return self.card1.rank - self.card2.rank - 1

    @property
    def is_connector(self) -> bool:
        return self.gap_size == 0

    @property
    def canonical(self) -> str:
        """
        Get canonical hand notation (e.g., 'AKs', 'QQ', '72o').

        This groups equivalent hands regardless of specific suits.
        """
        return self.hand_type.name

    @property
    def hand_type(self) -> "HandType":
        return HandType(self.card1.rank, self.card2.rank, self.is_suited)

    @property
    def mask(self) -> int:
        return (1 << self.card1.value) | (1 << self.card2.value)

    def contains(self, card: Card) -> bool:
        return card == self.card1 or card == self.card2

    def conflicts_with(self, cards: Iterable[Card]) -> bool:
        """Check whether the hand shares a card with cards."""
        return any(self.contains(card) for card in cards)

    def __str__(self) -> str:
        return f"{self.card1}{self.card2}"

    def __repr__(self) -> str:
        return f"Hand({self.card1}, {self.card2})"

    @classmethod
    def from_string(cls, s: str) -> "Hand":
        """Parse hand from string like 'AsKh'."""
        if len(s) != 4:
            raise ValueError(f"Invalid hand string: {s}")
        card1 = Card.from_string(s[:2])
        card2 = Card.from_string(s[2:])
        if card1 == card2:
            raise ValueError(f"Hand repeats a card: {s}")
        return cls(card1, card2)

    def to_treys(self) -> list[int]:
        """Convert to treys library format."""
        return [self.card1.to_treys(), self.card2.to_treys()]


@dataclass(frozen=True, order=True)
class HandType:
    """
    A starting-hand class such as 'AKs', 'QQ' or 'T9o'.

    Ranks are stored high first; pairs are never suited.
    """
    high: int
    low: int
    suited: bool = False

    def __post_init__(self):
        if self.low > self.high:
            high, low = self.low, self.high
            object.__setattr__(self, "high", high)
            object.__setattr__(self, "low", low)
        if self.high == self.low and self.suited:
            object.__setattr__(self, "suited", False)

    @property
    def is_pair(self) -> bool:
        return self.high == self.low

    @property
    def combos(self) -> int:
        if self.is_pair:
            return 6
        return 4 if self.suited else 12

    @property
    def name(self) -> str:
        name = f"{RANK_STR[self.high]}{RANK_STR[self.low]}"
        if self.is_pair:
            return name
        return name + ("s" if self.suited else "o")

    @property
    def index(self) -> int:
        """Stable id in [0, 169): the flattened grid position."""
        row, col = self.grid_position()
        return row * NUM_RANKS + col

    def grid_position(self) -> tuple[int, int]:
        """
        Position in the 13x13 hand matrix.

        AA is (0, 0) and 22 is (12, 12). Suited hands sit above the
        diagonal (row = high card), offsuit hands below it.
        """
        high_idx = Rank.ACE - self.high
        low_idx = Rank.ACE - self.low
        if self.is_pair or self.suited:
            return (high_idx, low_idx)
        return (low_idx, high_idx)

    def hands(self) -> list[Hand]:
        """All concrete hands of this type."""
        if self.is_pair:
            return [
                Hand(Card.from_rank_suit(self.high, s1), Card.from_rank_suit(self.low, s2))
                for s1 in range(NUM_SUITS)
                for s2 in range(s1 + 1, NUM_SUITS)
            ]
        if self.suited:
            return [
                Hand(Card.from_rank_suit(self.high, s), Card.from_rank_suit(self.low, s))
                for s in range(NUM_SUITS)
            ]
        return [
            Hand(Card.from_rank_suit(self.high, s1), Card.from_rank_suit(self.low, s2))
            for s1 in range(NUM_SUITS)
            for s2 in range(NUM_SUITS)
            if s1 != s2
        ]

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"HandType({self.name})"

    @classmethod
    def from_string(cls, s: str) -> Optional["HandType"]:
        """Parse 'AKs', 'QQ' or 'T9o'. Returns None when unparsable."""
        if len(s) not in (2, 3):
            return None
        r1 = STR_RANK.get(s[0].upper())
        r2 = STR_RANK.get(s[1].upper())
        if r1 is None or r2 is None:
            return None

        if len(s) == 2:
            if r1 != r2:
                return None
            return cls(r1, r2)

        suffix = s[2].lower()
        if r1 == r2 or suffix not in ("s", "o"):
            return None
        return cls(r1, r2, suffix == "s")


def all_hand_types() -> list[HandType]:
    """All 169 starting-hand classes in grid order (AA, AKs, AQs, ..., 22)."""
    types = []
    for row in range(NUM_RANKS):
        for col in range(NUM_RANKS):
            r1 = Rank.ACE - row
            r2 = Rank.ACE - col
            if row == col:
                types.append(HandType(r1, r2))
            elif row < col:
                types.append(HandType(r1, r2, suited=True))
            else:
                types.append(HandType(r2, r1, suited=False))
    return types
