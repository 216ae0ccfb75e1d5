"""
Lookup-table poker hand evaluator.

Maps any 5, 6 or 7 card set to a strength value where higher is better.
Values are packed category by category, so a hand in a higher category
always outranks every hand in a lower one:

    high card        1 .. 1277
    pair          1278 .. 4137
    two pair      4138 .. 4995
    trips         4996 .. 5853
    straight      5854 .. 5863
    flush         5864 .. 7140
    full house    7141 .. 7296
    quads         7297 .. 7452
    straight flush 7453 .. 7462  (7462 is the royal flush)

Three tables are built once per evaluator:
- flush table: 13-bit rank mask of a suited five -> value
- unique table: same mask for five distinct unsuited ranks (straights, high card)
- rank-count table: prime product of the five ranks -> value, for every
  hand with a repeated rank
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from itertools import combinations
from typing import Iterable, Union

from .cards import Card, NUM_RANKS


logger = logging.getLogger(__name__)


class HandCategory(IntEnum):
    """Hand-rank categories, weakest first."""
    HIGH_CARD = 0
    PAIR = 1
    TWO_PAIR = 2
    THREE_OF_A_KIND = 3
    STRAIGHT = 4
    FLUSH = 5
    FULL_HOUSE = 6
    FOUR_OF_A_KIND = 7
    STRAIGHT_FLUSH = 8

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


# Distinct 5-card hands per category
CATEGORY_SIZES = {
    HandCategory.HIGH_CARD: 1277,
    HandCategory.PAIR: 2860,
    HandCategory.TWO_PAIR: 858,
    HandCategory.THREE_OF_A_KIND: 858,
    HandCategory.STRAIGHT: 10,
    HandCategory.FLUSH: 1277,
    HandCategory.FULL_HOUSE: 156,
    HandCategory.FOUR_OF_A_KIND: 156,
    HandCategory.STRAIGHT_FLUSH: 10,
}


def _category_floors() -> dict[HandCategory, int]:
    floors = {}
    floor = 1
    for category in HandCategory:
        floors[category] = floor
        floor += CATEGORY_SIZES[category]
    return floors


CATEGORY_FLOORS = _category_floors()
ROYAL_FLUSH = CATEGORY_FLOORS[HandCategory.STRAIGHT_FLUSH] + CATEGORY_SIZES[HandCategory.STRAIGHT_FLUSH] - 1
NUM_HAND_VALUES = ROYAL_FLUSH

# One prime per rank (deuce .. ace); products identify rank multisets
RANK_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)

WHEEL_MASK = 0b1000000001111

# Straight masks, weakest (the wheel) first
STRAIGHT_MASKS = (WHEEL_MASK,) + tuple(0b11111 << low for low in range(NUM_RANKS - 4))

CardLike = Union[int, Card]


@dataclass(frozen=True, order=True)
class EvalResult:
    """Strength of a poker hand. Compare results directly; higher wins."""
    value: int

    @property
    def category(self) -> HandCategory:
        for category in reversed(HandCategory):
            if self.value >= CATEGORY_FLOORS[category]:
                return category
        return HandCategory.HIGH_CARD

    def __str__(self) -> str:
        return f"{self.category.label} ({self.value})"


class HandEvaluator:
    """
    Immutable evaluator context.

    Build one and share it (see get_evaluator); the tables are
    generated in the constructor and never change afterwards.
    """

    def __init__(self):
        self.flush_table = self._build_flush_table()
        self.unique_table = self._build_unique_table()
        self.rank_table = self._build_rank_table()
        logger.debug(
            "Built evaluator tables: %d flush, %d unique, %d rank-count entries",
            sum(1 for v in self.flush_table if v),
            sum(1 for v in self.unique_table if v),
            len(self.rank_table),
        )

    @staticmethod
    def _five_rank_masks() -> tuple[list[int], list[int]]:
        """Split all C(13, 5) rank masks into straights and non-straights, weakest first."""
        straights = list(STRAIGHT_MASKS)
        straight_set = set(straights)
        # With distinct ranks, comparing masks as integers compares kickers
        others = sorted(
            mask
            for mask in (sum(1 << r for r in combo) for combo in combinations(range(NUM_RANKS), 5))
            if mask not in straight_set
        )
        return straights, others

    def _build_flush_table(self) -> tuple[int, ...]:
        table = [0] * (1 << NUM_RANKS)
        straights, others = self._five_rank_masks()

        floor = CATEGORY_FLOORS[HandCategory.STRAIGHT_FLUSH]
        for i, mask in enumerate(straights):
            table[mask] = floor + i

        floor = CATEGORY_FLOORS[HandCategory.FLUSH]
        for i, mask in enumerate(others):
            table[mask] = floor + i

        return tuple(table)

    def _build_unique_table(self) -> tuple[int, ...]:
        table = [0] * (1 << NUM_RANKS)
        straights, others = self._five_rank_masks()

        floor = CATEGORY_FLOORS[HandCategory.STRAIGHT]
        for i, mask in enumerate(straights):
            table[mask] = floor + i

        floor = CATEGORY_FLOORS[HandCategory.HIGH_CARD]
        for i, mask in enumerate(others):
            table[mask] = floor + i

        return tuple(table)

    def _build_rank_table(self) -> dict[int, int]:
        """
        Value every hand with a repeated rank.

        Each category is enumerated as (sort key, ranks) pairs; sorting by
        the key (primary ranks, then kickers) orders the category weakest
        first.
        """
        ranks = range(NUM_RANKS)
        patterns: dict[HandCategory, list[tuple[tuple, tuple]]] = {
            HandCategory.PAIR: [],
            HandCategory.TWO_PAIR: [],
            HandCategory.THREE_OF_A_KIND: [],
            HandCategory.FULL_HOUSE: [],
            HandCategory.FOUR_OF_A_KIND: [],
        }

        for p in ranks:
            others = [r for r in ranks if r != p]
            for kickers in combinations(others, 3):
                k = tuple(sorted(kickers, reverse=True))
                patterns[HandCategory.PAIR].append(((p,) + k, (p, p) + k))
            for kickers in combinations(others, 2):
                k = tuple(sorted(kickers, reverse=True))
                patterns[HandCategory.THREE_OF_A_KIND].append(((p,) + k, (p, p, p) + k))
            for other in others:
                patterns[HandCategory.FULL_HOUSE].append(((p, other), (p, p, p, other, other)))
                patterns[HandCategory.FOUR_OF_A_KIND].append(((p, other), (p, p, p, p, other)))

        for low, high in combinations(ranks, 2):
            for kicker in ranks:
                if kicker in (low, high):
                    continue
                patterns[HandCategory.TWO_PAIR].append(((high, low, kicker), (high, high, low, low, kicker)))

        table = {}
        for category, entries in patterns.items():
            floor = CATEGORY_FLOORS[category]
            for i, (_, five) in enumerate(sorted(entries)):
                table[_prime_product(five)] = floor + i
        return table

    def evaluate5(self, c1: int, c2: int, c3: int, c4: int, c5: int) -> int:
        """Raw strength value of exactly five card values."""
        r1, r2, r3, r4, r5 = c1 % 13, c2 % 13, c3 % 13, c4 % 13, c5 % 13
        mask = (1 << r1) | (1 << r2) | (1 << r3) | (1 << r4) | (1 << r5)

        suit = c1 // 13
        if c2 // 13 == suit and c3 // 13 == suit and c4 // 13 == suit and c5 // 13 == suit:
            return self.flush_table[mask]

        if mask.bit_count() == 5:
            return self.unique_table[mask]

        primes = RANK_PRIMES
        return self.rank_table[primes[r1] * primes[r2] * primes[r3] * primes[r4] * primes[r5]]

    def evaluate(self, cards: Iterable[CardLike]) -> EvalResult:
        """
        Evaluate the best five-card hand among 5, 6 or 7 cards.

        Args:
            cards: Card objects or card values in [0, 52)

        Returns:
            EvalResult for the strongest 5-card subset
        """
        values = [int(c) for c in cards]
        if len(values) == 5:
            return EvalResult(self.evaluate5(*values))
        if len(values) not in (6, 7):
            raise ValueError(f"Can only evaluate 5-7 cards, got {len(values)}")
        return EvalResult(max(self.evaluate5(*five) for five in combinations(values, 5)))

    def compare(self, a: Iterable[CardLike], b: Iterable[CardLike]) -> int:
        """1 if a wins, -1 if b wins, 0 for a tie."""
        va = self.evaluate(a).value
        vb = self.evaluate(b).value
        return (va > vb) - (va < vb)

    @staticmethod
    def category_of(value: int) -> HandCategory:
        return EvalResult(value).category


def _prime_product(ranks: Iterable[int]) -> int:
    product = 1
    for rank in ranks:
        product *= RANK_PRIMES[rank]
    return product


@lru_cache(maxsize=None)
def get_evaluator() -> HandEvaluator:
    """Process-wide evaluator, built on first use and shared thereafter."""
    return HandEvaluator()


def evaluate(cards: Iterable[CardLike]) -> EvalResult:
    """Evaluate cards with the shared evaluator."""
    return get_evaluator().evaluate(cards)
