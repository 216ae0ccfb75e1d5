"""Weighted hand ranges and range-notation parsing."""

import logging
import math
from typing import Iterable, Optional, Union

import numpy as np

from .cards import Card, Hand, HandType, NUM_RANKS, Rank, STR_RANK


logger = logging.getLogger(__name__)


# Preset ranges for common single-raised-pot spots
DEFAULT_RANGES = {
    "utg_open": "77+, ATs+, KQs, AJo+, KQo",
    "utg_open_wide": "66+, A9s+, KTs+, QTs+, JTs, T9s, ATo+, KJo+",
    "btn_call_vs_utg": "66-TT, ATs-AQs, KQs, KJs, QJs, JTs, T9s, 98s, 87s, 76s, AQo",
    "btn_3bet_vs_utg": "QQ+, AKs, AKo",
}


class Range:
    """
    A weighted poker range.

    Maps HandType to a weight in [0, 100] (percent of combos played).
    Zero-weight entries are never stored.

    Supported notation (comma separated, whitespace ignored):
        "AA"            - single hand type
        "AK"            - both AKs and AKo
        "77+"           - pairs from 77 up
        "ATs+"          - ATs through AKs
        "22-AA"         - pairs between two endpoints
        "AKs-ATs"       - suited hands sharing a high card
        "AQo-AJo"       - offsuit hands sharing a high card
        "AJo@50"        - any token at 50% weight
    """

    def __init__(self, weights: Optional[dict[HandType, float]] = None):
        self._weights: dict[HandType, float] = {}
        self.rejected: list[str] = []
        for hand_type, weight in (weights or {}).items():
            self.set_weight(hand_type, weight)

    @classmethod
    def from_string(cls, text: str) -> "Range":
        """
        Parse a range string.

        Never raises: unresolvable tokens are skipped and listed in
        `rejected`.
        """
        hand_range = cls()
        hand_range.add_range(text)
        return hand_range

    def add_range(self, text: str, weight: float = 100.0) -> None:
        """Add every token in text, each at its own @weight or at weight."""
        cleaned = "".join(text.split())
        for token in cleaned.split(","):
            if not token:
                continue

            types, token_weight = _parse_token(token, weight)
            if types is None:
                logger.debug("Dropping unresolvable range token %r", token)
                self.rejected.append(token)
                continue

            for hand_type in types:
                self.set_weight(hand_type, token_weight)

    def add_hand_type(self, hand_type: Union[HandType, str], weight: float = 100.0) -> None:
        if isinstance(hand_type, str):
            parsed = HandType.from_string(hand_type)
            if parsed is None:
                self.rejected.append(hand_type)
                return
            hand_type = parsed
        self.set_weight(hand_type, weight)

    def set_weight(self, hand_type: HandType, weight: float) -> None:
        """
        Set weight for a hand type, clamped to [0, 100]. Zero removes it.

        A weight that is not a finite number is recorded in rejected and
        leaves the range unchanged.
        """
        weight = float(weight)
        if not math.isfinite(weight):
            self.rejected.append(f"{hand_type.name}@{weight}")
            return
        weight = min(max(weight, 0.0), 100.0)
        if weight <= 0.0:
            self._weights.pop(hand_type, None)
        else:
            self._weights[hand_type] = weight

    def remove_hand_type(self, hand_type: HandType) -> None:
        self._weights.pop(hand_type, None)

    def clear(self) -> None:
        self._weights.clear()
        self.rejected.clear()

    def get_weight(self, item: Union[HandType, Hand]) -> float:
        if isinstance(item, Hand):
            item = item.hand_type
        return self._weights.get(item, 0.0)

    def contains(self, item: Union[HandType, Hand]) -> bool:
        return self.get_weight(item) > 0.0

    def get_hand_types(self) -> dict[HandType, float]:
        """Hand types in range, strongest grid position first."""
        return dict(sorted(self._weights.items(), key=lambda kv: kv[0].index))

    def get_weighted_hands(self) -> list[tuple[Hand, float]]:
        """Expand every hand type to its concrete hands."""
        return self.get_available_hands(())

    def get_available_hands(self, dead_cards: Iterable[Card]) -> list[tuple[Hand, float]]:
        """
        Concrete hands with weights, skipping any that touch a dead card.

        Args:
            dead_cards: Board cards and, when sampling, the opponent's hand

        Returns:
            List of (hand, weight) pairs
        """
        dead_mask = 0
        for card in dead_cards:
            dead_mask |= 1 << card.value

        result = []
        for hand_type, weight in self.get_hand_types().items():
            for hand in hand_type.hands():
                if not hand.mask & dead_mask:
                    result.append((hand, weight))
        return result

    def total_combos(self) -> float:
        """Number of combos in range, scaled by weight."""
        return sum(t.combos * w / 100.0 for t, w in self._weights.items())

    def grid_weights(self) -> np.ndarray:
        """13x13 matrix of weights, AA at [0, 0]."""
        grid = np.zeros((NUM_RANKS, NUM_RANKS))
        for hand_type, weight in self._weights.items():
            row, col = hand_type.grid_position()
            grid[row, col] = weight
        return grid

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, item) -> bool:
        return self.contains(item)

    def __iter__(self):
        return iter(self.get_hand_types())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Range):
            return NotImplemented
        return self._weights == other._weights

    def __str__(self) -> str:
        parts = []
        for hand_type, weight in self.get_hand_types().items():
            if weight < 100.0:
                parts.append(f"{hand_type.name}@{weight:g}")
            else:
                parts.append(hand_type.name)
        return ", ".join(parts)

    def __repr__(self) -> str:
        return f"Range({str(self)!r}, combos={self.total_combos():.1f})"


def _parse_token(token: str, default_weight: float) -> tuple[Optional[list[HandType]], float]:
    """
    Resolve one range token.

    Returns:
        (hand types, weight), with hand types None if the token is bad
    """
    weight = default_weight
    if "@" in token:
        token, _, weight_text = token.partition("@")
        try:
            weight = float(weight_text)
        except ValueError:
            return None, default_weight
        if not math.isfinite(weight):
            return None, default_weight
        weight = min(max(weight, 0.0), 100.0)

    if "-" in token:
        start, _, end = token.partition("-")
        return _expand_closed(start, end), weight

    if token.endswith("+"):
        return _expand_plus(token[:-1]), weight

    return _parse_types(token), weight


def _parse_types(text: str) -> Optional[list[HandType]]:
    """Parse 'AKs', 'QQ' or the suffix-less 'AK' (both suited and offsuit)."""
    if len(text) == 2 and text[0].upper() != text[1].upper():
        r1 = STR_RANK.get(text[0].upper())
        r2 = STR_RANK.get(text[1].upper())
        if r1 is None or r2 is None:
            return None
        return [HandType(r1, r2, suited=True), HandType(r1, r2, suited=False)]

    hand_type = HandType.from_string(text)
    if hand_type is None:
        return None
    return [hand_type]


def _expand_plus(base: str) -> Optional[list[HandType]]:
    types = _parse_types(base)
    if types is None:
        return None

    expanded = []
    for hand_type in types:
        if hand_type.is_pair:
            expanded.extend(HandType(r, r) for r in range(hand_type.high, Rank.ACE + 1))
        else:
            expanded.extend(
                HandType(hand_type.high, r, hand_type.suited)
                for r in range(hand_type.low, hand_type.high)
            )
    return expanded


def _expand_closed(start: str, end: str) -> Optional[list[HandType]]:
    start_type = HandType.from_string(start)
    end_type = HandType.from_string(end)
    if start_type is None or end_type is None:
        return None

    if start_type.is_pair and end_type.is_pair:
        low, high = sorted((start_type.high, end_type.high))
        return [HandType(r, r) for r in range(low, high + 1)]

    if start_type.is_pair or end_type.is_pair:
        return None
    if start_type.suited != end_type.suited or start_type.high != end_type.high:
        return None

    low, high = sorted((start_type.low, end_type.low))
    return [HandType(start_type.high, r, start_type.suited) for r in range(low, high + 1)]
