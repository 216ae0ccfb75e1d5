"""Game representation module."""

from .cards import Card, Hand, HandType, Rank, Suit, parse_cards, all_hand_types
from .ranges import Range, DEFAULT_RANGES
from .evaluator import EvalResult, HandCategory, HandEvaluator, get_evaluator
from .state import (
    Action, ActionType, BetSizingConfig, GameState, Position, Street, make_info_set_key
)
from .tree import GameTree, GameNode, NodeType, showdown_sign, terminal_payoff

__all__ = [
    "Card",
    "Hand",
    "HandType",
    "Rank",
    "Suit",
    "parse_cards",
    "all_hand_types",
    "Range",
    "DEFAULT_RANGES",
    "EvalResult",
    "HandCategory",
    "HandEvaluator",
    "get_evaluator",
    "Action",
    "ActionType",
    "BetSizingConfig",
    "GameState",
    "Position",
    "Street",
    "make_info_set_key",
    "GameTree",
    "GameNode",
    "NodeType",
    "showdown_sign",
    "terminal_payoff",
]
