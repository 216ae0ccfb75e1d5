"""
Kuhn poker: a three-card toy game used to check the learning machinery.

Each player antes 1 and gets one of Jack, Queen, King. Player 0 acts
first; either player may pass ("p") or bet ("b") one chip. The game has
a known equilibrium, so trained strategies can be checked exactly.
"""

import logging
from enum import IntEnum
from typing import Optional

import numpy as np

from .strategy import StrategyProfile


logger = logging.getLogger(__name__)


class KuhnCard(IntEnum):
    JACK = 0
    QUEEN = 1
    KING = 2


KUHN_ACTIONS = ("p", "b")

# Histories where a player still has to act
DECISION_HISTORIES = ("", "p", "b", "pb")
TERMINAL_HISTORIES = ("pp", "bp", "bb", "pbp", "pbb")


def is_terminal(history: str) -> bool:
    return history in TERMINAL_HISTORIES


def kuhn_payoff(history: str, cards: tuple[int, int], player: int) -> float:
    """
    Chips won by player at a terminal history.

    Args:
        history: Terminal action string
        cards: (player 0 card, player 1 card)
        player: 0 or 1
    """
    if history == "bp":
        winner, amount = 0, 1.0
    elif history == "pbp":
        winner, amount = 1, 1.0
    else:
        winner = 0 if cards[0] > cards[1] else 1
        amount = 2.0 if history.endswith("bb") else 1.0
    return amount if winner == player else -amount


class KuhnTrainer:
    """External-sampling MCCFR for Kuhn poker."""

    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.profile = StrategyProfile()
        self.iterations = 0

    def train(self, iterations: int) -> StrategyProfile:
        """
        Run training iterations.

        Each iteration deals two cards and traverses once per player.
        """
        for _ in range(iterations):
            deal = self.rng.permutation(len(KuhnCard))[:2]
            cards = (int(deal[0]), int(deal[1]))
            for traverser in (0, 1):
                self._traverse(cards, "", traverser)
            self.iterations += 1

        logger.debug("Kuhn training at %d iterations", self.iterations)
        return self.profile

    def _traverse(self, cards: tuple[int, int], history: str, traverser: int) -> float:
        if is_terminal(history):
            return kuhn_payoff(history, cards, traverser)

        player = len(history) % 2
        info_set = self.profile.get_or_create((cards[player], history), KUHN_ACTIONS)

        if player == traverser:
            values = np.array([
                self._traverse(cards, history + action, traverser)
                for action in KUHN_ACTIONS
            ])
            node_value = float(np.dot(info_set.strategy, values))
            info_set.add_regrets(values - node_value)
            info_set.update_strategy()
            return node_value

        # Opponent nodes carry the average: accumulate, then sample
        info_set.accumulate_strategy(1.0)
        action = KUHN_ACTIONS[info_set.sample_action(self.rng)]
        return self._traverse(cards, history + action, traverser)

    def average_strategy(self, card: KuhnCard, history: str) -> np.ndarray:
        """[pass, bet] probabilities; uniform if never visited."""
        info_set = self.profile.get((int(card), history))
        if info_set is None:
            return np.full(len(KUHN_ACTIONS), 1.0 / len(KUHN_ACTIONS))
        return info_set.average_strategy()

    def exploitability(self) -> float:
        """
        Mean best-response gain against the average strategy.

        Zero exactly at a Nash equilibrium.
        """
        return (self._best_response_value(0) + self._best_response_value(1)) / 2.0

    def _best_response_value(self, player: int) -> float:
        total = 0.0
        for card in KuhnCard:
            opponents = {int(c): 1.0 / (len(KuhnCard) - 1) for c in KuhnCard if c != card}
            total += self._best_response(player, int(card), "", opponents)
        return total / len(KuhnCard)

    def _best_response(self, player: int, card: int, history: str, opponents: dict[int, float]) -> float:
        """
        Best-response value summed over opponent cards.

        Args:
            opponents: Opponent card -> probability of that card reaching history
        """
        if is_terminal(history):
            total = 0.0
            for opp_card, weight in opponents.items():
                cards = (card, opp_card) if player == 0 else (opp_card, card)
                total += weight * kuhn_payoff(history, cards, player)
            return total

        if len(history) % 2 == player:
            return max(
                self._best_response(player, card, history + action, opponents)
                for action in KUHN_ACTIONS
            )

        total = 0.0
        for i, action in enumerate(KUHN_ACTIONS):
            reached = {
                opp_card: weight * self.average_strategy(KuhnCard(opp_card), history)[i]
                for opp_card, weight in opponents.items()
            }
            total += self._best_response(player, card, history + action, reached)
        return total
