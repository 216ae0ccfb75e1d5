"""Strategy representation for poker solver."""

from typing import Hashable, Optional, Sequence

import numpy as np


def regret_matching(regrets: np.ndarray) -> np.ndarray:
    """
    Turn cumulative regrets into a strategy.

    Positive regrets are normalised; with no positive regret the result
    is uniform. Never returns NaN or a negative probability.
    """
    positive = np.maximum(regrets, 0.0)
    total = positive.sum()
    if total > 0 and np.isfinite(total):
        return positive / total
    return np.full(len(regrets), 1.0 / len(regrets))


class InfoSet:
    """
    Learning state for a single information set.

    An information set is identified by:
    - Player position
    - The player's hand (or its hand type)
    - Board cards and action history

    The current strategy always equals regret_matching(regret_sum)
    after update_strategy().
    """

    def __init__(self, actions: Sequence):
        if not actions:
            raise ValueError("An information set needs at least one action")
        n = len(actions)
        self.actions = list(actions)
        self.regret_sum = np.zeros(n)
        self.strategy = np.full(n, 1.0 / n)
        self.strategy_sum = np.zeros(n)
        self.visits = 0

    def __len__(self) -> int:
        return len(self.actions)

    def add_regrets(self, regrets: np.ndarray) -> None:
        """
        Update cumulative regrets.

        Args:
            regrets: Regret for each action
        """
        self.regret_sum += regrets

    def update_strategy(self) -> None:
        """Recompute the current strategy from regrets."""
        self.strategy = regret_matching(self.regret_sum)

    def accumulate_strategy(self, reach: float) -> None:
        """
        Update strategy sum for average computation.

        Args:
            reach: Probability of the owner reaching this info set
        """
        self.strategy_sum += reach * self.strategy
        self.visits += 1

    def average_strategy(self) -> np.ndarray:
        """
        Get average strategy over all iterations.

        This converges to Nash equilibrium in two-player zero-sum games.

        Returns:
            Average probability distribution
        """
        total = self.strategy_sum.sum()
        if total > 0:
            return self.strategy_sum / total
        return np.full(len(self.actions), 1.0 / len(self.actions))

    def sample_action(self, rng: np.random.Generator) -> int:
        """Sample an action index from the current strategy."""
        cumulative = np.cumsum(self.strategy)
        index = int(np.searchsorted(cumulative, rng.random() * cumulative[-1], side="right"))
        return min(index, len(self.actions) - 1)

    def discount(self, positive: float, negative: float, strategy: float) -> None:
        """Scale positive regrets, negative regrets and the strategy sum."""
        self.regret_sum = np.where(
            self.regret_sum > 0,
            self.regret_sum * positive,
            self.regret_sum * negative,
        )
        self.strategy_sum *= strategy

    def __repr__(self) -> str:
        action_strs = [
            f"{a}: {p:.2f}"
            for a, p in zip(self.actions, self.average_strategy())
        ]
        return f"InfoSet({{{', '.join(action_strs)}}}, visits={self.visits})"


class StrategyProfile:
    """
    Complete strategy profile for all information sets.

    Maps information set keys to InfoSet objects, created lazily on
    first visit.
    """

    def __init__(self):
        self.info_sets: dict[Hashable, InfoSet] = {}

    def get_or_create(self, key: Hashable, actions: Sequence) -> InfoSet:
        """
        Get or create the info set for a key.

        Args:
            key: Unique identifier for info set
            actions: Available actions at this info set

        Returns:
            InfoSet object
        """
        info_set = self.info_sets.get(key)
        if info_set is None:
            info_set = InfoSet(actions)
            self.info_sets[key] = info_set
        return info_set

    def get(self, key: Hashable) -> Optional[InfoSet]:
        return self.info_sets.get(key)

    def clear(self) -> None:
        self.info_sets.clear()

    def __len__(self) -> int:
        return len(self.info_sets)

    def __contains__(self, key) -> bool:
        return key in self.info_sets

    def average_strategies(self) -> dict[Hashable, np.ndarray]:
        """Average strategy of every info set."""
        return {key: info_set.average_strategy() for key, info_set in self.info_sets.items()}

    def discount(self, positive: float, negative: float, strategy: float) -> None:
        """Discount every info set, then re-match current strategies."""
        for info_set in self.info_sets.values():
            info_set.discount(positive, negative, strategy)
            info_set.update_strategy()
