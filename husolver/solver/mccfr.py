"""
Monte Carlo Counterfactual Regret Minimization (MCCFR) solver.

CFR is an iterative algorithm for finding Nash equilibrium strategies
in extensive-form games. This implementation uses:
- Regret matching for strategy updates
- External sampling: the traverser explores every action, the
  opponent's single action is sampled from its current strategy
- Chance sampling of both hands and the board runout, once per iteration
- Optional DCFR-style discounting of regrets and strategy sums
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from husolver.game.cards import Card, Hand, HandType, NUM_CARDS
from husolver.game.evaluator import HandEvaluator, get_evaluator
from husolver.game.ranges import Range
from husolver.game.state import Action, GameState, Position, make_info_set_key
from husolver.game.tree import showdown_sign, terminal_payoff
from .strategy import StrategyProfile


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, float], None]


@dataclass
class MCCFRConfig:
    """Configuration for MCCFR solver."""
    num_iterations: int = 10000
    use_discounting: bool = True
    discount_interval: int = 100   # Iterations between discount steps
    discount_alpha: float = 1.5    # Positive regret exponent
    discount_beta: float = 0.0     # Negative regret exponent
    discount_gamma: float = 2.0    # Strategy sum exponent
    progress_interval: int = 100   # Iterations between progress callbacks
    suit_isomorphic_keys: bool = True
    seed: Optional[int] = None

    def __post_init__(self):
        if self.num_iterations < 0:
            raise ValueError(f"num_iterations must be non-negative, got {self.num_iterations}")
        if self.discount_interval < 1:
            raise ValueError(f"discount_interval must be positive, got {self.discount_interval}")
        if self.progress_interval < 1:
            raise ValueError(f"progress_interval must be positive, got {self.progress_interval}")


@dataclass
class NodeStrategy:
    """Average strategy of one hand at one decision point."""
    hand_type: HandType
    hand: Hand
    actions: list[Action]
    probabilities: np.ndarray
    visited: bool

    def probability(self, action: Action) -> float:
        try:
            return float(self.probabilities[self.actions.index(action)])
        except ValueError:
            return 0.0

    @property
    def aggressive_frequency(self) -> float:
        """Total probability of betting, raising or going all-in."""
        return float(sum(p for a, p in zip(self.actions, self.probabilities) if a.is_aggressive))

    def __str__(self) -> str:
        parts = ", ".join(f"{a}: {p:.0%}" for a, p in zip(self.actions, self.probabilities))
        return f"{self.hand_type}: {parts}"


class MCCFRSolver:
    """
    External-sampling MCCFR solver for a heads-up postflop spot.

    Finds approximate Nash equilibrium strategies through repeated
    sampled self-play and regret minimization.

    Key concepts:
    - Regret: How much better we could have done by taking action a
    - Counterfactual value: EV at a node weighted by opponent's reach
    - Information set: What a player knows (their cards, the board and
      the action history)
    """

    def __init__(
        self,
        config: Optional[MCCFRConfig] = None,
        evaluator: Optional[HandEvaluator] = None,
    ):
        """
        Initialize MCCFR solver.

        Args:
            config: Solver configuration
            evaluator: Hand evaluator (the shared one by default)
        """
        self.config = config or MCCFRConfig()
        self.evaluator = evaluator or get_evaluator()
        self.profile = StrategyProfile()
        self.rng = np.random.default_rng(self.config.seed)

        self.root: Optional[GameState] = None
        self.ranges: dict[Position, Range] = {}
        self._hands: dict[Position, list[Hand]] = {}
        self._masks: dict[Position, np.ndarray] = {}
        self._weights: dict[Position, np.ndarray] = {}
        self._legal_deal = False

        self._iteration = 0
        self._discount_steps = 0
        self._stopped = False
        self._callback: Optional[ProgressCallback] = None

    # ------------------------------------------------------------------
    # Setup and control

    def initialize(self, state: GameState, oop_range: Range, ip_range: Range) -> None:
        """
        Set the spot to solve and clear all learned data.

        Args:
            state: Root state with the board set
            oop_range: Out-of-position player's range
            ip_range: In-position player's range
        """
        self.root = state.copy()
        self.ranges = {Position.OOP: oop_range, Position.IP: ip_range}
        self.reset()

        for position, hand_range in self.ranges.items():
            available = hand_range.get_available_hands(self.root.board)
            self._hands[position] = [hand for hand, _ in available]
            self._masks[position] = np.array([hand.mask for hand, _ in available], dtype=np.int64)
            self._weights[position] = np.array([weight for _, weight in available], dtype=float)
            if not available:
                logger.warning("%s range has no combos left on this board", position.name)
        self._legal_deal = self._any_legal_deal()

        logger.debug(
            "Initialized solver on [%s]: %d OOP combos, %d IP combos",
            " ".join(str(c) for c in self.root.board),
            len(self._hands[Position.OOP]),
            len(self._hands[Position.IP]),
        )

    def _any_legal_deal(self) -> bool:
        """Whether some weighted OOP hand and IP hand can be dealt together."""
        oop = self._masks[Position.OOP][self._weights[Position.OOP] > 0]
        ip = self._masks[Position.IP][self._weights[Position.IP] > 0]
        if not len(oop) or not len(ip):
            return False
        return bool(((oop[:, None] & ip[None, :]) == 0).any())

    def reset(self) -> None:
        """Forget all learned data; the spot and ranges are kept."""
        self.profile.clear()
        self.rng = np.random.default_rng(self.config.seed)
        self._iteration = 0
        self._discount_steps = 0
        self._stopped = False

    def stop(self) -> None:
        """Ask a running solve() to finish after the current iteration."""
        self._stopped = True

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def current_iteration(self) -> int:
        return self._iteration

    @property
    def num_info_sets(self) -> int:
        return len(self.profile)

    @property
    def progress_callback(self) -> Optional[ProgressCallback]:
        return self._callback

    def set_progress_callback(self, callback: Optional[ProgressCallback]) -> None:
        """
        Register callback(iteration, total, exploitability) for solve().
        """
        self._callback = callback

    # ------------------------------------------------------------------
    # Solving

    def solve(self, num_iterations: Optional[int] = None) -> StrategyProfile:
        """
        Run MCCFR iterations.

        Args:
            num_iterations: Iterations to run (config.num_iterations by default)

        Returns:
            The learned strategy profile
        """
        total = self.config.num_iterations if num_iterations is None else num_iterations
        logger.info("Starting MCCFR: %d iterations", total)
        start = time.perf_counter()

        done = 0
        blocked = 0
        if not self._legal_deal:
            logger.warning("No legal deal for these ranges; nothing to solve")

        # A blocked deal still uses up one of the requested iterations
        while self._legal_deal and done < total:
            if self._stopped:
                logger.info("MCCFR stopped after %d iterations", done)
                break
            if not self.run_iteration():
                blocked += 1
            done += 1
            if self._callback and done % self.config.progress_interval == 0 and done < total:
                self._callback(done, total, self.get_exploitability())

        if self._callback:
            self._callback(done, total, self.get_exploitability())

        if blocked:
            logger.debug("%d of %d sampled deals were blocked by card removal", blocked, done)
        logger.info(
            "MCCFR finished %d iterations in %.1fs (%d info sets)",
            done - blocked, time.perf_counter() - start, len(self.profile),
        )
        return self.profile

    def run_iteration(self) -> bool:
        """
        Run one iteration: one sampled deal, traversed once per player.

        Returns:
            False if no deal was possible (nothing changes)
        """
        if self.root is None:
            return False

        board_mask = 0
        for card in self.root.board:
            board_mask |= 1 << card.value

        oop_hand = self._sample_hand(Position.OOP, board_mask)
        if oop_hand is None:
            return False
        ip_hand = self._sample_hand(Position.IP, board_mask | oop_hand.mask)
        if ip_hand is None:
            return False

        hands = {Position.OOP: oop_hand, Position.IP: ip_hand}
        runout = self._sample_runout(board_mask | oop_hand.mask | ip_hand.mask)
        sign = showdown_sign(oop_hand, ip_hand, list(self.root.board) + runout, self.evaluator)

        for traverser in (Position.OOP, Position.IP):
            self._traverse(self.root, hands, runout, sign, traverser, 1.0, 1.0)

        self._iteration += 1
        if self.config.use_discounting and self._iteration % self.config.discount_interval == 0:
            self._apply_discounting()
        return True

    def _sample_hand(self, position: Position, dead_mask: int) -> Optional[Hand]:
        """Sample a hand from a range by weight, avoiding dead cards."""
        masks = self._masks.get(position)
        if masks is None or not len(masks):
            return None
        weights = np.where((masks & dead_mask) == 0, self._weights[position], 0.0)
        total = weights.sum()
        if total <= 0:
            return None
        index = self.rng.choice(len(weights), p=weights / total)
        return self._hands[position][index]

    def _sample_runout(self, dead_mask: int) -> list[Card]:
        """Sample the remaining board cards."""
        needed = 5 - len(self.root.board)
        if needed <= 0:
            return []
        deck = [value for value in range(NUM_CARDS) if not dead_mask & (1 << value)]
        return [Card(int(v)) for v in self.rng.choice(deck, size=needed, replace=False)]

    def _traverse(
        self,
        state: GameState,
        hands: dict[Position, Hand],
        runout: list[Card],
        sign: int,
        traverser: Position,
        oop_reach: float,
        ip_reach: float,
    ) -> float:
        """
        External-sampling traversal.

        Returns:
            Value of state for the traverser
        """
        if state.is_terminal():
            return terminal_payoff(state, traverser, sign)

        if state.awaiting_card():
            next_state = state.copy()
            card = runout[len(state.board) - len(self.root.board)]
            if len(state.board) == 3:
                next_state.set_turn(card)
            else:
                next_state.set_river(card)
            return self._traverse(next_state, hands, runout, sign, traverser, oop_reach, ip_reach)

        player = state.to_act
        actions = state.get_available_actions()
        key = make_info_set_key(player, hands[player], state, self.config.suit_isomorphic_keys)
        info_set = self.profile.get_or_create(key, actions)
        probs = info_set.strategy

        if player == traverser:
            # Traverse all actions, compute regrets
            action_values = np.zeros(len(actions))
            for i, action in enumerate(actions):
                child = state.after_action(action)
                if player == Position.OOP:
                    action_values[i] = self._traverse(
                        child, hands, runout, sign, traverser, oop_reach * probs[i], ip_reach
                    )
                else:
                    action_values[i] = self._traverse(
                        child, hands, runout, sign, traverser, oop_reach, ip_reach * probs[i]
                    )

            node_value = float(np.dot(probs, action_values))
            my_reach, opp_reach = (oop_reach, ip_reach) if player == Position.OOP else (ip_reach, oop_reach)

            info_set.add_regrets(opp_reach * (action_values - node_value))
            info_set.update_strategy()
            info_set.accumulate_strategy(my_reach)
            return node_value

        # Sample action according to strategy
        i = info_set.sample_action(self.rng)
        child = state.after_action(actions[i])
        if player == Position.OOP:
            oop_reach *= probs[i]
        else:
            ip_reach *= probs[i]
        return self._traverse(child, hands, runout, sign, traverser, oop_reach, ip_reach)

    def _apply_discounting(self) -> None:
        """Discount regrets and strategy sums, weighting later iterations more."""
        self._discount_steps += 1
        t = float(self._discount_steps)
        alpha = t ** self.config.discount_alpha
        beta = t ** self.config.discount_beta
        positive = alpha / (alpha + 1.0)
        negative = beta / (beta + 1.0)
        strategy = (t / (t + 1.0)) ** self.config.discount_gamma
        self.profile.discount(positive, negative, strategy)

    # ------------------------------------------------------------------
    # Queries

    def decision_point(self, player: Position) -> GameState:
        """
        The state where player makes its first decision.

        That is the root if player acts there, otherwise the root after
        the first player checks.
        """
        if self.root is None:
            raise RuntimeError("Solver has not been initialized")
        if self.root.to_act == player:
            return self.root.copy()
        return self.root.after_action(Action.check())

    def get_strategy(
        self,
        player: Position,
        hand: Hand,
        state: Optional[GameState] = None,
    ) -> NodeStrategy:
        """
        Average strategy for a concrete hand.

        Args:
            player: Player holding hand
            hand: The hand to look up
            state: Decision state (the player's first decision by default)

        Returns:
            NodeStrategy; uniform with visited=False if never reached
        """
        if state is None:
            state = self.decision_point(player)
        actions = state.get_available_actions()
        key = make_info_set_key(player, hand, state, self.config.suit_isomorphic_keys)
        info_set = self.profile.get(key)

        if info_set is None or info_set.visits == 0 or not actions:
            probs = np.full(len(actions), 1.0 / len(actions)) if actions else np.zeros(0)
            return NodeStrategy(hand.hand_type, hand, actions, probs, visited=False)
        return NodeStrategy(hand.hand_type, hand, list(info_set.actions), info_set.average_strategy(), visited=True)

    def get_all_strategies(
        self,
        player: Position,
        state: Optional[GameState] = None,
    ) -> dict[HandType, NodeStrategy]:
        """One board-legal representative per hand type in player's range."""
        if state is None:
            state = self.decision_point(player)
        board = state.board

        strategies = {}
        for hand_type in self.ranges[player].get_hand_types():
            for hand in hand_type.hands():
                if not hand.conflicts_with(board):
                    strategies[hand_type] = self.get_strategy(player, hand, state)
                    break
        return strategies

    def get_aggregated_strategy(
        self,
        player: Position,
        state: Optional[GameState] = None,
    ) -> dict[Action, float]:
        """
        Range-weighted average strategy over every available hand.

        Returns:
            Action -> probability, summing to 1 (empty if no hand is available)
        """
        if state is None:
            state = self.decision_point(player)
        actions = state.get_available_actions()
        totals = np.zeros(len(actions))
        weight_sum = 0.0

        for hand, weight in self.ranges[player].get_available_hands(state.board):
            strategy = self.get_strategy(player, hand, state)
            totals += weight * strategy.probabilities
            weight_sum += weight

        if weight_sum <= 0:
            return {}
        totals /= totals.sum()
        return dict(zip(actions, totals))

    def get_exploitability(self) -> float:
        """
        Progress indicator: 100 / sqrt(iterations).

        This is not a best-response distance. It only shrinks as more
        iterations run.
        """
        return 100.0 / math.sqrt(max(1, self._iteration))
