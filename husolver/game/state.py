"""Heads-up postflop betting state machine."""

from dataclasses import dataclass, field
from enum import IntEnum, Enum, auto
from typing import Iterable, Optional

from .cards import Card, Hand

# Chip amounts below this are treated as zero
EPSILON = 1e-9


class Street(IntEnum):
    """Postflop streets; board size is street + 3."""
    FLOP = 0
    TURN = 1
    RIVER = 2

    @property
    def board_size(self) -> int:
        return self + 3


class Position(IntEnum):
    """Seat relative to the button. OOP acts first on every street."""
    OOP = 0
    IP = 1

    @property
    def opponent(self) -> "Position":
        return Position.IP if self == Position.OOP else Position.OOP


class ActionType(Enum):
    """Available actions at a decision node."""
    FOLD = auto()
    CHECK = auto()
    CALL = auto()
    BET = auto()
    RAISE = auto()
    ALL_IN = auto()


ACTION_CODES = {
    ActionType.FOLD: "f",
    ActionType.CHECK: "x",
    ActionType.CALL: "c",
    ActionType.BET: "b",
    ActionType.RAISE: "r",
    ActionType.ALL_IN: "a",
}


@dataclass(frozen=True)
class Action:
    """
    A betting action.

    amount is the chips the action adds to the pot. pot_fraction is the
    bet size as a fraction of the pot for bets, or the multiplier for
    raises.
    """
    action_type: ActionType
    amount: float = 0.0
    pot_fraction: float = 0.0

    @classmethod
    def fold(cls) -> "Action":
        return cls(ActionType.FOLD)

    @classmethod
    def check(cls) -> "Action":
        return cls(ActionType.CHECK)

    @classmethod
    def call(cls, amount: float) -> "Action":
        return cls(ActionType.CALL, amount)

    @classmethod
    def bet(cls, amount: float, pot_fraction: float) -> "Action":
        return cls(ActionType.BET, amount, pot_fraction)

    @classmethod
    def raise_(cls, amount: float, multiplier: float) -> "Action":
        return cls(ActionType.RAISE, amount, multiplier)

    @classmethod
    def all_in(cls, amount: float) -> "Action":
        return cls(ActionType.ALL_IN, amount)

    @property
    def is_aggressive(self) -> bool:
        return self.action_type in (ActionType.BET, ActionType.RAISE, ActionType.ALL_IN)

    def code(self) -> str:
        """
        Compact encoding used in information-set keys.

        Only bets need their size: every other action is unique among
        the legal actions of its node.
        """
        if self.action_type == ActionType.BET:
            return f"b{self.pot_fraction:g}"
        return ACTION_CODES[self.action_type]

    def __str__(self) -> str:
        if self.action_type == ActionType.FOLD:
            return "Fold"
        if self.action_type == ActionType.CHECK:
            return "Check"
        if self.action_type == ActionType.CALL:
            return f"Call ({self.amount:.1f}bb)"
        if self.action_type == ActionType.BET:
            return f"Bet {self.pot_fraction * 100:.0f}% ({self.amount:.1f}bb)"
        if self.action_type == ActionType.RAISE:
            return f"Raise {self.pot_fraction:g}x ({self.amount:.1f}bb)"
        return f"All-in ({self.amount:.1f}bb)"


@dataclass
class BetSizingConfig:
    """
    Bet-size abstraction for both players.

    Bet sizes are fractions of the pot. Raises are always to
    raise_multiplier times the opponent's investment on the street.
    A bet or raise collapses to all-in once the chips left behind would
    be at most all_in_threshold times the resulting pot.
    """
    oop_flop_bets: list[float] = field(default_factory=lambda: [0.25, 0.4, 0.8, 1.2])
    oop_turn_bets: list[float] = field(default_factory=lambda: [0.25, 0.4, 0.8, 1.2])
    oop_river_bets: list[float] = field(default_factory=lambda: [0.5, 0.8, 1.2])
    ip_flop_bets: list[float] = field(default_factory=lambda: [0.5, 0.8, 1.2])
    ip_turn_bets: list[float] = field(default_factory=lambda: [0.5, 0.8, 1.2])
    ip_river_bets: list[float] = field(default_factory=lambda: [0.8, 1.2])

    raise_multiplier: float = 2.5
    all_in_threshold: float = 1.25
    stack_size: float = 100.0
    initial_pot: float = 7.0
    max_raises_per_street: int = 3

    def __post_init__(self):
        if self.raise_multiplier <= 1.0:
            raise ValueError(f"raise_multiplier must exceed 1, got {self.raise_multiplier}")
        if self.max_raises_per_street < 1:
            raise ValueError(f"max_raises_per_street must be at least 1, got {self.max_raises_per_street}")
        if self.initial_pot < 0 or self.stack_size < self.initial_pot / 2:
            raise ValueError("stack_size must cover half the initial pot")
        for sizes in (
            self.oop_flop_bets, self.oop_turn_bets, self.oop_river_bets,
            self.ip_flop_bets, self.ip_turn_bets, self.ip_river_bets,
        ):
            if any(size <= 0 for size in sizes):
                raise ValueError(f"Bet sizes must be positive: {sizes}")

    def bet_sizes(self, position: Position, street: Street) -> list[float]:
        """Configured bet sizes, smallest first."""
        if position == Position.OOP:
            sizes = (self.oop_flop_bets, self.oop_turn_bets, self.oop_river_bets)[street]
        else:
            sizes = (self.ip_flop_bets, self.ip_turn_bets, self.ip_river_bets)[street]
        return sorted(sizes)


class GameState:
    """
    Betting state of a heads-up postflop hand.

    Each player starts having put initial_pot / 2 into the pot preflop,
    so contribution() measures everything a player has put in over the
    whole hand. When a betting round closes before the river the state
    waits for the next card (set_turn / set_river) with OOP to act.
    """

    def __init__(self, config: Optional[BetSizingConfig] = None):
        self.config = config or BetSizingConfig()
        self.stack_size = float(self.config.stack_size)
        self.initial_pot = float(self.config.initial_pot)

        self.street = Street.FLOP
        self.board: tuple[Card, ...] = ()
        self.pot = self.initial_pot
        self.stacks = [self.stack_size - self.initial_pot / 2] * 2
        self.invested = [0.0, 0.0]
        self.to_act = Position.OOP

        # (street, actor, action) for every action this hand
        self.history: tuple[tuple[Street, Position, Action], ...] = ()
        self.street_actions = 0
        self.street_raises = 0
        self.folded: Optional[Position] = None
        self.round_closed = False
        self._mark_street_start()

    def _mark_street_start(self) -> None:
        self._street_start = (self.pot, tuple(self.stacks))

    # ------------------------------------------------------------------
    # Setup

    def set_stack_size(self, stack_size: float) -> bool:
        if self.history or stack_size < self.initial_pot / 2:
            return False
        self.stack_size = float(stack_size)
        self.stacks = [self.stack_size - self.initial_pot / 2] * 2
        self._mark_street_start()
        return True

    def set_initial_pot(self, pot: float) -> bool:
        if self.history or pot < 0 or pot / 2 > self.stack_size:
            return False
        self.initial_pot = float(pot)
        self.pot = self.initial_pot
        self.stacks = [self.stack_size - self.initial_pot / 2] * 2
        self._mark_street_start()
        return True

    def set_flop(self, c1: Card, c2: Card, c3: Card) -> bool:
        if self.board or self.history:
            return False
        return self._place_board((c1, c2, c3))

    def set_turn(self, card: Card) -> bool:
        """Deal the turn, either as spot setup or to close out the flop."""
        return self._deal(card, Street.TURN)

    def set_river(self, card: Card) -> bool:
        return self._deal(card, Street.RIVER)

    def set_board(self, cards: Iterable[Card]) -> bool:
        """Set a 3 to 5 card board before any action; the street follows its size."""
        if self.history:
            return False
        return self._place_board(tuple(cards))

    def _place_board(self, cards: tuple[Card, ...]) -> bool:
        if not 3 <= len(cards) <= 5:
            return False
        if not all(card.is_valid for card in cards) or len(set(cards)) != len(cards):
            return False
        self.board = cards
        self.street = Street(len(cards) - 3)
        self.round_closed = False
        return True

    def _deal(self, card: Card, street: Street) -> bool:
        if len(self.board) != street.board_size - 1:
            return False
        if not card.is_valid or card in self.board:
            return False
        if self.is_terminal():
            return False

        # Only between rounds, or before any action as setup
        if self.round_closed:
            self.round_closed = False
        elif self.history:
            return False

        self.board = self.board + (card,)
        self.street = street
        self.street_actions = 0
        self.street_raises = 0
        self._mark_street_start()
        return True

    # ------------------------------------------------------------------
    # Queries

    def to_call(self) -> float:
        """Chips the player to act owes."""
        me = self.to_act
        return max(self.invested[me.opponent] - self.invested[me], 0.0)

    def contribution(self, position: Position) -> float:
        """Chips put in over the whole hand, preflop included."""
        return self.stack_size - self.stacks[position]

    def is_all_in(self) -> bool:
        return self.stacks[Position.OOP] <= EPSILON or self.stacks[Position.IP] <= EPSILON

    def is_terminal(self) -> bool:
        if self.folded is not None:
            return True
        return self.round_closed and (self.street == Street.RIVER or self.is_all_in())

    def has_showdown(self) -> bool:
        return self.is_terminal() and self.folded is None

    def awaiting_card(self) -> bool:
        """True between betting rounds, before the next card is dealt."""
        return self.round_closed and not self.is_terminal()

    def get_available_actions(self) -> list[Action]:
        """
        Legal actions for the player to act.

        Returns:
            Actions in a fixed order: fold/check, call, then bets or the
            raise, smallest first. Empty when terminal or between rounds.
        """
        if self.is_terminal() or self.round_closed:
            return []

        me = self.to_act
        opp = me.opponent
        owed = self.to_call()
        my_stack = self.stacks[me]
        opp_stack = self.stacks[opp]
        # No one can put in more than the opponent is able to match
        all_in_amount = min(my_stack, owed + opp_stack)
        threshold = self.config.all_in_threshold

        actions = []
        if owed > EPSILON:
            actions.append(Action.fold())
            if my_stack >= owed - EPSILON:
                actions.append(Action.call(min(owed, my_stack)))
            else:
                actions.append(Action.all_in(my_stack))
        else:
            actions.append(Action.check())

        if opp_stack <= EPSILON or my_stack <= owed + EPSILON:
            return actions

        if owed <= EPSILON:
            for fraction in self.config.bet_sizes(me, self.street):
                amount = fraction * self.pot
                remaining = my_stack - amount
                if amount >= all_in_amount - EPSILON or remaining <= threshold * (self.pot + amount):
                    actions.append(Action.all_in(all_in_amount))
                    break
                actions.append(Action.bet(amount, fraction))
            return actions

        if self.street_raises >= self.config.max_raises_per_street:
            return actions

        multiplier = self.config.raise_multiplier
        amount = multiplier * self.invested[opp] - self.invested[me]
        remaining = my_stack - amount
        if amount >= all_in_amount - EPSILON or remaining <= threshold * (self.pot + amount):
            actions.append(Action.all_in(all_in_amount))
        else:
            actions.append(Action.raise_(amount, multiplier))
        return actions

    # ------------------------------------------------------------------
    # Transitions

    def apply_action(self, action: Action) -> bool:
        """
        Apply an action for the player to act.

        Returns:
            False if the state is terminal or between rounds (nothing changes)
        """
        if self.is_terminal() or self.round_closed:
            return False

        me = self.to_act
        opp = me.opponent
        owed = self.to_call()
        first_action = self.street_actions == 0

        self.history = self.history + ((self.street, me, action),)
        self.street_actions += 1

        if action.action_type == ActionType.FOLD:
            self.folded = me
            return True

        if action.action_type == ActionType.CHECK:
            if first_action:
                self.to_act = opp
            else:
                self._close_round()
            return True

        self._put_in(me, action.amount)

        if action.action_type == ActionType.CALL:
            self._close_round()
        elif action.action_type == ActionType.ALL_IN and action.amount <= owed + EPSILON:
            self._refund_excess(opp)
            self._close_round()
        else:
            if owed > EPSILON:
                self.street_raises += 1
            self.to_act = opp
        return True

    def _put_in(self, position: Position, amount: float) -> None:
        amount = min(amount, self.stacks[position])
        self.stacks[position] -= amount
        self.invested[position] += amount
        self.pot += amount

    def _refund_excess(self, bettor: Position) -> None:
        """Return the part of a bet the caller could not match."""
        excess = self.invested[bettor] - self.invested[bettor.opponent]
        if excess > EPSILON:
            self.stacks[bettor] += excess
            self.invested[bettor] -= excess
            self.pot -= excess

    def _close_round(self) -> None:
        self.invested = [0.0, 0.0]
        self.to_act = Position.OOP
        self.round_closed = True

    def after_action(self, action: Action) -> "GameState":
        """Copy of this state with action applied."""
        child = self.copy()
        child.apply_action(action)
        return child

    def copy(self) -> "GameState":
        clone = GameState.__new__(GameState)
        clone.__dict__.update(self.__dict__)
        clone.stacks = list(self.stacks)
        clone.invested = list(self.invested)
        return clone

    def reset_street(self) -> None:
        """Undo every action of the current street."""
        self.history = tuple(entry for entry in self.history if entry[0] != self.street)
        self.pot, stacks = self._street_start
        self.stacks = list(stacks)
        self.invested = [0.0, 0.0]
        self.to_act = Position.OOP
        self.street_actions = 0
        self.street_raises = 0
        self.folded = None
        self.round_closed = False

    def history_key(self) -> tuple:
        """Action codes for the whole hand with '/' between streets."""
        key = []
        street = None
        for action_street, _, action in self.history:
            if street is not None and action_street != street:
                key.append("/")
            key.append(action.code())
            street = action_street
        if street is not None and self.street != street:
            key.append("/")
        return tuple(key)

    def __str__(self) -> str:
        board = " ".join(str(c) for c in self.board) or "-"
        return (
            f"{self.street.name.title()} [{board}] pot={self.pot:.1f} "
            f"stacks={self.stacks[0]:.1f}/{self.stacks[1]:.1f} to_act={self.to_act.name}"
        )


def make_info_set_key(
    player: Position,
    hand: Hand,
    state: GameState,
    suit_isomorphic: bool = True,
) -> tuple:
    """
    Create information set key.

    Args:
        player: Acting player
        hand: The player's private cards
        state: Current state (board and action history)
        suit_isomorphic: Key by hand type instead of exact cards

    Returns:
        (player, hand id, board card values, history key)
    """
    if suit_isomorphic:
        hand_id = hand.hand_type.index
    else:
        hand_id = (hand.card1.value, hand.card2.value)
    board = tuple(card.value for card in state.board)
    return (int(player), hand_id, board, state.history_key())
