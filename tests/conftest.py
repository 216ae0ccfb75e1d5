"""Pytest configuration and fixtures."""

import pytest

from husolver.game.cards import parse_cards
from husolver.game.evaluator import get_evaluator
from husolver.game.state import BetSizingConfig, GameState
from husolver.solver.kuhn import KuhnTrainer


@pytest.fixture(scope="session")
def evaluator():
    return get_evaluator()


@pytest.fixture
def flop_board():
    return parse_cards("Kh 8d 3c")


@pytest.fixture
def river_board():
    return parse_cards("Kh 8d 3c 7s 2h")


@pytest.fixture
def small_config():
    """One bet size everywhere and short stacks, so every bet is all-in."""
    return BetSizingConfig(
        oop_flop_bets=[0.5], oop_turn_bets=[0.5], oop_river_bets=[0.5],
        ip_flop_bets=[0.5], ip_turn_bets=[0.5], ip_river_bets=[0.5],
        stack_size=20.0,
        initial_pot=7.0,
    )


@pytest.fixture
def flop_state(flop_board):
    state = GameState()
    assert state.set_flop(*flop_board)
    return state


@pytest.fixture(scope="session")
def trained_kuhn():
    trainer = KuhnTrainer(seed=7)
    trainer.train(30000)
    return trainer
