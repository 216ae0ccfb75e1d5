"""Tests for the MCCFR solver."""

import logging

import numpy as np
import pytest

from husolver.game.cards import Hand, HandType, parse_cards
from husolver.game.ranges import Range
from husolver.game.state import BetSizingConfig, GameState, Position
from husolver.game.tree import GameTree
from husolver.solver.mccfr import MCCFRConfig, MCCFRSolver


def make_solver(config, board, oop="AA", ip="55", **solver_options):
    state = GameState(config)
    state.set_board(board)
    solver = MCCFRSolver(MCCFRConfig(**solver_options))
    solver.initialize(state, Range.from_string(oop), Range.from_string(ip))
    return solver


@pytest.fixture(scope="module")
def solved_flop():
    """AA against 55 on Kh 8d 3c with every bet collapsing to all-in."""
    config = BetSizingConfig(
        oop_flop_bets=[0.5], oop_turn_bets=[0.5], oop_river_bets=[0.5],
        ip_flop_bets=[0.5], ip_turn_bets=[0.5], ip_river_bets=[0.5],
        stack_size=20.0,
        initial_pot=7.0,
    )
    solver = make_solver(config, parse_cards("Kh 8d 3c"), seed=1)
    solver.solve(1500)
    return solver


class TestConfig:
    def test_defaults(self):
        config = MCCFRConfig()
        assert config.num_iterations == 10000
        assert config.discount_interval == 100
        assert config.suit_isomorphic_keys

    def test_rejects_bad_interval(self):
        with pytest.raises(ValueError):
            MCCFRConfig(discount_interval=0)
        with pytest.raises(ValueError):
            MCCFRConfig(progress_interval=0)


class TestSolveFlop:
    def test_iterations_counted(self, solved_flop):
        assert solved_flop.current_iteration == 1500
        assert solved_flop.num_info_sets > 0

    def test_strategies_are_distributions(self, solved_flop):
        for info_set in solved_flop.profile.info_sets.values():
            for probs in (info_set.strategy, info_set.average_strategy()):
                assert not np.isnan(probs).any()
                assert (probs >= 0).all()
                assert probs.sum() == pytest.approx(1.0)

    def test_overpair_bets_more_than_underpair(self, solved_flop):
        oop = solved_flop.get_strategy(Position.OOP, Hand.from_string("AsAd"))
        ip = solved_flop.get_strategy(Position.IP, Hand.from_string("5s5d"))
        assert oop.visited and ip.visited
        assert oop.aggressive_frequency > ip.aggressive_frequency + 0.2

    def test_decision_points(self, solved_flop):
        assert solved_flop.decision_point(Position.OOP).history_key() == ()
        assert solved_flop.decision_point(Position.IP).history_key() == ("x",)

    def test_unseen_hand_is_uniform(self, solved_flop):
        strategy = solved_flop.get_strategy(Position.OOP, Hand.from_string("QsQd"))
        assert not strategy.visited
        assert np.allclose(strategy.probabilities, 1 / len(strategy.actions))

    def test_all_strategies(self, solved_flop):
        strategies = solved_flop.get_all_strategies(Position.OOP)
        assert list(strategies) == [HandType.from_string("AA")]

    def test_aggregated_strategy(self, solved_flop):
        aggregated = {
            player: solved_flop.get_aggregated_strategy(player) for player in Position
        }
        for strategy in aggregated.values():
            assert sum(strategy.values()) == pytest.approx(1.0)

        def aggression(strategy):
            return sum(p for action, p in strategy.items() if action.is_aggressive)

        assert aggression(aggregated[Position.OOP]) > aggression(aggregated[Position.IP]) + 0.2

    def test_all_strategies_are_distributions(self, solved_flop):
        for player in Position:
            strategies = solved_flop.get_all_strategies(player)
            assert strategies
            for strategy in strategies.values():
                assert strategy.probabilities.sum() == pytest.approx(1.0)

    def test_exploitability_proxy(self, solved_flop):
        assert solved_flop.get_exploitability() == pytest.approx(100 / np.sqrt(1500))


class TestSolverControl:
    def test_not_initialized(self):
        solver = MCCFRSolver()
        assert not solver.run_iteration()
        with pytest.raises(RuntimeError):
            solver.decision_point(Position.OOP)

    def test_empty_range_is_noop(self, small_config, river_board, caplog):
        with caplog.at_level(logging.WARNING, logger="husolver"):
            solver = make_solver(small_config, river_board, oop="", ip="55")
        assert "no combos" in caplog.text
        assert not solver.run_iteration()
        solver.solve(10)
        assert solver.current_iteration == 0

    def test_no_legal_deal(self, small_config, river_board, caplog):
        # Three kings left on the board cannot give both players KK
        solver = make_solver(small_config, river_board, oop="KK", ip="KK")
        assert not solver.run_iteration()
        calls = []
        solver.set_progress_callback(lambda i, total, e: calls.append(i))
        with caplog.at_level(logging.WARNING, logger="husolver"):
            solver.solve(5)
        assert "No legal deal" in caplog.text
        assert solver.current_iteration == 0
        assert calls == [0]

    def test_blocked_deals_are_skipped(self, small_config):
        # The only ace combo left for OOP blocks IP's only hand
        board = parse_cards("Ad Ac 2h 7s 9d")
        solver = make_solver(small_config, board, oop="AA, KK", ip="AA", seed=5, progress_interval=100)
        calls = []
        solver.set_progress_callback(lambda i, total, e: calls.append(i))
        solver.solve(500)
        assert not solver.is_stopped
        assert 350 < solver.current_iteration < 500
        assert calls == [100, 200, 300, 400, 500]
        oop = solver.get_strategy(Position.OOP, Hand.from_string("KsKd"))
        assert oop.visited

    def test_progress_callback(self, small_config, river_board):
        solver = make_solver(small_config, river_board, seed=3, progress_interval=50)
        calls = []
        solver.set_progress_callback(lambda i, total, e: calls.append((i, total, e)))
        solver.solve(200)
        assert [c[0] for c in calls] == [50, 100, 150, 200]
        assert all(c[1] == 200 for c in calls)
        exploits = [c[2] for c in calls]
        assert exploits == sorted(exploits, reverse=True)

    def test_stop(self, small_config, river_board):
        solver = make_solver(small_config, river_board, seed=3, progress_interval=10)
        solver.set_progress_callback(lambda i, total, e: solver.stop())
        solver.solve(1000)
        assert solver.is_stopped
        assert solver.current_iteration == 10

    def test_reset(self, small_config, river_board):
        solver = make_solver(small_config, river_board, seed=3)
        solver.solve(20)
        solver.reset()
        assert solver.current_iteration == 0
        assert solver.num_info_sets == 0
        assert not solver.is_stopped

    def test_seeded_runs_repeat(self, small_config, river_board):
        a = make_solver(small_config, river_board, oop="AA, KQs", ip="55, 76s", seed=9)
        b = make_solver(small_config, river_board, oop="AA, KQs", ip="55, 76s", seed=9)
        a.solve(100)
        b.solve(100)
        assert set(a.profile.info_sets) == set(b.profile.info_sets)
        for key, info_set in a.profile.info_sets.items():
            assert np.allclose(info_set.strategy_sum, b.profile.info_sets[key].strategy_sum)

    def test_discounting_toggle(self, small_config, river_board):
        plain = make_solver(small_config, river_board, seed=2, use_discounting=False, discount_interval=10)
        discounted = make_solver(small_config, river_board, seed=2, discount_interval=10)
        plain.solve(50)
        discounted.solve(50)
        key = next(iter(plain.profile.info_sets))
        assert plain.profile.info_sets[key].strategy_sum.sum() > \
            discounted.profile.info_sets[key].strategy_sum.sum()


class TestTreeAgreement:
    def test_solver_keys_exist_in_tree(self, small_config, river_board):
        solver = make_solver(small_config, river_board, seed=4)
        solver.solve(200)

        tree = GameTree()
        tree.build(solver.root)
        tree_keys = tree.info_set_keys(Hand.from_string("AsAd"), Hand.from_string("5s5d"))
        assert set(solver.profile.info_sets) <= tree_keys
        assert solver.num_info_sets >= 2
