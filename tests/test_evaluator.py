"""Tests for the lookup-table hand evaluator."""

import itertools

import numpy as np
import pytest
from treys import Evaluator as TreysEvaluator

from husolver.game.cards import Card, parse_cards
from husolver.game.evaluator import (
    HandCategory, HandEvaluator, EvalResult, ROYAL_FLUSH, CATEGORY_FLOORS,
    NUM_HAND_VALUES, get_evaluator, evaluate
)


# One example per category, weakest first
CATEGORY_EXAMPLES = [
    ("Ks Qd 9h 7c 2s", HandCategory.HIGH_CARD),
    ("Ks Kd 9h 7c 2s", HandCategory.PAIR),
    ("Ks Kd 9h 9c 2s", HandCategory.TWO_PAIR),
    ("Ks Kd Kh 7c 2s", HandCategory.THREE_OF_A_KIND),
    ("9s 8d 7h 6c 5s", HandCategory.STRAIGHT),
    ("Ks Qs 9s 7s 2s", HandCategory.FLUSH),
    ("Ks Kd Kh 7c 7s", HandCategory.FULL_HOUSE),
    ("Ks Kd Kh Kc 2s", HandCategory.FOUR_OF_A_KIND),
    ("9s 8s 7s 6s 5s", HandCategory.STRAIGHT_FLUSH),
]


def value(text, evaluator):
    return evaluator.evaluate(parse_cards(text)).value


class TestTables:
    def test_shared_instance(self):
        assert get_evaluator() is get_evaluator()

    def test_tables_immutable(self, evaluator):
        assert isinstance(evaluator.flush_table, tuple)
        assert isinstance(evaluator.unique_table, tuple)

    def test_every_value_used_once(self, evaluator):
        values = [v for v in evaluator.flush_table if v]
        values += [v for v in evaluator.unique_table if v]
        values += list(evaluator.rank_table.values())
        assert len(values) == NUM_HAND_VALUES
        assert sorted(values) == list(range(1, NUM_HAND_VALUES + 1))

    def test_royal_flush_unique(self, evaluator):
        assert ROYAL_FLUSH == 7462
        royal_masks = [m for m, v in enumerate(evaluator.flush_table) if v == ROYAL_FLUSH]
        assert royal_masks == [0b1111100000000]
        assert ROYAL_FLUSH not in evaluator.unique_table
        assert ROYAL_FLUSH not in evaluator.rank_table.values()


class TestCategories:
    def test_examples_have_category(self, evaluator):
        for text, category in CATEGORY_EXAMPLES:
            assert evaluator.evaluate(parse_cards(text)).category == category

    def test_categories_monotone(self, evaluator):
        values = [value(text, evaluator) for text, _ in CATEGORY_EXAMPLES]
        assert values == sorted(values)
        assert len(set(values)) == len(values)

    def test_category_floors(self):
        assert CATEGORY_FLOORS[HandCategory.HIGH_CARD] == 1
        assert CATEGORY_FLOORS[HandCategory.PAIR] == 1278
        assert CATEGORY_FLOORS[HandCategory.STRAIGHT_FLUSH] == 7453
        assert EvalResult(7452).category == HandCategory.FOUR_OF_A_KIND
        assert EvalResult(1).category == HandCategory.HIGH_CARD


class TestKnownHands:
    def test_royal_flush(self, evaluator):
        result = evaluator.evaluate(parse_cards("As Ks Qs Js Ts"))
        assert result.value == ROYAL_FLUSH
        assert result.category == HandCategory.STRAIGHT_FLUSH

    def test_worst_hand(self, evaluator):
        assert value("7s 5d 4h 3c 2s", evaluator) == 1

    def test_wheel_lowest_straight(self, evaluator):
        wheel = value("As 2d 3h 4c 5s", evaluator)
        six_high = value("2d 3h 4c 5s 6d", evaluator)
        assert wheel == CATEGORY_FLOORS[HandCategory.STRAIGHT]
        assert six_high == wheel + 1

    def test_steel_wheel(self, evaluator):
        assert value("As 2s 3s 4s 5s", evaluator) == CATEGORY_FLOORS[HandCategory.STRAIGHT_FLUSH]

    def test_kicker_decides(self, evaluator):
        assert value("As Ad Kh 7c 2s", evaluator) > value("As Ad Qh 7c 2s", evaluator)

    def test_two_pair_order(self, evaluator):
        assert value("Ks Kd 3h 3c 2s", evaluator) > value("Qs Qd Jh Jc As", evaluator)

    def test_full_house_order(self, evaluator):
        assert value("3s 3d 3h 2c 2s", evaluator) > value("2s 2d 2h Ac As", evaluator)

    def test_best_of_seven(self, evaluator):
        cards = parse_cards("As Ks Qs Js Ts 2d 2c")
        assert evaluator.evaluate(cards).value == ROYAL_FLUSH

    def test_six_cards(self, evaluator):
        cards = parse_cards("Ah Ad Ac 7s 7d 2c")
        assert evaluator.evaluate(cards).category == HandCategory.FULL_HOUSE

    def test_compare(self, evaluator):
        board = parse_cards("Kh 8d 3c 7s 2h")
        aces = parse_cards("As Ad") + board
        fives = parse_cards("5s 5d") + board
        assert evaluator.compare(aces, fives) == 1
        assert evaluator.compare(fives, aces) == -1

    def test_board_plays_split(self, evaluator):
        board = parse_cards("As Ks Qs Js Ts")
        assert evaluator.compare(parse_cards("2c 3d") + board, parse_cards("4c 5d") + board) == 0

    def test_accepts_ints(self, evaluator):
        cards = parse_cards("As Ks Qs Js Ts")
        assert evaluator.evaluate([c.value for c in cards]) == evaluator.evaluate(cards)

    def test_module_evaluate(self):
        assert evaluate(parse_cards("As Ks Qs Js Ts")).value == ROYAL_FLUSH

    def test_wrong_card_count(self, evaluator):
        with pytest.raises(ValueError):
            evaluator.evaluate(parse_cards("As Ks Qs Js"))


class TestInvariance:
    def test_permutation_invariant(self, evaluator):
        cards = parse_cards("Ah Kd 9c 9s 4h 4d 2c")
        expected = evaluator.evaluate(cards)
        for perm in itertools.islice(itertools.permutations(cards), 0, 5040, 97):
            assert evaluator.evaluate(perm) == expected

    def test_suit_relabel_invariant(self, evaluator):
        cards = parse_cards("Ah Kh 9h 5h 2c 3d 4s")
        relabeled = [Card.from_rank_suit(c.rank, (c.suit + 1) % 4) for c in cards]
        assert evaluator.evaluate(cards) == evaluator.evaluate(relabeled)


class TestAgainstTreys:
    def test_matches_treys(self, evaluator):
        treys = TreysEvaluator()
        rng = np.random.default_rng(11)

        for _ in range(300):
            cards = [Card(int(v)) for v in rng.choice(52, size=7, replace=False)]
            ours = evaluator.evaluate(cards).value
            theirs = treys.evaluate(
                [c.to_treys() for c in cards[:2]],
                [c.to_treys() for c in cards[2:]],
            )
            # treys ranks 1 (royal flush) to 7462, lower is better
            assert ours == NUM_HAND_VALUES + 1 - theirs

    def test_showdowns_match_treys(self, evaluator):
        treys = TreysEvaluator()
        rng = np.random.default_rng(5)

        for _ in range(200):
            deal = [Card(int(v)) for v in rng.choice(52, size=9, replace=False)]
            a, b, board = deal[:2], deal[2:4], deal[4:]
            ours = evaluator.compare(a + board, b + board)
            ta = treys.evaluate([c.to_treys() for c in a], [c.to_treys() for c in board])
            tb = treys.evaluate([c.to_treys() for c in b], [c.to_treys() for c in board])
            assert ours == (ta < tb) - (ta > tb)


def test_fresh_evaluator_matches_shared():
    cards = parse_cards("Qc Qd 8h 8s 8c")
    assert HandEvaluator().evaluate(cards) == get_evaluator().evaluate(cards)
