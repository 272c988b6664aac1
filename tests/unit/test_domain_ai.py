"""Unit tests for AI move selection."""

from __future__ import annotations

import copy

import pytest

from diceconquest.domain import ai
from diceconquest.domain.enums import AiDifficulty, Personality
from diceconquest.domain.models import PlayerID


def _row(specs: list[tuple[int, int]], start: int = 0) -> list[tuple[int, int, int, int]]:
    """``(owner, dice)`` pairs laid out east-west from ``q=start``."""

    return [(start + i, 0, owner, dice) for i, (owner, dice) in enumerate(specs)]


class TestHeuristics:
    @pytest.mark.parametrize(
        "attacker, defender, expected",
        [(1, 1, 0.0), (3, 3, 0.45), (5, 2, 0.8), (2, 4, 0.26), (8, 1, 1.2)],
    )
    def test_win_probability(self, attacker, defender, expected):
        assert ai.win_probability(attacker, defender) == pytest.approx(expected)

    def test_cells_connected_through_own_territory(self, make_board):
        state = make_board(_row([(0, 2), (0, 2), (0, 2), (1, 1), (0, 2)]))
        assert ai.are_cells_connected(state, 0, 2, 0)
        assert not ai.are_cells_connected(state, 0, 4, 0)

    def test_bridging_move_is_connecting(self, make_board):
        state = make_board(_row([(0, 4), (1, 3), (0, 1)]))
        source, target = state.cells[0], state.cells[1]
        assert ai.is_move_connecting(state, source, target, state.players[0])

    def test_frontier_move_is_not_connecting(self, make_board):
        state = make_board(_row([(0, 4), (1, 3), (1, 1)]))
        assert not ai.is_move_connecting(state, state.cells[0], state.cells[1], state.players[0])


class TestStandardStrategy:
    def test_prefers_the_weak_target(self, make_board):
        state = make_board(_row([(1, 7), (0, 8), (1, 1)], start=-1))
        assert ai.choose_move(state) == ai.AttackMove(1, 2)

    def test_normal_refuses_coin_flips(self, make_board):
        state = make_board(_row([(0, 3), (1, 3)]))
        assert ai.choose_move(state) is None

    def test_easy_takes_coin_flips(self, make_board):
        state = make_board(_row([(0, 3), (1, 3)]), difficulty=AiDifficulty.EASY)
        assert ai.choose_move(state) == ai.AttackMove(0, 1)

    def test_connection_outweighs_odds(self, make_board):
        state = make_board(_row([(1, 1), (0, 4), (1, 3), (0, 1)], start=-1))
        assert ai.choose_move(state) == ai.AttackMove(1, 2)

    def test_grudge_breaks_ties_by_personality(self, make_board):
        state = make_board(_row([(2, 2), (0, 5), (1, 2)], start=-1), players=3)
        assert ai.choose_move(state) == ai.AttackMove(1, 2)

        state.players[0].grudges[PlayerID(2)] = 1
        state.players[0].personality = Personality.AGGRESSIVE
        assert ai.choose_move(state) == ai.AttackMove(1, 0)

    def test_allies_spared_unless_betrayed(self, make_board):
        state = make_board(_row([(0, 5), (1, 1), (1, 1)]))
        state.players[0].alliances.add(PlayerID(1))
        assert ai.choose_move(state) is None

        state.players[0].betrayals[PlayerID(1)] = 2
        assert ai.choose_move(state) == ai.AttackMove(0, 1)

    def test_easy_picks_among_top_three(self, make_board):
        layout = [
            (0, 0, 0, 8),
            (1, 0, 1, 1),
            (1, -1, 1, 2),
            (0, -1, 1, 3),
            (-1, 0, 1, 4),
            (-1, 1, 1, 5),
            (0, 1, 1, 6),
        ]
        state = make_board(layout, difficulty=AiDifficulty.EASY, seed="easy")
        move = ai.choose_move(state)
        assert move in {ai.AttackMove(0, 1), ai.AttackMove(0, 2), ai.AttackMove(0, 3)}
        assert ai.choose_move(state) == move


class TestHoardingStrategy:
    def test_hoards_while_there_is_room(self, make_board):
        state = make_board(_row([(0, 2), (0, 2), (1, 1)]), difficulty=AiDifficulty.HARD)
        assert ai.capacity_overflow(state, state.players[0]) < 0
        assert ai.choose_move(state) is None

    def test_connects_even_while_hoarding(self, make_board):
        state = make_board(_row([(0, 4), (1, 3), (0, 1)]), difficulty=AiDifficulty.HARD)
        assert ai.choose_move(state) == ai.AttackMove(0, 1)

    def test_spends_full_stacks_on_overflow(self, make_board):
        state = make_board(
            _row([(0, 8), (0, 8), (0, 8), (1, 1), (1, 1)]), difficulty=AiDifficulty.HARD
        )
        state.players[0].reserve = 3
        assert ai.capacity_overflow(state, state.players[0]) == 6
        assert ai.choose_move(state) == ai.AttackMove(2, 3)


class TestBarbarianStrategy:
    def test_greedy_and_never_fratricidal(self, make_board):
        state = make_board(_row([(2, 1), (0, 3), (1, 2)], start=-1), players=3)
        state.players[0].is_barbarian = True
        state.players[2].is_barbarian = True
        assert ai.choose_move(state) == ai.AttackMove(1, 2)

    def test_never_attacks_at_a_disadvantage(self, make_board):
        state = make_board(_row([(0, 2), (1, 5)]))
        state.players[0].is_barbarian = True
        assert ai.choose_move(state) is None


class TestStrategySelection:
    def test_mapping(self, make_board):
        state = make_board(_row([(0, 2), (1, 2)]))
        player = state.players[0]
        assert isinstance(ai.strategy_for(player, AiDifficulty.EASY), ai.StandardStrategy)
        assert isinstance(ai.strategy_for(player, AiDifficulty.HARD), ai.HoardingStrategy)
        player.is_barbarian = True
        assert isinstance(ai.strategy_for(player, AiDifficulty.HARD), ai.BarbarianStrategy)


class TestSurrenderSignal:
    def _hopeless(self, make_board):
        state = make_board(_row([(0, 1)] + [(1, 5)] * 10 + [(2, 5)] * 10), players=3)
        state.turn = 25.0
        return state

    def test_gives_up_to_the_leader(self, make_board):
        state = self._hopeless(make_board)
        assert ai.choose_move(state) == ai.SurrenderMove(PlayerID(1))

    def test_not_before_turn_twenty(self, make_board):
        state = self._hopeless(make_board)
        state.turn = 20.0
        assert ai.surrender_signal(state, state.players[0]) is None

    def test_not_with_only_two_civilisations(self, make_board):
        state = make_board(_row([(0, 1)] + [(1, 5)] * 10))
        state.turn = 30.0
        assert ai.surrender_signal(state, state.players[0]) is None


class TestChooseMove:
    def test_does_not_mutate_state(self, make_board):
        state = make_board(
            _row([(0, 8), (1, 1), (1, 2), (1, 3), (0, 5)]), difficulty=AiDifficulty.EASY
        )
        cells = copy.deepcopy(state.cells)
        players = copy.deepcopy(state.players)
        draws = state.rng.draws

        ai.choose_move(state)

        assert state.cells == cells
        assert state.players == players
        assert state.rng.draws == draws
        assert state.move_count == 0

    def test_human_turn_yields_nothing(self, make_board):
        state = make_board(_row([(0, 5), (1, 1)]), humans=(0,))
        assert ai.choose_move(state) is None
