"""Unit tests for region discovery and the reserve cap."""

from __future__ import annotations

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from diceconquest.domain import regions
from diceconquest.domain.errors import InvariantViolation
from diceconquest.domain.models import CellID
from diceconquest.domain.rules_config import RulesConfig


def _row(owners: list[int], dice: int = 2) -> list[tuple[int, int, int, int]]:
    return [(q, 0, owner, dice) for q, owner in enumerate(owners)]


class TestLargestRegion:
    def test_picks_the_bigger_blob(self, make_board):
        state = make_board(_row([0, 0, 0, 1, 0, 0, 0, 0, 0]))
        player = state.players[0]
        assert player.largest_region_size == 5
        assert player.largest_region_cells == {4, 5, 6, 7, 8}

    def test_tie_broken_by_dice(self, make_board):
        layout = _row([0, 0, 1, 0, 0])
        layout[3] = (3, 0, 0, 5)
        state = make_board(layout)
        assert state.players[0].largest_region_cells == {3, 4}

    def test_tie_on_dice_keeps_first_region(self, make_board):
        state = make_board(_row([0, 0, 1, 0, 0]))
        assert state.players[0].largest_region_cells == {0, 1}

    def test_collect_regions_returns_every_component(self, make_board):
        state = make_board(_row([0, 1, 0, 1, 0, 0]))
        sizes = [r.size for r in regions.collect_regions(state.players[0], state.cells)]
        assert sizes == [1, 1, 2]

    def test_dead_player_has_empty_region(self, make_board):
        state = make_board(_row([0, 0, 0]))
        assert not state.players[1].alive
        assert state.players[1].largest_region_size == 0


class TestReserveCap:
    def test_reserve_clamped_when_region_shrinks(self, make_board):
        state = make_board(_row([0, 0, 0, 0, 1, 1]))
        player = state.players[0]
        player.reserve = 6
        regions.recompute_all_regions(state)
        assert player.largest_region_size == 4
        assert player.reserve == 4
        assert "2 reserve dice burned" in state.logs[-1]

    def test_reserve_under_cap_untouched(self, make_board):
        state = make_board(_row([0, 0, 0, 1]))
        state.players[0].reserve = 3
        regions.recompute_all_regions(state)
        assert state.players[0].reserve == 3

    @settings(max_examples=40)
    @given(
        owners=st.lists(st.integers(min_value=0, max_value=1), min_size=2, max_size=20),
        reserve=st.integers(min_value=0, max_value=40),
    )
    def test_cap_holds_after_recompute(self, make_board, owners, reserve):
        state = make_board(_row(owners))
        state.players[0].reserve = reserve
        regions.recompute_all_regions(state)
        for player in state.players:
            assert player.reserve <= player.largest_region_size

    def test_totals_include_reserve(self, make_board):
        state = make_board(_row([0, 0, 1], dice=3))
        state.players[0].reserve = 1
        regions.update_totals(state)
        assert state.players[0].total_dice == 7


class TestInvariants:
    def test_lenient_mode_clamps(self, make_board):
        state = make_board(_row([0, 0, 1]))
        state.players[0].reserve = 9
        regions.check_invariants(state)
        assert state.players[0].reserve == 2

    def test_strict_mode_raises(self, make_board):
        state = make_board(_row([0, 0, 1]))
        state.players[0].reserve = 9
        with pytest.raises(InvariantViolation, match="exceeds"):
            regions.check_invariants(state, RulesConfig(strict_invariants=True))

    def test_strict_mode_detects_stale_ownership(self, make_board):
        state = make_board(_row([0, 0, 1]))
        state.players[0].cells.add(CellID(2))
        with pytest.raises(InvariantViolation, match="listed for player"):
            regions.check_invariants(state, RulesConfig(strict_invariants=True))

    def test_asymmetric_adjacency_rejected(self, make_board):
        state = make_board(_row([0, 0, 1]))
        state.cells[0].neighbors.append(CellID(2))
        with pytest.raises(InvariantViolation, match="no reverse edge"):
            regions.validate_adjacency(state.cells)

    def test_dangling_neighbor_rejected(self, make_board):
        state = make_board(_row([0, 1]))
        state.cells[1].neighbors.append(CellID(7))
        with pytest.raises(InvariantViolation, match="missing neighbor"):
            regions.validate_adjacency(state.cells)
