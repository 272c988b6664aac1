"""Unit tests for game creation."""

from __future__ import annotations

import pytest

from diceconquest.domain import regions, setup
from diceconquest.domain.enums import AllianceGroup, GameMode, Phase
from diceconquest.domain.errors import ValidationError
from diceconquest.domain.models import GameSettings
from diceconquest.schemas import CustomMap, parse_custom_map


def _board(state):
    return [(c.q, c.r, c.owner, c.dice) for c in state.cells]


class TestNewGame:
    def test_map_seed_reproduces_the_board(self):
        settings = GameSettings(players_count=4, cell_count=60, seed="same-map")
        first = setup.new_game(settings, gameplay_seed="g1")
        second = setup.new_game(settings, gameplay_seed="g2")

        assert _board(first) == _board(second)
        assert first.active == second.active
        assert [p.personality for p in first.players] == [p.personality for p in second.players]
        assert first.seed != second.seed

    def test_missing_seed_is_generated(self):
        state = setup.new_game(GameSettings(players_count=2, cell_count=20))
        assert state.map_seed
        assert state.seed
        assert state.settings.seed == state.map_seed

    def test_players(self):
        state = setup.new_game(GameSettings(players_count=3, human_count=1, cell_count=40, seed="p"))
        assert [p.name for p in state.players] == ["Player 1", "AI 2", "AI 3"]
        assert [p.human for p in state.players] == [True, False, False]
        assert len({p.color for p in state.players}) == 3

    def test_classic_setup(self):
        state = setup.new_game(GameSettings(players_count=4, cell_count=80, seed="classic"))
        assert state.phase == Phase.PLAY
        assert all(c.is_owned for c in state.cells)
        assert state.logs[0] == "New game has started!"
        assert state.logs[-1] == "Turn order bonus awarded! (Base: 1)"
        assert 0 <= state.active < 4
        for player in state.players:
            assert player.largest_region_size >= 1
            assert player.reserve <= player.largest_region_size

    def test_conquest_setup(self):
        settings = GameSettings(
            players_count=3, cell_count=90, game_mode=GameMode.CONQUEST, seed="conquest"
        )
        state = setup.new_game(settings)

        barbarian = state.players[-1]
        assert barbarian.is_barbarian
        assert barbarian.name == "Barbarians"
        assert len(state.players) == 4
        assert all(len(p.cells) == 1 for p in state.players[:-1])
        assert state.logs == ["Conquest has begun!"]
        assert not state.players[state.active].is_barbarian

    def test_alliances(self):
        settings = GameSettings(
            players_count=3,
            cell_count=40,
            seed="allies",
            alliances={0: (AllianceGroup.A,), 1: (AllianceGroup.A, AllianceGroup.B), 2: (AllianceGroup.B,)},
        )
        state = setup.new_game(settings)
        assert state.players[0].alliances == {1}
        assert state.players[1].alliances == {0, 2}
        assert state.alliances[AllianceGroup.A] == {0, 1}
        assert state.alliances[AllianceGroup.B] == {1, 2}
        assert "Alliances have been forged!" in state.logs

    @pytest.mark.parametrize(
        "settings",
        [
            GameSettings(players_count=1),
            GameSettings(players_count=2, human_count=3),
            GameSettings(territory_compactness=2.0),
        ],
    )
    def test_rejects_bad_settings(self, settings):
        with pytest.raises(ValidationError):
            setup.new_game(settings)


class TestRestart:
    def test_same_board_new_dice_stream(self):
        state = setup.new_game(
            GameSettings(players_count=3, cell_count=50, seed="again"), gameplay_seed="old"
        )
        restarted = setup.restart_game(state, gameplay_seed="new")
        assert _board(restarted) == _board(setup.new_game(state.settings, gameplay_seed="x"))
        assert restarted.map_seed == "again"
        assert restarted.seed == "new"

    def test_from_settings_needs_a_map_seed(self):
        with pytest.raises(ValidationError, match="map seed"):
            setup.restart_game(GameSettings(players_count=2))

    def test_custom_map_games_cannot_restart(self):
        state = setup.game_from_custom_map(_small_map())
        with pytest.raises(ValidationError, match="random-map"):
            setup.restart_game(state)


def _small_map(first_turn: int | str = 1) -> CustomMap:
    return parse_custom_map(
        {
            "mapName": "Duel",
            "playerCount": 2,
            "cells": [
                {"q": 0, "r": 0, "owner": 0, "dice": 3},
                {"q": 1, "r": 0, "owner": 1, "dice": 2},
                {"q": 2, "r": 0, "owner": 1, "dice": 1},
                {"q": 0, "r": 1, "owner": -1, "dice": 1},
            ],
            "playerTypes": ["human", "ai"],
            "aiDifficulty": "hard",
            "firstTurn": first_turn,
        }
    )


class TestCustomMap:
    def test_cells_taken_verbatim(self):
        state = setup.game_from_custom_map(_small_map(), gameplay_seed="duel")
        assert _board(state) == [(0, 0, 0, 3), (1, 0, 1, 2), (2, 0, 1, 1), (0, 1, -1, 1)]
        assert state.players[1].cells == {1, 2}
        assert state.active == 1
        assert state.ai_difficulty == "hard"
        assert state.logs == ["Game started on map: Duel"]
        assert state.seed == "duel"

    def test_adjacency_rebuilt(self):
        state = setup.game_from_custom_map(_small_map())
        regions.validate_adjacency(state.cells)
        assert state.cells[0].neighbors == [1, 3]

    def test_random_first_turn_follows_map_name(self):
        first = setup.game_from_custom_map(_small_map("random"))
        second = setup.game_from_custom_map(_small_map("random"))
        assert first.active == second.active
        assert first.players[0].human and not first.players[1].human
