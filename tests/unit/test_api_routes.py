"""Integration tests for the FastAPI layer."""

from __future__ import annotations

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient

from diceconquest.api.app import create_app
from diceconquest.api.runtime import ApiState
from diceconquest.config import Settings
from diceconquest.domain.rules_config import DEFAULT_RULES
from diceconquest.repository import GameID, JsonGameRepository


def _make_app(tmp_path):
    def factory() -> ApiState:
        settings = Settings(data_dir=tmp_path, ai_max_steps=500)
        return ApiState(settings=settings)

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport


def _duel_map(first_turn: int = 0) -> dict:
    return {
        "mapName": "Duel",
        "playerCount": 2,
        "cells": [
            {"q": 0, "r": 0, "owner": 0, "dice": 8},
            {"q": 1, "r": 0, "owner": 1, "dice": 1},
            {"q": 2, "r": 0, "owner": 1, "dice": 1},
        ],
        "playerTypes": ["human", "ai"],
        "aiDifficulty": "normal",
        "firstTurn": first_turn,
    }


async def _import(client: AsyncClient, **overrides) -> dict:
    body = {"map": _duel_map(), "gameplay_seed": "api"}
    body.update(overrides)
    response = await client.post("/games/import", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _fund_reserve(tmp_path, game_id: int, amount: int) -> None:
    repo = JsonGameRepository(tmp_path)
    game = repo.load(GameID(game_id))
    game.players[0].reserve = amount
    repo.save(GameID(game_id), game)


@pytest.mark.asyncio
async def test_random_game_lifecycle(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["rules_version"] == DEFAULT_RULES.version

        response = await client.post(
            "/games",
            json={
                "players_count": 3,
                "human_count": 0,
                "cell_count": 30,
                "seed": "api-map",
                "gameplay_seed": "api-dice",
            },
        )
        assert response.status_code == 201
        created = response.json()
        game_id = created["id"]
        assert created["map_seed"] == "api-map"
        assert len(created["cells"]) == 30
        assert len(created["players"]) == 3

        response = await client.get("/games")
        assert [g["id"] for g in response.json()] == [game_id]

        response = await client.post(f"/games/{game_id}/ai/step")
        assert response.status_code == 200
        step = response.json()["steps"][0]
        assert step["kind"] in {"attack", "end_turn", "surrender"}

        response = await client.post(f"/games/{game_id}/ai/run", json={"max_steps": 50})
        assert response.status_code == 200
        assert 0 < len(response.json()["steps"]) <= 50

        response = await client.post(f"/games/{game_id}/restart", json={"gameplay_seed": "again"})
        assert response.status_code == 200
        restarted = response.json()
        assert [(c["q"], c["r"]) for c in restarted["cells"]] == [
            (c["q"], c["r"]) for c in created["cells"]
        ]
        assert restarted["move_count"] == 0

        response = await client.delete(f"/games/{game_id}")
        assert response.status_code == 204
        response = await client.get(f"/games/{game_id}")
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_human_moves_on_imported_map(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        game = await _import(client)
        game_id = game["id"]
        assert game["active"] == 0
        assert game["logs"][0] == "Game started on map: Duel"

        response = await client.post(
            f"/games/{game_id}/attack", json={"from_id": 0, "to_id": 2}
        )
        assert response.status_code == 409

        response = await client.post(
            f"/games/{game_id}/attack", json={"from_id": 0, "to_id": 1}
        )
        assert response.status_code == 200
        payload = response.json()
        assert payload["attack"]["attacker_won"] is True
        assert payload["game"]["cells"][1]["owner"] == 0
        assert payload["game"]["cells"][1]["dice"] == 7

        response = await client.post(f"/games/{game_id}/ai/step")
        assert response.status_code == 409

        response = await client.post(f"/games/{game_id}/end-turn")
        assert response.status_code == 200
        assert response.json()["active"] == 1

        response = await client.post(f"/games/{game_id}/end-turn")
        assert response.status_code == 409

        response = await client.post(f"/games/{game_id}/ai/run", json={})
        assert response.status_code == 200
        after = response.json()["game"]
        assert after["phase"] == "victory" or after["active"] == 0


@pytest.mark.asyncio
async def test_paratroop_and_export(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        game_id = (await _import(client))["id"]

        response = await client.get(f"/games/{game_id}/paratroop/targets")
        assert response.json() == []
        response = await client.post(f"/games/{game_id}/paratroop", json={"target_id": 2})
        assert response.status_code == 409

        _fund_reserve(tmp_path, game_id, DEFAULT_RULES.paratroop.reserve_cost)

        response = await client.get(f"/games/{game_id}/paratroop/targets")
        assert response.status_code == 200
        assert response.json() == [1, 2]

        response = await client.post(f"/games/{game_id}/paratroop", json={"target_id": 2})
        assert response.status_code == 200
        payload = response.json()
        assert payload["attack"]["paratroop"] is True
        assert payload["attack"]["attacker_won"] is True
        assert payload["game"]["players"][0]["reserve"] == 0

        response = await client.get(f"/games/{game_id}/export", params={"name": "Copy"})
        assert response.status_code == 200
        exported = response.json()
        assert exported["mapName"] == "Copy"
        assert exported["playerTypes"] == ["human", "ai"]
        assert [c["owner"] for c in exported["cells"]] == [0, 1, 0]


@pytest.mark.asyncio
async def test_error_mapping(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/games/42")
        assert response.status_code == 404

        broken = _duel_map()
        broken["cells"].append({"q": 0, "r": 0, "owner": 0, "dice": 1})
        response = await client.post("/games/import", json={"map": broken})
        assert response.status_code == 422
        assert "duplicate cell" in response.json()["detail"]

        incomplete = _duel_map()
        del incomplete["aiDifficulty"]
        response = await client.post("/games/import", json={"map": incomplete})
        assert response.status_code == 422
        assert "aiDifficulty" in response.json()["detail"]

        response = await client.post("/games", json={"players_count": 2, "human_count": 3})
        assert response.status_code == 422

        game_id = (await _import(client))["id"]
        response = await client.post(f"/games/{game_id}/restart", json={})
        assert response.status_code == 422

        response = await client.get("/rules")
        assert response.status_code == 200
        assert "map" in response.json()


@pytest.mark.asyncio
async def test_overlapping_requests_are_serialised(tmp_path):
    app, transport = _make_app(tmp_path)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.post(
            "/games",
            json={
                "players_count": 4,
                "human_count": 0,
                "cell_count": 80,
                "seed": "overlap",
                "gameplay_seed": "old",
            },
        )
        game_id = response.json()["id"]

        run, restart = await asyncio.gather(
            client.post(f"/games/{game_id}/ai/run", json={}),
            client.post(f"/games/{game_id}/restart", json={"gameplay_seed": "restarted"}),
        )
        assert run.status_code == 200
        assert restart.status_code == 200

        assert JsonGameRepository(tmp_path).load(GameID(game_id)).seed == "restarted"


def test_game_lock_is_shared_per_game(tmp_path):
    state = ApiState(settings=Settings(data_dir=tmp_path))
    assert state.game_lock(1) is state.game_lock(1)
    assert state.game_lock(1) is not state.game_lock(2)
