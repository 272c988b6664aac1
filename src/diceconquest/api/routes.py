"""HTTP routes for the diceconquest API."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from diceconquest.api.runtime import ApiState
from diceconquest.domain import models as dm
from diceconquest.domain.enums import AiDifficulty, AllianceGroup, DiceDisplay, GameMode
from diceconquest.domain.errors import IllegalMoveError, SeedMissingError, ValidationError
from diceconquest.repository import GameID
from diceconquest.schemas import parse_custom_map

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


@contextmanager
def _game_errors() -> Iterator[None]:
    """Map domain failures onto HTTP status codes."""

    try:
        yield
    except FileNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="game not found") from exc
    except IllegalMoveError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (SeedMissingError, ValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc


class GameSummary(BaseModel):
    id: int
    map_seed: str
    game_mode: str
    ai_difficulty: str
    turn: int
    active: int
    phase: str
    winner: int | None
    move_count: int
    cell_count: int
    alive_players: int


class CellView(BaseModel):
    id: int
    q: int
    r: int
    owner: int
    dice: int
    neighbors: list[int]


class PlayerView(BaseModel):
    id: int
    name: str
    color: str
    human: bool
    alive: bool
    is_barbarian: bool
    cell_count: int
    reserve: int
    largest_region_size: int
    total_dice: int
    alliances: list[int]


class GameDetail(GameSummary):
    cells: list[CellView]
    players: list[PlayerView]
    logs: list[str]


class AttackSummary(BaseModel):
    from_id: int | None
    to_id: int
    attacker_id: int
    defender_id: int
    attacker_rolls: list[int]
    attacker_total: int
    defender_rolls: list[int]
    defender_total: int
    attacker_won: bool
    betrayal: bool
    paratroop: bool


class AttackResponse(BaseModel):
    attack: AttackSummary
    game: GameDetail


class StepSummary(BaseModel):
    player_id: int
    kind: str
    attack: AttackSummary | None
    next_active: int | None


class AiStepResponse(BaseModel):
    steps: list[StepSummary]
    game: GameDetail


class GameOptionsPayload(BaseModel):
    corruption: bool = False
    dice_display: DiceDisplay = DiceDisplay.PIPS
    notification_duration: float = Field(default=3.0, ge=0.0)
    show_dice_results: bool = True
    dice_result_duration: float = Field(default=1.5, ge=0.0)

    def to_domain(self) -> dm.GameOptions:
        return dm.GameOptions(**self.model_dump())


class CreateGameRequest(BaseModel):
    players_count: int = Field(default=4, ge=2, le=8)
    human_count: int = Field(default=1, ge=0, le=8)
    cell_count: int = Field(default=120, ge=2, le=1000)
    territory_compactness: float = Field(default=0.5, ge=0.0, le=1.0)
    water_level: float = Field(default=0.0, ge=0.0, le=1.0)
    ai_difficulty: AiDifficulty = AiDifficulty.NORMAL
    game_mode: GameMode = GameMode.CLASSIC
    seed: str | None = None
    gameplay_seed: str | None = None
    alliances: dict[int, list[AllianceGroup]] | None = None
    options: GameOptionsPayload = Field(default_factory=GameOptionsPayload)

    def to_settings(self) -> dm.GameSettings:
        return dm.GameSettings(
            players_count=self.players_count,
            human_count=self.human_count,
            cell_count=self.cell_count,
            territory_compactness=self.territory_compactness,
            water_level=self.water_level,
            ai_difficulty=self.ai_difficulty,
            game_mode=self.game_mode,
            seed=self.seed,
            alliances=(
                {pid: tuple(groups) for pid, groups in self.alliances.items()}
                if self.alliances
                else None
            ),
            options=self.options.to_domain(),
        )


class ImportMapRequest(BaseModel):
    # camelCase custom map document, validated by parse_custom_map
    map: dict[str, Any]
    gameplay_seed: str | None = None
    options: GameOptionsPayload = Field(default_factory=GameOptionsPayload)


class AttackRequest(BaseModel):
    from_id: int = Field(ge=0)
    to_id: int = Field(ge=0)


class ParatroopRequest(BaseModel):
    target_id: int = Field(ge=0)


class SurrenderRequest(BaseModel):
    recipient_id: int | None = None


class AiRunRequest(BaseModel):
    max_steps: int | None = Field(default=None, ge=1)


class RestartRequest(BaseModel):
    gameplay_seed: str | None = None


def _detail(state: ApiState, game_id: GameID, game: dm.GameState) -> GameDetail:
    return GameDetail.model_validate(state.games.to_detail_dict(game_id, game))


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    return {
        "status": "ok",
        "rules_version": state.rules.version,
        "strict_invariants": state.rules.strict_invariants,
    }


@router.get("/rules")
async def rules(state: ApiStateDep) -> dict[str, object]:
    return asdict(state.rules)


@router.get("/games", response_model=list[GameSummary])
async def list_games(state: ApiStateDep) -> list[GameSummary]:
    return [
        GameSummary.model_validate(state.games.to_summary_dict(game_id, game))
        for game_id, game in state.games.list_games()
    ]


@router.post("/games", response_model=GameDetail, status_code=status.HTTP_201_CREATED)
async def create_game(request: CreateGameRequest, state: ApiStateDep) -> GameDetail:
    with _game_errors():
        game_id, game = state.games.create_game(
            request.to_settings(), gameplay_seed=request.gameplay_seed
        )
    return _detail(state, game_id, game)


@router.post("/games/import", response_model=GameDetail, status_code=status.HTTP_201_CREATED)
async def import_custom_map(request: ImportMapRequest, state: ApiStateDep) -> GameDetail:
    with _game_errors():
        game_id, game = state.games.import_custom_map(
            parse_custom_map(request.map),
            request.options.to_domain(),
            gameplay_seed=request.gameplay_seed,
        )
    return _detail(state, game_id, game)


@router.get("/games/{game_id}", response_model=GameDetail)
async def get_game(game_id: int, state: ApiStateDep) -> GameDetail:
    with _game_errors():
        game = state.games.get_game(GameID(game_id))
    return _detail(state, GameID(game_id), game)


@router.delete("/games/{game_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_game(game_id: int, state: ApiStateDep) -> Response:
    async with state.game_lock(game_id):
        with _game_errors():
            state.games.delete_game(GameID(game_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/games/{game_id}/export")
async def export_custom_map(
    game_id: int,
    state: ApiStateDep,
    name: Annotated[str | None, Query(min_length=1)] = None,
) -> dict[str, object]:
    with _game_errors():
        custom_map = state.games.export_custom_map(GameID(game_id), name)
    return custom_map.model_dump(mode="json", by_alias=True)


@router.post("/games/{game_id}/attack", response_model=AttackResponse)
async def attack(game_id: int, request: AttackRequest, state: ApiStateDep) -> AttackResponse:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game, result = state.games.attack(key, request.from_id, request.to_id)
    return AttackResponse(
        attack=AttackSummary.model_validate(state.games.to_attack_dict(result)),
        game=_detail(state, key, game),
    )


@router.get("/games/{game_id}/paratroop/targets")
async def paratroop_targets(game_id: int, state: ApiStateDep) -> list[int]:
    with _game_errors():
        return [int(cid) for cid in state.games.paratroop_targets(GameID(game_id))]


@router.post("/games/{game_id}/paratroop", response_model=AttackResponse)
async def paratroop(game_id: int, request: ParatroopRequest, state: ApiStateDep) -> AttackResponse:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game, result = state.games.paratroop(key, request.target_id)
    return AttackResponse(
        attack=AttackSummary.model_validate(state.games.to_attack_dict(result)),
        game=_detail(state, key, game),
    )


@router.post("/games/{game_id}/end-turn", response_model=GameDetail)
async def end_turn(game_id: int, state: ApiStateDep) -> GameDetail:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game = state.games.end_turn(key)
    return _detail(state, key, game)


@router.post("/games/{game_id}/surrender", response_model=GameDetail)
async def surrender(game_id: int, request: SurrenderRequest, state: ApiStateDep) -> GameDetail:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game = state.games.surrender(key, request.recipient_id)
    return _detail(state, key, game)


@router.get("/games/{game_id}/surrender-prompt")
async def surrender_prompt(game_id: int, state: ApiStateDep) -> dict[str, bool]:
    async with state.game_lock(game_id):
        with _game_errors():
            return {"prompt": state.games.surrender_prompt(GameID(game_id))}


@router.post("/games/{game_id}/ai/step", response_model=AiStepResponse)
async def ai_step(game_id: int, state: ApiStateDep) -> AiStepResponse:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game, outcome = state.games.ai_step(key)
    return AiStepResponse(
        steps=[StepSummary.model_validate(state.games.to_step_dict(outcome))],
        game=_detail(state, key, game),
    )


@router.post("/games/{game_id}/ai/run", response_model=AiStepResponse)
async def ai_run(game_id: int, request: AiRunRequest, state: ApiStateDep) -> AiStepResponse:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game, outcomes = await asyncio.to_thread(state.games.ai_run, key, request.max_steps)
    return AiStepResponse(
        steps=[StepSummary.model_validate(state.games.to_step_dict(o)) for o in outcomes],
        game=_detail(state, key, game),
    )


@router.post("/games/{game_id}/restart", response_model=GameDetail)
async def restart(game_id: int, request: RestartRequest, state: ApiStateDep) -> GameDetail:
    key = GameID(game_id)
    async with state.game_lock(game_id):
        with _game_errors():
            game = state.games.restart_game(key, gameplay_seed=request.gameplay_seed)
    return _detail(state, key, game)
