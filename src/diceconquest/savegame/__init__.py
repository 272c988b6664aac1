"""Save and load games as versioned JSON documents.

The gameplay stream is not serialised directly. A save records the gameplay
seed and how many values were drawn from it; loading re-seeds and
fast-forwards, so a restored game rolls exactly the dice the original would
have rolled.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from diceconquest.domain import regions
from diceconquest.domain import models as dm
from diceconquest.domain.enums import (
    AiDifficulty,
    AllianceGroup,
    DiceDisplay,
    GameMode,
    Personality,
    Phase,
)
from diceconquest.domain.errors import SeedMissingError
from diceconquest.domain.rules_config import DEFAULT_RULES
from diceconquest.utils.rng import SeededRng

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


class SavedCell(BaseModel):
    id: int
    q: int
    r: int
    owner: int
    dice: int
    neighbors: list[int]


class SavedPlayer(BaseModel):
    id: int
    human: bool
    name: str
    color: str
    personality: Personality = Personality.NORMAL
    cells: list[int]
    reserve: int = 0
    alive: bool = True
    grudges: dict[int, int] = Field(default_factory=dict)
    betrayals: dict[int, int] = Field(default_factory=dict)
    alliances: list[int] = Field(default_factory=list)
    is_barbarian: bool = False
    my_rolls_count: int = 0
    my_rolls_sum: int = 0
    opponent_rolls_count: int = 0
    opponent_rolls_sum: int = 0
    turn_dice_rolled: int = 0
    turn_sum_of_rolls: int = 0
    surrender_prompted: bool = False


class SavedOptions(BaseModel):
    corruption: bool = False
    dice_display: DiceDisplay = DiceDisplay.PIPS
    notification_duration: float = 3.0
    show_dice_results: bool = True
    dice_result_duration: float = 1.5


class SavedSettings(BaseModel):
    """Random-map parameters, kept so the game can be restarted."""

    players_count: int
    human_count: int
    cell_count: int
    territory_compactness: float
    water_level: float
    ai_difficulty: AiDifficulty
    game_mode: GameMode
    seed: str | None = None
    alliances: dict[int, list[AllianceGroup]] | None = None


class SavedGame(BaseModel):
    """Top-level save document."""

    format_version: int = FORMAT_VERSION
    rules_version: str = DEFAULT_RULES.version
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    name: str | None = None
    seed: str | None = None
    rng_draws: int = 0
    map_seed: str = ""
    turn: float = 1.0
    active: int
    phase: Phase = Phase.PLAY
    winner: int | None = None
    move_count: int = 0
    ai_difficulty: AiDifficulty = AiDifficulty.NORMAL
    game_mode: GameMode = GameMode.CLASSIC
    alliances: dict[AllianceGroup, list[int]] = Field(default_factory=dict)
    options: SavedOptions = Field(default_factory=SavedOptions)
    settings: SavedSettings | None = None
    cells: list[SavedCell]
    players: list[SavedPlayer]
    logs: list[str] = Field(default_factory=list)


def _snapshot_settings(settings: dm.GameSettings | None) -> SavedSettings | None:
    if settings is None:
        return None
    return SavedSettings(
        players_count=settings.players_count,
        human_count=settings.human_count,
        cell_count=settings.cell_count,
        territory_compactness=settings.territory_compactness,
        water_level=settings.water_level,
        ai_difficulty=settings.ai_difficulty,
        game_mode=settings.game_mode,
        seed=settings.seed,
        alliances=(
            {pid: list(groups) for pid, groups in settings.alliances.items()}
            if settings.alliances
            else None
        ),
    )


def snapshot_game(state: dm.GameState, *, name: str | None = None) -> SavedGame:
    """Capture ``state`` as a save document.

    A declared but unresolved attack is not saved.
    """

    return SavedGame(
        name=name,
        seed=state.seed,
        rng_draws=state.rng.draws,
        map_seed=state.map_seed,
        turn=state.turn,
        active=state.active,
        phase=state.phase,
        winner=state.winner,
        move_count=state.move_count,
        ai_difficulty=state.ai_difficulty,
        game_mode=state.game_mode,
        alliances={group: sorted(members) for group, members in state.alliances.items()},
        options=SavedOptions(
            corruption=state.options.corruption,
            dice_display=state.options.dice_display,
            notification_duration=state.options.notification_duration,
            show_dice_results=state.options.show_dice_results,
            dice_result_duration=state.options.dice_result_duration,
        ),
        settings=_snapshot_settings(state.settings),
        cells=[
            SavedCell(
                id=c.id, q=c.q, r=c.r, owner=c.owner, dice=c.dice, neighbors=list(c.neighbors)
            )
            for c in state.cells
        ],
        players=[
            SavedPlayer(
                id=p.id,
                human=p.human,
                name=p.name,
                color=p.color,
                personality=p.personality,
                cells=sorted(p.cells),
                reserve=p.reserve,
                alive=p.alive,
                grudges=dict(p.grudges),
                betrayals=dict(p.betrayals),
                alliances=sorted(p.alliances),
                is_barbarian=p.is_barbarian,
                my_rolls_count=p.my_rolls_count,
                my_rolls_sum=p.my_rolls_sum,
                opponent_rolls_count=p.opponent_rolls_count,
                opponent_rolls_sum=p.opponent_rolls_sum,
                turn_dice_rolled=p.turn_dice_rolled,
                turn_sum_of_rolls=p.turn_sum_of_rolls,
                surrender_prompted=p.surrender_prompted,
            )
            for p in state.players
        ],
        logs=list(state.logs),
    )


def _restore_settings(
    saved: SavedSettings | None, options: dm.GameOptions
) -> dm.GameSettings | None:
    if saved is None:
        return None
    return dm.GameSettings(
        players_count=saved.players_count,
        human_count=saved.human_count,
        cell_count=saved.cell_count,
        territory_compactness=saved.territory_compactness,
        water_level=saved.water_level,
        ai_difficulty=saved.ai_difficulty,
        game_mode=saved.game_mode,
        seed=saved.seed,
        alliances=(
            {pid: tuple(groups) for pid, groups in saved.alliances.items()}
            if saved.alliances
            else None
        ),
        options=options,
    )


def restore_game(saved: SavedGame) -> dm.GameState:
    """Rebuild a live game from a save document.

    Derived data (largest regions, dice totals) is recomputed rather than
    trusted.

    Raises:
        SeedMissingError: If the save carries no gameplay seed.
    """

    if not saved.seed:
        raise SeedMissingError("saved game has no gameplay seed")
    if saved.rules_version != DEFAULT_RULES.version:
        logger.warning(
            "restoring a game saved under rules %s with rules %s",
            saved.rules_version,
            DEFAULT_RULES.version,
        )

    options = dm.GameOptions(**saved.options.model_dump())
    alliances = {group: set() for group in AllianceGroup}
    for group, members in saved.alliances.items():
        alliances[group] = {dm.PlayerID(pid) for pid in members}

    state = dm.GameState(
        cells=[
            dm.Cell(
                id=dm.CellID(c.id),
                q=c.q,
                r=c.r,
                owner=dm.PlayerID(c.owner),
                dice=c.dice,
                neighbors=[dm.CellID(n) for n in c.neighbors],
            )
            for c in saved.cells
        ],
        players=[
            dm.Player(
                id=dm.PlayerID(p.id),
                human=p.human,
                name=p.name,
                color=p.color,
                personality=p.personality,
                cells={dm.CellID(cid) for cid in p.cells},
                reserve=p.reserve,
                alive=p.alive,
                grudges={dm.PlayerID(k): v for k, v in p.grudges.items()},
                betrayals={dm.PlayerID(k): v for k, v in p.betrayals.items()},
                alliances={dm.PlayerID(pid) for pid in p.alliances},
                is_barbarian=p.is_barbarian,
                my_rolls_count=p.my_rolls_count,
                my_rolls_sum=p.my_rolls_sum,
                opponent_rolls_count=p.opponent_rolls_count,
                opponent_rolls_sum=p.opponent_rolls_sum,
                turn_dice_rolled=p.turn_dice_rolled,
                turn_sum_of_rolls=p.turn_sum_of_rolls,
                surrender_prompted=p.surrender_prompted,
            )
            for p in saved.players
        ],
        active=dm.PlayerID(saved.active),
        seed=saved.seed,
        rng=SeededRng(saved.seed, saved.rng_draws),
        map_seed=saved.map_seed,
        turn=saved.turn,
        phase=saved.phase,
        logs=list(saved.logs),
        ai_difficulty=saved.ai_difficulty,
        game_mode=saved.game_mode,
        alliances=alliances,
        options=options,
        move_count=saved.move_count,
        winner=dm.PlayerID(saved.winner) if saved.winner is not None else None,
        settings=_restore_settings(saved.settings, options),
    )
    regions.validate_adjacency(state.cells)
    regions.recompute_all_regions(state)
    return state


def dump_game(state: dm.GameState, path: Path | str, *, name: str | None = None) -> Path:
    """Write ``state`` to a JSON save file."""

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(snapshot_game(state, name=name).model_dump_json(indent=2), encoding="utf-8")
    return target


def load_game(path: Path | str) -> dm.GameState:
    """Read a JSON save file written by :func:`dump_game`."""

    saved = SavedGame.model_validate_json(Path(path).read_bytes())
    if saved.format_version != FORMAT_VERSION:
        logger.warning(
            "loading save format %d with reader for format %d", saved.format_version, FORMAT_VERSION
        )
    return restore_game(saved)
