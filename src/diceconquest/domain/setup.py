"""Create games from settings or from a custom map document.

Two independent streams are involved. The *map stream* is seeded from the
map seed and decides layout, ownership, personalities, the first mover and
the turn-order bonus, so replaying a map seed reproduces the same board. The
*gameplay stream* drives dice and is freshly seeded on every start and
restart.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from diceconquest.utils.hex_math import HexCoord
from diceconquest.utils.rng import SeededRng, generate_seed

from . import mapgen, regions
from .enums import AllianceGroup, GameMode, Personality, PlayerType
from .errors import ValidationError
from .models import GameOptions, GameSettings, GameState, Player, PlayerID
from .rules_config import DEFAULT_RULES, RulesConfig
from .turns import apply_turn_order_bonus, next_alive_player

if TYPE_CHECKING:
    from diceconquest.schemas.custom_map import CustomMap

logger = logging.getLogger(__name__)

PLAYER_COLORS = (
    "#e74c3c",
    "#3498db",
    "#2ecc71",
    "#f1c40f",
    "#9b59b6",
    "#e67e22",
    "#1abc9c",
    "#ecf0f1",
)
BARBARIAN_COLOR = "#808080"
PERSONALITIES = (Personality.AGGRESSIVE, Personality.NORMAL, Personality.KIND)


def create_player(index: int, human: bool, map_rng: SeededRng) -> Player:
    return Player(
        id=PlayerID(index),
        human=human,
        name=f"Player {index + 1}" if human else f"AI {index + 1}",
        color=PLAYER_COLORS[index % len(PLAYER_COLORS)],
        personality=map_rng.choice(PERSONALITIES),
    )


def _validate_settings(settings: GameSettings) -> None:
    if settings.players_count < 2:
        raise ValidationError(f"at least two players are required, got {settings.players_count}")
    if not 0 <= settings.human_count <= settings.players_count:
        raise ValidationError(
            f"human_count must be within [0, {settings.players_count}], got {settings.human_count}"
        )
    if not 0.0 <= settings.territory_compactness <= 1.0:
        raise ValidationError(
            f"territory_compactness must be within [0, 1], got {settings.territory_compactness}"
        )


def _apply_alliances(
    state: GameState, alliances: dict[int, tuple[AllianceGroup, ...]] | None
) -> None:
    """Players sharing any group become mutual allies."""

    if not alliances:
        return
    for i, first in enumerate(state.players):
        for second in state.players[i + 1 :]:
            mine = set(alliances.get(first.id, ()))
            theirs = set(alliances.get(second.id, ()))
            if mine & theirs:
                first.alliances.add(second.id)
                second.alliances.add(first.id)
    for player_id, groups in sorted(alliances.items()):
        for group in groups:
            state.alliances[AllianceGroup(group)].add(PlayerID(player_id))
    state.log("Alliances have been forged!")


def new_game(
    settings: GameSettings,
    *,
    gameplay_seed: str | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> GameState:
    """Generate a fresh random-map game.

    Raises:
        ValidationError: If the settings are out of range.
    """

    _validate_settings(settings)
    map_seed = settings.seed or generate_seed()
    map_rng = SeededRng(map_seed)

    players = [
        create_player(i, i < settings.human_count, map_rng) for i in range(settings.players_count)
    ]
    cells = mapgen.generate_layout(
        settings.cell_count, settings.water_level, settings.players_count, map_rng, rules
    )

    if settings.game_mode == GameMode.CONQUEST:
        barbarian = create_player(settings.players_count, False, map_rng)
        barbarian.name = "Barbarians"
        barbarian.color = BARBARIAN_COLOR
        barbarian.personality = Personality.AGGRESSIVE
        barbarian.is_barbarian = True
        players.append(barbarian)
        mapgen.generate_conquest_map(cells, players, map_rng, rules)
        opening = "Conquest has begun!"
    else:
        mapgen.assign_owners(cells, players, map_rng, settings.territory_compactness)
        mapgen.distribute_starting_dice(cells, players, map_rng, rules)
        opening = "New game has started!"

    active = PlayerID(map_rng.randint(0, settings.players_count - 1))
    seed = gameplay_seed or generate_seed()
    state = GameState(
        cells=cells,
        players=players,
        active=active,
        seed=seed,
        rng=SeededRng(seed),
        map_seed=map_seed,
        ai_difficulty=settings.ai_difficulty,
        game_mode=settings.game_mode,
        options=settings.options,
        settings=replace(settings, seed=map_seed),
    )
    state.log(opening)
    apply_turn_order_bonus(state, map_rng, rules)
    _apply_alliances(state, settings.alliances)

    regions.recompute_all_regions(state, rules)
    logger.info(
        "new %s game: map seed %s, %d cells, %d players",
        settings.game_mode,
        map_seed,
        len(cells),
        len(players),
    )
    return state


def restart_game(
    source: GameState | GameSettings,
    map_seed: str | None = None,
    *,
    gameplay_seed: str | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> GameState:
    """Same board, fresh dice.

    ``source`` is either a running random-map game, whose settings and map
    seed are reused, or settings plus an explicit ``map_seed``.

    Raises:
        ValidationError: If no settings or map seed are available.
    """

    if isinstance(source, GameState):
        settings = source.settings
        map_seed = map_seed or source.map_seed
        if settings is None:
            raise ValidationError("only random-map games can be restarted")
    else:
        settings = source
        map_seed = map_seed or settings.seed
    if not map_seed:
        raise ValidationError("restarting needs the map seed")

    return new_game(
        replace(settings, seed=map_seed),
        gameplay_seed=gameplay_seed,
        rules=rules,
    )


def game_from_custom_map(
    custom_map: CustomMap,
    options: GameOptions = GameOptions(),
    *,
    alliances: dict[int, tuple[AllianceGroup, ...]] | None = None,
    gameplay_seed: str | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> GameState:
    """Start a classic game on a hand-made map.

    Cells are taken verbatim, adjacency is rebuilt from the ``(q, r)``
    coordinates and no bonus dice are dealt.
    """

    map_rng = SeededRng(custom_map.map_name)
    players = [
        create_player(i, custom_map.player_types[i] == PlayerType.HUMAN, map_rng)
        for i in range(custom_map.player_count)
    ]

    cells = mapgen.build_cells(HexCoord(c.q, c.r) for c in custom_map.cells)
    for cell, source in zip(cells, custom_map.cells):
        cell.owner = PlayerID(source.owner)
        cell.dice = source.dice
    for cell in cells:
        if 0 <= cell.owner < len(players):
            players[cell.owner].cells.add(cell.id)

    if custom_map.first_turn == "random":
        active = PlayerID(map_rng.randint(0, custom_map.player_count - 1))
    else:
        active = PlayerID(int(custom_map.first_turn))

    seed = gameplay_seed or generate_seed()
    state = GameState(
        cells=cells,
        players=players,
        active=active,
        seed=seed,
        rng=SeededRng(seed),
        map_seed=custom_map.map_name,
        ai_difficulty=custom_map.ai_difficulty,
        game_mode=GameMode.CLASSIC,
        options=options,
    )
    state.log(f"Game started on map: {custom_map.map_name}")
    _apply_alliances(state, alliances)
    regions.refresh_alive(state)
    if not state.active_player.alive:
        nxt = next_alive_player(state)
        if nxt is not None:
            state.active = nxt
    regions.recompute_all_regions(state, rules)
    return state

