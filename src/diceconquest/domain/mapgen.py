"""Procedural hex-map generation and initial ownership.

The landmass grows from the origin hex by weighted frontier expansion, then
water is optionally carved out as random lakes. Only the largest remaining
component survives, so the playable map is always one contiguous landmass.
Cell ids are renumbered densely after carving.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Iterable, Sequence

from diceconquest.utils.hex_math import HexCoord, hex_distance, hex_neighbors
from diceconquest.utils.rng import SeededRng

from .errors import ValidationError
from .models import UNOWNED, Cell, CellID, Player
from .rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Landmass


def generate_layout(
    cell_count: int,
    water_level: float,
    players_count: int,
    rng: SeededRng,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[Cell]:
    """Grow a hex landmass and optionally carve lakes into it.

    The growth target is inflated with the water level so that carving still
    leaves a map close to ``cell_count``.

    Raises:
        ValidationError: If the inputs are out of range or the final map has
            fewer cells than players.
    """

    if cell_count < 1:
        raise ValidationError(f"cell_count must be positive, got {cell_count}")
    if not 0.0 <= water_level <= 1.0:
        raise ValidationError(f"water_level must be within [0, 1], got {water_level}")

    target = math.ceil(cell_count * (1 + water_level * rules.map.water_inflation))
    coords = _grow_landmass(target, rng, rules)
    cells = build_cells(coords)

    if water_level > 0:
        cells = add_water(cells, water_level, rng, rules)

    if len(cells) < players_count:
        raise ValidationError(
            f"map of {len(cells)} cells is too small for {players_count} players"
        )
    return cells


def _grow_landmass(target: int, rng: SeededRng, rules: RulesConfig) -> list[HexCoord]:
    placed: dict[HexCoord, None] = {}
    # insertion-ordered set
    frontier: dict[HexCoord, None] = {HexCoord(0, 0): None}

    while len(placed) < target and frontier:
        candidates = rng.shuffle(list(frontier))
        best: HexCoord | None = None
        best_score = -1
        for candidate in candidates:
            score = sum(1 for neighbor in hex_neighbors(candidate) if neighbor in placed)
            if score > best_score:
                best_score = score
                best = candidate
            if score >= rules.map.compact_score_threshold:
                break

        chosen = best if best is not None else candidates[0]
        del frontier[chosen]
        placed[chosen] = None
        for neighbor in hex_neighbors(chosen):
            if neighbor not in placed:
                frontier[neighbor] = None

    return list(placed)


def build_cells(coords: Iterable[HexCoord]) -> list[Cell]:
    """Create cells for ``coords`` and derive adjacency from axial coincidence."""

    cells = [Cell(id=CellID(index), q=coord.q, r=coord.r) for index, coord in enumerate(coords)]
    index_by_coord = {cell.coord: cell.id for cell in cells}
    if len(index_by_coord) != len(cells):
        raise ValidationError("duplicate coordinates in map layout")
    for cell in cells:
        for neighbor in hex_neighbors(cell.coord):
            neighbor_id = index_by_coord.get(neighbor)
            if neighbor_id is not None:
                cell.neighbors.append(neighbor_id)
    return cells


# ---------------------------------------------------------------------------
# Water


def find_connected_components(cells: Sequence[Cell], ids: set[CellID] | None = None) -> list[set[CellID]]:
    """Breadth-first components of the subgraph induced by ``ids`` (default: all)."""

    members = {cell.id for cell in cells} if ids is None else ids
    by_id = {cell.id: cell for cell in cells}
    visited: set[CellID] = set()
    components: list[set[CellID]] = []

    for cell in cells:
        if cell.id not in members or cell.id in visited:
            continue
        component = {cell.id}
        visited.add(cell.id)
        queue = deque([cell.id])
        while queue:
            current = queue.popleft()
            for neighbor_id in by_id[current].neighbors:
                if neighbor_id in members and neighbor_id not in visited:
                    visited.add(neighbor_id)
                    component.add(neighbor_id)
                    queue.append(neighbor_id)
        components.append(component)
    return components


def add_water(
    cells: list[Cell],
    water_level: float,
    rng: SeededRng,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[Cell]:
    """Carve random lakes and keep only the largest surviving landmass.

    Returns ``cells`` unchanged when nothing is carved or when the largest
    remaining component would fall below the minimum landmass fraction.
    """

    if water_level <= 0:
        return cells

    cell_count = len(cells)
    to_remove_count = math.floor(cell_count * water_level * rules.map.water_removal_fraction)
    if to_remove_count == 0:
        return cells

    by_id = {cell.id: cell for cell in cells}
    max_lake_size = math.ceil(water_level * rules.map.lake_size_factor)
    removed: set[CellID] = set()
    attempts = 0

    while len(removed) < to_remove_count and attempts < cell_count:
        attempts += 1
        start = rng.choice(cells)
        if start.id in removed:
            continue

        lake_size = rng.randint(1, max_lake_size)
        lake: list[CellID] = []
        queue = deque([start.id])
        seen = {start.id}
        while len(lake) < lake_size and queue:
            current = queue.popleft()
            lake.append(current)
            for neighbor_id in rng.shuffle(list(by_id[current].neighbors)):
                if len(lake) >= lake_size:
                    break
                if neighbor_id not in seen and neighbor_id not in removed:
                    seen.add(neighbor_id)
                    queue.append(neighbor_id)
        removed.update(lake)

    remaining = {cell.id for cell in cells} - removed
    islands = find_connected_components(cells, remaining)
    if not islands:
        logger.warning("water carving removed every cell; keeping the dry map")
        return cells

    largest = islands[0]
    for island in islands[1:]:
        if len(island) > len(largest):
            largest = island

    if len(largest) < cell_count * rules.map.min_landmass_fraction:
        logger.info(
            "water carving left %d of %d cells; keeping the dry map", len(largest), cell_count
        )
        return cells

    return renumber_cells(cells, largest)


def renumber_cells(cells: Sequence[Cell], keep: set[CellID]) -> list[Cell]:
    """Drop cells outside ``keep`` and remap ids and adjacency to ``0..n-1``."""

    new_ids: dict[CellID, CellID] = {}
    survivors: list[Cell] = []
    for cell in cells:
        if cell.id in keep:
            new_ids[cell.id] = CellID(len(survivors))
            survivors.append(
                Cell(
                    id=new_ids[cell.id],
                    q=cell.q,
                    r=cell.r,
                    owner=cell.owner,
                    dice=cell.dice,
                    neighbors=list(cell.neighbors),
                )
            )
    for cell in survivors:
        cell.neighbors = [new_ids[nid] for nid in cell.neighbors if nid in new_ids]
    return survivors


# ---------------------------------------------------------------------------
# Ownership


def _rebuild_player_cells(cells: Sequence[Cell], players: Sequence[Player]) -> None:
    for player in players:
        player.cells.clear()
    for cell in cells:
        if 0 <= cell.owner < len(players):
            players[cell.owner].cells.add(cell.id)


def assign_owners(
    cells: list[Cell],
    players: Sequence[Player],
    rng: SeededRng,
    compactness: float,
) -> None:
    """Classic mode: deal every cell to a player in round-robin order.

    Each player gets one random seed cell; afterwards, with probability
    ``compactness`` a player grows from its own frontier, otherwise it takes a
    random unowned cell.
    """

    if not players:
        return
    unowned = rng.shuffle([cell.id for cell in cells])
    for player in players:
        if not unowned:
            break
        cells[unowned.pop()].owner = player.id

    current = 0
    while unowned:
        found = False
        if rng.random() < compactness:
            own = rng.shuffle([cell.id for cell in cells if cell.owner == players[current].id])
            frontier = [
                nid for cid in own for nid in cells[cid].neighbors if cells[nid].owner == UNOWNED
            ]
            if frontier:
                target = rng.choice(frontier)
                cells[target].owner = players[current].id
                unowned.remove(target)
                found = True

        if not found:
            cells[unowned.pop()].owner = players[current].id
        current = (current + 1) % len(players)

    _rebuild_player_cells(cells, players)


def distribute_starting_dice(
    cells: list[Cell],
    players: Sequence[Player],
    rng: SeededRng,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """One die per owned cell plus one extra die per cell spread at random."""

    for cell in cells:
        cell.dice = 1 if cell.is_owned else 0

    for player in players:
        owned = sorted(player.cells)
        if not owned:
            continue
        pool = len(owned)
        for _ in range(rules.map.starting_dice_guard):
            if pool <= 0:
                break
            cell = cells[rng.choice(owned)]
            if cell.dice < rules.dice.max_dice:
                cell.dice += 1
                pool -= 1
        if pool > 0:
            logger.warning("starting dice guard tripped for player %s (%d unplaced)", player.id, pool)


def generate_conquest_map(
    cells: list[Cell],
    players: Sequence[Player],
    rng: SeededRng,
    rules: RulesConfig = DEFAULT_RULES,
) -> None:
    """Conquest mode: far-apart single-cell civilisations in a barbarian world."""

    civilizations = [p for p in players if not p.is_barbarian]
    barbarian = next((p for p in players if p.is_barbarian), None)
    barbarian_id = barbarian.id if barbarian is not None else UNOWNED

    starts: list[Cell] = []
    potential = rng.shuffle(list(cells))
    if potential:
        starts.append(potential.pop())
    for _ in range(1, len(civilizations)):
        if not potential:
            break
        sample_size = rules.map.conquest_candidate_sample
        candidates = (
            rng.shuffle(list(potential))[:sample_size] if len(potential) > sample_size else potential
        )
        best: Cell | None = None
        best_distance = -1
        for candidate in candidates:
            nearest = min(hex_distance(candidate.coord, start.coord) for start in starts)
            if nearest > best_distance:
                best_distance = nearest
                best = candidate
        if best is not None:
            starts.append(best)
            potential = [cell for cell in potential if cell.id != best.id]

    for cell in cells:
        cell.owner = barbarian_id
        cell.dice = rng.randint(1, rules.map.barbarian_start_dice_max)

    for player, start in zip(civilizations, starts, strict=False):
        cells[start.id].owner = player.id
        cells[start.id].dice = rules.map.conquest_start_dice

    _rebuild_player_cells(cells, players)
