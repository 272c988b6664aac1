"""Connected-region discovery and the reserve-capacity invariant.

A player's *largest region* is the biggest set of its cells connected through
same-owner adjacency. It sets both the end-of-turn income and the hard cap on
the reserve: ``reserve <= largest_region_size`` must hold after every public
mutation. :func:`recompute_all_regions` is the single place where that cap is
enforced; excess reserve is destroyed, not carried over.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .errors import InvariantViolation
from .models import Cell, CellID, GameState, Player
from .rules_config import DEFAULT_RULES, RulesConfig

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Region:
    """A maximal connected set of same-owner cells."""

    size: int = 0
    cells: set[CellID] = field(default_factory=set)
    total_dice: int = 0


def collect_regions(player: Player, cells: Sequence[Cell]) -> list[Region]:
    """Flood-fill every connected component of ``player``'s cells.

    Components are returned in encounter order (ascending cell id of the
    first unvisited seed).
    """

    visited: set[CellID] = set()
    regions: list[Region] = []

    for start in sorted(player.cells):
        if start in visited:
            continue
        component: set[CellID] = set()
        stack = [start]
        visited.add(start)
        while stack:
            current = stack.pop()
            component.add(current)
            for neighbor_id in cells[current].neighbors:
                if neighbor_id not in visited and cells[neighbor_id].owner == player.id:
                    visited.add(neighbor_id)
                    stack.append(neighbor_id)
        regions.append(
            Region(
                size=len(component),
                cells=component,
                total_dice=sum(cells[cid].dice for cid in component),
            )
        )
    return regions


def find_largest_region(player: Player, cells: Sequence[Cell]) -> Region:
    """Return the player's largest region.

    Ties on size are broken by total dice (descending), then encounter order.
    """

    best: Region | None = None
    for region in collect_regions(player, cells):
        if best is None or (region.size, region.total_dice) > (best.size, best.total_dice):
            best = region
    return best or Region()


def refresh_alive(state: GameState) -> None:
    """Mark players without cells as dead. Dead players never come back."""

    for player in state.players:
        if player.alive and not player.cells:
            player.alive = False


def recompute_all_regions(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Recompute every player's largest region and clamp reserves to it."""

    for player in state.players:
        if player.alive:
            region = find_largest_region(player, state.cells)
            player.largest_region_size = region.size
            player.largest_region_cells = region.cells
        else:
            player.largest_region_size = 0
            player.largest_region_cells = set()

        if player.reserve > player.largest_region_size:
            burned = player.reserve - player.largest_region_size
            player.reserve = player.largest_region_size
            if player.alive:
                state.log(
                    f"{player.name}'s largest region shrank to {player.largest_region_size}: "
                    f"{burned} reserve dice burned."
                )
    update_totals(state)


def update_totals(state: GameState) -> None:
    """Refresh the reporting-only ``total_dice`` figure of each player."""

    for player in state.players:
        if player.alive:
            player.total_dice = sum(state.cells[cid].dice for cid in player.cells) + player.reserve
        else:
            player.total_dice = 0


def check_invariants(state: GameState, rules: RulesConfig = DEFAULT_RULES) -> None:
    """Verify the reserve cap and ownership bookkeeping.

    In strict mode any violation raises :class:`InvariantViolation`; otherwise
    the anomaly is logged and the reserve is clamped.
    """

    for player in state.players:
        if player.reserve > player.largest_region_size:
            msg = (
                f"player {player.id} reserve {player.reserve} exceeds "
                f"largest region {player.largest_region_size}"
            )
            if rules.strict_invariants:
                raise InvariantViolation(msg)
            logger.warning("invariant violated: %s; clamping", msg)
            player.reserve = player.largest_region_size

        for cid in player.cells:
            if state.cells[cid].owner != player.id:
                msg = f"cell {cid} listed for player {player.id} but owned by {state.cells[cid].owner}"
                if rules.strict_invariants:
                    raise InvariantViolation(msg)
                logger.warning("invariant violated: %s", msg)


def validate_adjacency(cells: Sequence[Cell]) -> None:
    """Raise :class:`InvariantViolation` unless adjacency is symmetric and in range."""

    count = len(cells)
    for index, cell in enumerate(cells):
        if cell.id != index:
            raise InvariantViolation(f"cell at index {index} has id {cell.id}")
        for neighbor_id in cell.neighbors:
            if not 0 <= neighbor_id < count:
                raise InvariantViolation(f"cell {cell.id} lists missing neighbor {neighbor_id}")
            if neighbor_id == cell.id:
                raise InvariantViolation(f"cell {cell.id} lists itself as a neighbor")
            if cell.id not in cells[neighbor_id].neighbors:
                raise InvariantViolation(
                    f"adjacency {cell.id}->{neighbor_id} has no reverse edge"
                )
