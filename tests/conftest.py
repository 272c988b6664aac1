"""Pytest configuration to ensure the `src` package layout is importable.

This adds the `src/` directory to `sys.path` so tests can import the
`diceconquest` package without requiring an editable install in CI. It also
provides ``make_board`` for hand-built positions.
"""

import sys
from pathlib import Path

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from diceconquest.domain import mapgen, regions  # noqa: E402
from diceconquest.domain import models as dm  # noqa: E402
from diceconquest.domain.enums import AiDifficulty  # noqa: E402
from diceconquest.utils.hex_math import HexCoord  # noqa: E402
from diceconquest.utils.rng import SeededRng  # noqa: E402


def build_board(
    layout: list[tuple[int, int, int, int]],
    *,
    players: int = 2,
    humans: tuple[int, ...] = (),
    active: int = 0,
    seed: str = "board",
    difficulty: AiDifficulty = AiDifficulty.NORMAL,
    options: dm.GameOptions = dm.GameOptions(),
) -> dm.GameState:
    """Build a state from ``(q, r, owner, dice)`` rows; cell ids follow row order."""

    cells = mapgen.build_cells(HexCoord(q, r) for q, r, _, _ in layout)
    for cell, (_, _, owner, dice) in zip(cells, layout):
        cell.owner = dm.PlayerID(owner)
        cell.dice = dice
    roster = [
        dm.Player(id=dm.PlayerID(i), human=i in humans, name=f"P{i}") for i in range(players)
    ]
    for cell in cells:
        if cell.owner >= 0:
            roster[cell.owner].cells.add(cell.id)
    state = dm.GameState(
        cells=cells,
        players=roster,
        active=dm.PlayerID(active),
        seed=seed,
        rng=SeededRng(seed),
        ai_difficulty=difficulty,
        options=options,
    )
    regions.refresh_alive(state)
    regions.recompute_all_regions(state)
    return state


@pytest.fixture(scope="session")
def make_board():
    return build_board
