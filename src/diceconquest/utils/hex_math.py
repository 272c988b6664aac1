"""
Hexagonal coordinate mathematics for the diceconquest map.

Cells are stored with axial coordinates and this module provides the handful
of operations the engine needs:
- Distance between two hexes (paratroop range, conquest start placement)
- The six adjacent hexes (map growth, adjacency rebuilding)
- All hexes within a range

Coordinate Systems:
-------------------
1. Axial Coordinates (q, r) - for storage and representation
   - q: column coordinate
   - r: row coordinate

2. Cube Coordinates (x, y, z) - for distance calculations
   - constraint x + y + z = 0
   - distance is max(|dx|, |dy|, |dz|)
   - conversion: x = q, z = r, y = -x - z

References:
-----------
https://www.redblobgames.com/grids/hexagons/
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class HexCoord:
    """
    A hexagonal coordinate in the axial system.

    Example:
        >>> hex_distance(HexCoord(0, 0), HexCoord(1, 0))
        1
    """

    q: int
    r: int


def axial_to_cube(coord: HexCoord) -> tuple[int, int, int]:
    """
    Convert axial coordinates (q, r) to cube coordinates (x, y, z).

    Example:
        >>> axial_to_cube(HexCoord(q=1, r=2))
        (1, -3, 2)
    """
    x = coord.q
    z = coord.r
    y = -x - z
    return x, y, z


def hex_distance(a: HexCoord, b: HexCoord) -> int:
    """
    Number of hex steps between two hexes.

    Example:
        >>> hex_distance(HexCoord(q=0, r=0), HexCoord(q=2, r=1))
        3
    """
    ax, ay, az = axial_to_cube(a)
    bx, by, bz = axial_to_cube(b)
    return max(abs(ax - bx), abs(ay - by), abs(az - bz))


# Direction vectors for the 6 neighbors in axial coordinates. The order is
# part of map determinism: adjacency lists are built in this order.
NEIGHBOR_DIRECTIONS: tuple[tuple[int, int], ...] = (
    (1, 0),  # East
    (1, -1),  # Northeast
    (0, -1),  # Northwest
    (-1, 0),  # West
    (-1, 1),  # Southwest
    (0, 1),  # Southeast
)


def hex_neighbors(coord: HexCoord) -> list[HexCoord]:
    """
    The 6 hexes adjacent to ``coord``, in :data:`NEIGHBOR_DIRECTIONS` order.

    Example:
        >>> HexCoord(q=1, r=0) in hex_neighbors(HexCoord(q=0, r=0))
        True
    """
    return [HexCoord(q=coord.q + dq, r=coord.r + dr) for dq, dr in NEIGHBOR_DIRECTIONS]


def hexes_in_range(center: HexCoord, n: int) -> list[HexCoord]:
    """
    All hexes within distance ``n`` of ``center`` (inclusive).

    The number of hexes follows the formula 3n^2 + 3n + 1.

    Raises:
        ValueError: If n is negative
    """
    if n < 0:
        msg = f"Range n must be non-negative, got {n}"
        raise ValueError(msg)

    cx, _, cz = axial_to_cube(center)
    hexes = []
    for dx in range(-n, n + 1):
        for dy in range(max(-n, -dx - n), min(n, -dx + n) + 1):
            dz = -dx - dy
            hexes.append(HexCoord(q=cx + dx, r=cz + dz))
    return hexes
