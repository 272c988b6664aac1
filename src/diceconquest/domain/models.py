"""Dataclasses describing the diceconquest game state.

The state is an arena of cells indexed by dense integer ids. Players refer to
cells by id only (``cells``, ``largest_region_cells``), never by handle, so the
whole aggregate is acyclic and can be snapshotted by :mod:`diceconquest.savegame`.

Only ``owner`` and ``dice`` of a cell mutate after creation; topology
(``q``, ``r``, ``neighbors``) is fixed by the map generator or custom map.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NewType

from diceconquest.utils.hex_math import HexCoord
from diceconquest.utils.rng import SeededRng

from .enums import (
    AiDifficulty,
    AllianceGroup,
    DiceDisplay,
    GameMode,
    Personality,
    Phase,
)

# --- Strongly typed identifiers -------------------------------------------------

CellID = NewType("CellID", int)
PlayerID = NewType("PlayerID", int)

UNOWNED = PlayerID(-1)


# --- Core dataclasses -----------------------------------------------------------


@dataclass(slots=True)
class Cell:
    """One hex territory."""

    id: CellID
    q: int
    r: int
    owner: PlayerID = UNOWNED
    dice: int = 0
    neighbors: list[CellID] = field(default_factory=list)

    @property
    def coord(self) -> HexCoord:
        return HexCoord(self.q, self.r)

    @property
    def is_owned(self) -> bool:
        return self.owner != UNOWNED


@dataclass(slots=True)
class Player:
    """A civilisation, a human seat, or the barbarian faction."""

    id: PlayerID
    human: bool
    name: str
    color: str = "#888888"
    personality: Personality = Personality.NORMAL
    cells: set[CellID] = field(default_factory=set)
    reserve: int = 0
    alive: bool = True
    grudges: dict[PlayerID, int] = field(default_factory=dict)
    # traitor id -> own turns left to retaliate
    betrayals: dict[PlayerID, int] = field(default_factory=dict)
    alliances: set[PlayerID] = field(default_factory=set)
    largest_region_size: int = 0
    largest_region_cells: set[CellID] = field(default_factory=set)
    is_barbarian: bool = False
    total_dice: int = 0
    my_rolls_count: int = 0
    my_rolls_sum: int = 0
    opponent_rolls_count: int = 0
    opponent_rolls_sum: int = 0
    turn_dice_rolled: int = 0
    turn_sum_of_rolls: int = 0
    surrender_prompted: bool = False


@dataclass(frozen=True, slots=True)
class GameOptions:
    """Pass-through per-game options.

    Only ``corruption`` changes the rules; the rest is presentation timing
    carried for the client.
    """

    corruption: bool = False
    dice_display: DiceDisplay = DiceDisplay.PIPS
    notification_duration: float = 3.0
    show_dice_results: bool = True
    dice_result_duration: float = 1.5


@dataclass(frozen=True, slots=True)
class GameSettings:
    """Everything needed to create a new random-map game."""

    players_count: int = 4
    human_count: int = 1
    cell_count: int = 120
    territory_compactness: float = 0.5
    water_level: float = 0.0
    ai_difficulty: AiDifficulty = AiDifficulty.NORMAL
    game_mode: GameMode = GameMode.CLASSIC
    seed: str | None = None
    # player id -> alliance groups the player belongs to
    alliances: dict[int, tuple[AllianceGroup, ...]] | None = None
    options: GameOptions = GameOptions()


@dataclass(frozen=True, slots=True)
class PendingAttack:
    """An attack declared by the presentation layer but not yet rolled."""

    from_id: CellID
    to_id: CellID


@dataclass(slots=True)
class GameState:
    """Root aggregate representing an entire game."""

    cells: list[Cell]
    players: list[Player]
    active: PlayerID
    seed: str
    rng: SeededRng
    map_seed: str = ""
    turn: float = 1.0
    phase: Phase = Phase.PLAY
    logs: list[str] = field(default_factory=list)
    ai_difficulty: AiDifficulty = AiDifficulty.NORMAL
    game_mode: GameMode = GameMode.CLASSIC
    alliances: dict[AllianceGroup, set[PlayerID]] = field(
        default_factory=lambda: {AllianceGroup.A: set(), AllianceGroup.B: set()}
    )
    options: GameOptions = GameOptions()
    pending_attack: PendingAttack | None = None
    last_attack: PendingAttack | None = None
    move_count: int = 0
    winner: PlayerID | None = None
    # random-map games only; needed to restart on the same board
    settings: GameSettings | None = None

    @property
    def active_player(self) -> Player:
        return self.players[self.active]

    def player(self, player_id: int) -> Player | None:
        """Return the player owning ``player_id`` or ``None`` for unowned/unknown ids."""

        if 0 <= player_id < len(self.players):
            return self.players[player_id]
        return None

    def cell_by_coord(self) -> dict[HexCoord, CellID]:
        return {cell.coord: cell.id for cell in self.cells}

    def alive_civilizations(self) -> list[Player]:
        return [p for p in self.players if p.alive and not p.is_barbarian]

    def log(self, message: str) -> None:
        self.logs.append(message)
