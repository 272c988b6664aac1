"""Hand-made map documents exchanged as camelCase JSON."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from diceconquest.domain.enums import AiDifficulty, PlayerType
from diceconquest.domain.errors import MapFormatError

if TYPE_CHECKING:
    from diceconquest.domain.models import GameState

MAX_DICE = 8


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomMapCell(_CamelModel):
    q: int
    r: int
    owner: int = Field(ge=-1)
    dice: int = Field(ge=0, le=MAX_DICE)


class CustomMap(_CamelModel):
    """A playable map: cell layout, owners, dice and seats."""

    map_name: str = Field(min_length=1)
    player_count: int = Field(ge=2)
    cells: list[CustomMapCell] = Field(min_length=1)
    player_types: list[PlayerType]
    ai_difficulty: AiDifficulty
    first_turn: int | Literal["random"]

    @model_validator(mode="after")
    def _check_consistency(self) -> CustomMap:
        if len(self.player_types) != self.player_count:
            raise ValueError(
                f"playerTypes lists {len(self.player_types)} seats for {self.player_count} players"
            )
        if isinstance(self.first_turn, int) and not 0 <= self.first_turn < self.player_count:
            raise ValueError(f"firstTurn {self.first_turn} is not a player")
        seen: set[tuple[int, int]] = set()
        for cell in self.cells:
            key = (cell.q, cell.r)
            if key in seen:
                raise ValueError(f"duplicate cell at q={cell.q}, r={cell.r}")
            seen.add(key)
            if cell.owner >= self.player_count:
                raise ValueError(f"cell at q={cell.q}, r={cell.r} has unknown owner {cell.owner}")
            if cell.owner >= 0 and cell.dice < 1:
                raise ValueError(f"owned cell at q={cell.q}, r={cell.r} has no dice")
        return self

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def parse_custom_map(data: str | bytes | dict[str, Any]) -> CustomMap:
    """Validate a custom map document.

    Raises:
        MapFormatError: If the document is not JSON, misses required fields
            or is internally inconsistent.
    """

    try:
        if isinstance(data, (str, bytes)):
            return CustomMap.model_validate_json(data)
        return CustomMap.model_validate(data)
    except pydantic.ValidationError as exc:
        raise MapFormatError(f"invalid custom map: {exc}") from exc
    except json.JSONDecodeError as exc:  # pragma: no cover - pydantic reports malformed JSON itself
        raise MapFormatError(f"invalid custom map: {exc}") from exc


def export_custom_map(
    state: GameState, name: str, *, first_turn: int | Literal["random"] = "random"
) -> CustomMap:
    """Describe the current board as a custom map.

    Barbarian territory is exported as unowned land.
    """

    seats = [p for p in state.players if not p.is_barbarian]
    seat_ids = {p.id for p in seats}
    return CustomMap(
        map_name=name,
        player_count=len(seats),
        cells=[
            CustomMapCell(
                q=cell.q,
                r=cell.r,
                owner=cell.owner if cell.owner in seat_ids else -1,
                dice=cell.dice,
            )
            for cell in state.cells
        ],
        player_types=[PlayerType.HUMAN if p.human else PlayerType.AI for p in seats],
        ai_difficulty=state.ai_difficulty,
        first_turn=first_turn,
    )
