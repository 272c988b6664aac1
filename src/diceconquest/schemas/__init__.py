"""Document schemas exchanged with clients and files."""

from diceconquest.schemas.custom_map import (
    CustomMap,
    CustomMapCell,
    export_custom_map,
    parse_custom_map,
)

__all__ = ["CustomMap", "CustomMapCell", "export_custom_map", "parse_custom_map"]
