"""Rules layer for diceconquest.

Everything here operates purely in-memory on :class:`models.GameState`:

* Dataclasses describing cells, players and the game (see :mod:`models`).
* Enumerations, errors and rule constants (:mod:`enums`, :mod:`errors`,
  :mod:`rules_config`).
* Map generation (:mod:`mapgen`) and game creation (:mod:`setup`).
* Rule functions: regions, combat, turns, the AI and the move engine.

Persistence lives outside, in :mod:`diceconquest.savegame` and
:mod:`diceconquest.repository`.
"""

from . import (
    ai,
    combat,
    engine,
    enums,
    errors,
    mapgen,
    models,
    regions,
    rules_config,
    setup,
    turns,
)

__all__ = [
    "ai",
    "combat",
    "engine",
    "enums",
    "errors",
    "mapgen",
    "models",
    "regions",
    "rules_config",
    "setup",
    "turns",
]
