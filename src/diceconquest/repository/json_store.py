"""JSON-based repository for diceconquest games."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NewType

from pydantic import TypeAdapter

from diceconquest import savegame
from diceconquest.domain import models as dm

logger = logging.getLogger(__name__)

GameID = NewType("GameID", int)


class JsonGameRepository:
    """Persist games as JSON save documents on disk."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)
        self._adapter: TypeAdapter[savegame.SavedGame] = TypeAdapter(savegame.SavedGame)

    def _path_for(self, game_id: GameID) -> Path:
        return self.base_path / f"game_{int(game_id)}.json"

    def save(self, game_id: GameID, state: dm.GameState, *, name: str | None = None) -> Path:
        """Serialize a game to disk and return the snapshot path."""

        path = self._path_for(game_id)
        payload = self._adapter.dump_json(savegame.snapshot_game(state, name=name), indent=2)
        # readers never see a half-written snapshot
        staging = path.with_name(f"{path.name}.tmp")
        staging.write_bytes(payload)
        staging.replace(path)
        return path

    def load(self, game_id: GameID) -> dm.GameState:
        """Load a previously saved game.

        Raises:
            FileNotFoundError: If no game with ``game_id`` exists.
            SeedMissingError: If the snapshot has lost its gameplay seed.
        """

        path = self._path_for(game_id)
        data = path.read_bytes()
        return savegame.restore_game(self._adapter.validate_json(data))

    def list_games(self) -> list[GameID]:
        """Return all game ids currently persisted in the repository."""

        ids: list[GameID] = []
        prefix = "game_"
        suffix = ".json"
        for path in self.base_path.glob("game_*.json"):
            stem = path.name
            if stem.startswith(prefix) and stem.endswith(suffix):
                raw = stem[len(prefix) : -len(suffix)]
                try:
                    ids.append(GameID(int(raw)))
                except ValueError:
                    logger.warning("ignoring malformed save file name %s", path.name)
                    continue
        return sorted(ids, key=int)

    def delete(self, game_id: GameID) -> None:
        """Remove a game snapshot if it exists."""

        path = self._path_for(game_id)
        if path.exists():
            path.unlink()
