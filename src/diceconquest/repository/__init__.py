"""Persistence adapters for diceconquest."""

from diceconquest.repository.json_store import GameID, JsonGameRepository

__all__ = ["GameID", "JsonGameRepository"]
