"""Local HTTP surface for playing and inspecting games."""

from diceconquest.api.app import create_app

__all__ = ["create_app"]
