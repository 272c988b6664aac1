"""Exception hierarchy for the diceconquest rules layer."""

from __future__ import annotations


class GameError(Exception):
    """Base class for every error raised by the rules layer."""


class ValidationError(GameError, ValueError):
    """Input rejected before any mutation; the game state is unchanged."""


class MapFormatError(ValidationError):
    """An imported custom map document is missing fields or is malformed."""


class IllegalMoveError(ValidationError):
    """A move that the rules do not allow in the current state."""


class SeedMissingError(ValidationError):
    """A saved game cannot be restored because its RNG seed is absent."""


class InvariantViolation(GameError):
    """A state that must never be observable (programming error)."""
