"""Enumerations used across the diceconquest domain."""

from __future__ import annotations

from enum import StrEnum


class Phase(StrEnum):
    """Game lifecycle; ``VICTORY`` is terminal."""

    PLAY = "play"
    VICTORY = "victory"


class Personality(StrEnum):
    """Hidden AI temperament; only biases target selection."""

    AGGRESSIVE = "aggressive"
    NORMAL = "normal"
    KIND = "kind"


class AiDifficulty(StrEnum):
    """Difficulty tier selecting the AI scoring strategy."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


class GameMode(StrEnum):
    """Classic (shared map) or conquest (single start cell vs barbarians)."""

    CLASSIC = "classic"
    CONQUEST = "conquest"


class AllianceGroup(StrEnum):
    """The two named alliance groups a player may join."""

    A = "A"
    B = "B"


class DiceDisplay(StrEnum):
    """Presentation-only dice rendering preference."""

    PIPS = "pips"
    DIGITS = "digits"


class PlayerType(StrEnum):
    """Seat type used by custom maps."""

    HUMAN = "human"
    AI = "ai"
