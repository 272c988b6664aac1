"""Utility functions for the diceconquest engine."""

from diceconquest.utils.rng import DiceRoll, SeededRng, generate_seed, seed_hash

__all__ = [
    "DiceRoll",
    "SeededRng",
    "generate_seed",
    "seed_hash",
]
