"""Tests for the deterministic RNG.

Tests cover:
- Determinism (same seed -> same stream)
- Resuming a stream from ``(seed, draws)``
- Ranges of every helper
- Property-based tests
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from diceconquest.utils.rng import DiceRoll, SeededRng, generate_seed, seed_hash


class TestSeedHash:
    """Tests for seed_hash."""

    def test_is_stable(self):
        assert seed_hash("abc") == seed_hash("abc")

    def test_is_order_sensitive(self):
        assert seed_hash("abc") != seed_hash("acb")

    def test_empty_string_is_valid(self):
        assert 0 <= seed_hash("") < 2**32

    @given(st.text())
    def test_fits_in_32_bits(self, text):
        assert 0 <= seed_hash(text) < 2**32


class TestGenerateSeed:
    def test_seeds_are_unique(self):
        seeds = {generate_seed() for _ in range(50)}
        assert len(seeds) == 50

    def test_seed_shape(self):
        millis, suffix = generate_seed().split("-")
        assert millis.isdigit()
        assert len(suffix) == 9


class TestSeededRng:
    """Tests for the SeededRng stream."""

    def test_same_seed_same_stream(self):
        first = SeededRng("map-1")
        second = SeededRng("map-1")
        assert [first.random() for _ in range(20)] == [second.random() for _ in range(20)]

    def test_different_seeds_differ(self):
        first = SeededRng("map-1")
        second = SeededRng("map-2")
        assert [first.random() for _ in range(5)] != [second.random() for _ in range(5)]

    def test_draws_are_counted(self):
        rng = SeededRng("count")
        rng.random()
        rng.randint(1, 6)
        rng.choice([1, 2, 3])
        assert rng.draws == 3

    def test_roll_consumes_one_draw_per_die(self):
        rng = SeededRng("dice")
        rng.roll(5)
        assert rng.draws == 5

    def test_resume_matches_uninterrupted_stream(self):
        original = SeededRng("resume")
        for _ in range(17):
            original.random()
        resumed = SeededRng("resume", draws=original.draws)
        assert [original.random() for _ in range(10)] == [resumed.random() for _ in range(10)]

    def test_negative_draws_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            SeededRng("x", draws=-1)

    def test_randint_rejects_inverted_bounds(self):
        with pytest.raises(ValueError, match="cannot be greater"):
            SeededRng("x").randint(5, 1)

    def test_choice_rejects_empty(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            SeededRng("x").choice([])

    def test_shuffle_is_in_place_permutation(self):
        items = list(range(30))
        result = SeededRng("shuffle").shuffle(items)
        assert result is items
        assert sorted(items) == list(range(30))

    def test_shuffle_is_deterministic(self):
        assert SeededRng("s").shuffle(list(range(10))) == SeededRng("s").shuffle(list(range(10)))

    def test_roll_zero_dice(self):
        assert SeededRng("x").roll(0) == DiceRoll(values=(), total=0)

    def test_roll_negative_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            SeededRng("x").roll(-1)

    @given(seed=st.text(max_size=20), count=st.integers(min_value=1, max_value=8))
    def test_roll_properties(self, seed, count):
        roll = SeededRng(seed).roll(count)
        assert roll.count == count
        assert all(1 <= v <= 6 for v in roll.values)
        assert roll.total == sum(roll.values)
        assert count <= roll.total <= 6 * count

    @given(seed=st.text(max_size=20))
    def test_random_in_unit_interval(self, seed):
        rng = SeededRng(seed)
        for _ in range(20):
            assert 0.0 <= rng.random() < 1.0

    @given(
        seed=st.text(max_size=10),
        low=st.integers(min_value=-50, max_value=50),
        span=st.integers(min_value=0, max_value=50),
    )
    def test_randint_inclusive_bounds(self, seed, low, span):
        value = SeededRng(seed).randint(low, low + span)
        assert low <= value <= low + span


class TestDiceRoll:
    def test_average(self):
        assert DiceRoll(values=(2, 4), total=6).average == 3.0

    def test_average_of_nothing(self):
        assert DiceRoll(values=(), total=0).average == 0.0
