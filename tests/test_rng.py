"""Tests for tuner_core.rng -- the explicit random context."""

import numpy as np
import pytest

from tuner_core.rng import RandomContext


class TestReproducibility:

    def test_same_seed_same_sequence(self):
        a = RandomContext(42)
        b = RandomContext.from_seed(42)
        assert [a.rand_double(0, 1) for _ in range(20)] == [b.rand_double(0, 1) for _ in range(20)]

    def test_different_seeds_diverge(self):
        a = RandomContext(1)
        b = RandomContext(2)
        assert [a.rand_int(0, 1000) for _ in range(20)] != [b.rand_int(0, 1000) for _ in range(20)]


class TestRanges:

    def test_rand_double_bounds(self):
        rng = RandomContext(3)
        values = [rng.rand_double(-0.49, 2.49) for _ in range(500)]
        assert all(-0.49 <= v <= 2.49 for v in values)

    def test_rand_float_is_single_precision(self):
        rng = RandomContext(4)
        value = rng.rand_float(1.0, 150.0)
        assert isinstance(value, np.float32)
        assert 1.0 <= value <= 150.0

    def test_rand_int_is_inclusive(self):
        rng = RandomContext(5)
        values = {rng.rand_int(0, 3) for _ in range(400)}
        assert values == {0, 1, 2, 3}

    def test_rand_int_single_value(self):
        assert RandomContext(6).rand_int(7, 7) == 7

    def test_rand_int_empty_range(self):
        with pytest.raises(ValueError):
            RandomContext(7).rand_int(5, 4)

    def test_rand_bool_takes_both_values(self):
        rng = RandomContext(8)
        assert {rng.rand_bool() for _ in range(100)} == {True, False}

    def test_rand_bits(self):
        bits = RandomContext(9).rand_bits(256)
        assert bits.shape == (256,)
        assert set(np.unique(bits)) <= {0, 1}


class TestSpawn:

    def test_children_are_independent(self):
        children = RandomContext(10).spawn(3)
        sequences = [[c.rand_int(0, 10**6) for _ in range(10)] for c in children]
        assert sequences[0] != sequences[1] != sequences[2]

    def test_spawn_is_reproducible(self):
        first = [c.rand_double(0, 1) for c in RandomContext(11).spawn(4)]
        second = [c.rand_double(0, 1) for c in RandomContext(11).spawn(4)]
        assert first == second
