import numpy as np


class RandomContext:
    """
    Explicit random source shared by all stochastic operators.

    Every crossover, mutation and candidate-generation call receives a
    RandomContext instead of touching global generator state. A run seeds one
    root context and hands each worker its own child from spawn(), so
    parallel evaluations never draw correlated numbers.

    Args:
        seed (int or np.random.SeedSequence, optional): Seed of the
            underlying numpy Generator. None draws fresh OS entropy.
    """

    def __init__(self, seed=None):
        if isinstance(seed, np.random.SeedSequence):
            self._seed_sequence = seed
        else:
            self._seed_sequence = np.random.SeedSequence(seed)
        self._generator = np.random.default_rng(self._seed_sequence)

    @classmethod
    def from_seed(cls, seed: int) -> "RandomContext":
        return cls(seed)

    @property
    def generator(self) -> np.random.Generator:
        return self._generator

    def spawn(self, n: int) -> list:
        """Returns n independently seeded child contexts."""
        return [RandomContext(child) for child in self._seed_sequence.spawn(n)]

    def rand_double(self, min_value: float, max_value: float) -> float:
        """Uniform double in [min_value, max_value]."""
        return float(self._generator.uniform(min_value, max_value))

    def rand_float(self, min_value: float, max_value: float) -> np.float32:
        """Uniform single-precision float in [min_value, max_value]."""
        value = np.float32(self._generator.uniform(min_value, max_value))
        # Rounding to float32 may step just outside the requested range
        return np.clip(value, np.float32(min_value), np.float32(max_value))

    def rand_int(self, min_value: int, max_value: int) -> int:
        """Uniform integer in [min_value, max_value], both ends included."""
        if max_value < min_value:
            raise ValueError(f"Empty integer range [{min_value}, {max_value}]")
        return int(self._generator.integers(min_value, max_value, endpoint=True))

    def rand_bool(self) -> bool:
        return bool(self._generator.integers(0, 2))

    def rand_bits(self, size: int) -> np.ndarray:
        """Array of `size` independent fair bits (uint8 zeros and ones)."""
        return self._generator.integers(0, 2, size=size, dtype=np.uint8)

    def rand_unit(self, size=None):
        """Uniform samples in [0, 1), used for per-bit probability checks."""
        return self._generator.random(size)

    def __repr__(self) -> str:
        return f"RandomContext(entropy={self._seed_sequence.entropy}, spawn_key={self._seed_sequence.spawn_key})"
