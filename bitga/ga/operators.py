# bitga/ga/operators.py
import math

import numpy as np
from loguru import logger

from .chromosomes import Hypothesis, as_bit_array, random_binary_chrom
from .errors import DegenerateSelectionError


class CrossoverFunction:
    """
    Uniform crossover driven by a bit mask.
    mask[i] == 1: child1 takes parent1's bit and child2 takes parent2's.
    mask[i] == 0: the other way round.
    The same mask is used for every recombine() call.
    """

    def __init__(self, mask):
        mask = as_bit_array(mask).copy()
        if mask.ndim != 1 or len(mask) == 0:
            raise ValueError("crossover mask must be a non-empty 1-D bit vector")
        if np.any(mask > 1):
            raise ValueError("crossover mask bits must be 0 or 1")
        mask.flags.writeable = False
        self._mask = mask

    @classmethod
    def random_mask(cls, length, rng=None):
        return cls(random_binary_chrom(length, rng))

    @classmethod
    def fixed_mask(cls, bits):
        if isinstance(bits, str):
            bits = [int(c) for c in bits]
        return cls(bits)

    @property
    def mask(self):
        return self._mask

    def complement(self):
        return CrossoverFunction(1 - self._mask)

    def recombine(self, h1, h2):
        """Return two fresh children; the parents are left untouched."""
        if not (len(h1) == len(h2) == len(self._mask)):
            raise ValueError(f"cannot recombine lengths {len(h1)} and {len(h2)} "
                             f"with a mask of length {len(self._mask)}")
        take_first = self._mask.astype(bool)
        a, b = h1.bits, h2.bits
        child1 = np.where(take_first, a, b).astype(np.uint8)
        child2 = np.where(take_first, b, a).astype(np.uint8)
        return Hypothesis(child1), Hypothesis(child2)

    def __len__(self):
        return len(self._mask)

    def __str__(self):
        return "".join(str(int(b)) for b in self._mask)


def is_degenerate(fitness, total):
    if not math.isfinite(total) or total <= 0:
        return True
    return bool(np.any(fitness < 0) or not np.all(np.isfinite(fitness)))


class RouletteSelector:
    """
    Fitness-proportionate selection.

    method="cumulative" (default) draws r in [0, total) once and returns the
    first index whose running fitness sum exceeds r.
    method="retry" walks the population from index 0, drawing a fresh
    r in [0,1) per candidate and accepting it when r <= fitness[i] / total,
    wrapping around at the end. After max_rounds full sweeps without a hit
    it falls back to one cumulative draw. Starting every walk at index 0
    skews this scheme towards low indices.

    Degenerate fitness (see is_degenerate) either raises
    DegenerateSelectionError or selects uniformly, per on_degenerate.
    """
    METHODS = ("cumulative", "retry")
    DEGENERATE_POLICIES = ("uniform", "raise")

    def __init__(self, method="cumulative", max_rounds=100, on_degenerate="uniform", rng=None):
        if method not in self.METHODS:
            raise ValueError(f"unknown selection method {method!r}")
        if on_degenerate not in self.DEGENERATE_POLICIES:
            raise ValueError(f"unknown degenerate policy {on_degenerate!r}")
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        self.method = method
        self.max_rounds = max_rounds
        self.on_degenerate = on_degenerate
        self.rng = rng if rng is not None else np.random.default_rng()

    def select(self, fitness, total=None):
        fitness = np.asarray(fitness, dtype=np.float64)
        n = len(fitness)
        if n == 0:
            raise ValueError("cannot select from an empty population")
        if total is None:
            total = float(fitness.sum())
        if is_degenerate(fitness, total):
            if self.on_degenerate == "raise":
                raise DegenerateSelectionError(total)
            return int(self.rng.integers(n))
        if self.method == "cumulative":
            return self._cumulative(fitness, total)
        return self._retry(fitness, total)

    def _retry(self, fitness, total):
        n = len(fitness)
        idx = 0
        for _ in range(self.max_rounds * n):
            if self.rng.random() <= fitness[idx] / total:
                return idx
            idx += 1
            if idx >= n:
                idx = 0
        logger.warning("Retry selection missed for {} sweeps, using cumulative draw", self.max_rounds)
        return self._cumulative(fitness, total)

    def _cumulative(self, fitness, total):
        cumulative = np.cumsum(fitness)
        idx = int(np.searchsorted(cumulative, self.rng.random() * total, side="right"))
        return min(idx, len(fitness) - 1)


def mutate_population(population, n_mutations, rng, protected=()):
    """
    Apply n_mutations single-bit flips at uniformly drawn indices, with
    replacement. An individual is copied before its first flip so entries
    shared with other slots or the previous generation stay intact.
    Indices in `protected` are never drawn.
    """
    candidates = [i for i in range(len(population)) if i not in protected]
    if not candidates:
        if n_mutations:
            logger.debug("No mutable slots, skipping {} mutations", n_mutations)
        return
    copied = set()
    for _ in range(n_mutations):
        idx = candidates[int(rng.integers(len(candidates)))]
        if idx not in copied:
            population[idx] = population[idx].copy()
            copied.add(idx)
        before = population[idx].to_display_string()
        population[idx].mutate(rng)
        logger.debug("Mutation at {}: {} -> {}", idx, before, population[idx])
