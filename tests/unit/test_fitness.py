"""Tests for bitga.eval.fitness."""

import numpy as np
import pytest

from bitga.eval.fitness import DEFAULT_TARGETS, RandomFitness, TargetFitness, decode_blocks
from bitga.ga.chromosomes import Hypothesis


def encode(values, bits=7) -> Hypothesis:
    return Hypothesis.from_bits("".join(format(v, f"0{bits}b") for v in values))


class TestDecode:
    def test_big_endian_blocks(self) -> None:
        bits = np.array([0, 0, 0, 0, 1, 0, 1, 1, 1, 1, 1, 1, 0, 1], dtype=np.uint8)
        assert decode_blocks(bits, 2, 7).tolist() == [5, 125]

    def test_trailing_bits_ignored(self) -> None:
        assert decode_blocks(np.array([1, 1, 0, 1]), 1, 2).tolist() == [3]

    def test_too_short(self) -> None:
        with pytest.raises(ValueError, match="at least 14 bits"):
            decode_blocks(np.zeros(13, dtype=np.uint8), 2, 7)


class TestTargetFitness:
    def test_exact_targets_score_100(self) -> None:
        fitness = TargetFitness()
        h = encode(DEFAULT_TARGETS)
        assert fitness.score(h) == 100
        assert fitness.param_scores(h) == [100] * 6

    def test_all_zero_hypothesis(self) -> None:
        fitness = TargetFitness()
        h = Hypothesis.from_bits("0" * 42)
        # mean of 100 - t / 128 * 100 over the default targets is 45.70...
        assert fitness.score(h) == 45
        assert fitness.param_scores(h) == [96, 2, 50, 21, 92, 11]

    def test_callable_alias(self) -> None:
        fitness = TargetFitness()
        h = Hypothesis.random(42, np.random.default_rng(0))
        assert fitness(h) == fitness.score(h)

    def test_extra_bits_ignored(self) -> None:
        fitness = TargetFitness(targets=(3,), bits_per_param=2)
        assert fitness.score(Hypothesis.from_bits("1101")) == 100

    def test_short_hypothesis_rejected(self) -> None:
        with pytest.raises(ValueError):
            TargetFitness().score(Hypothesis.from_bits("1" * 41))

    def test_required_length(self) -> None:
        assert TargetFitness().required_length == 42
        assert TargetFitness(targets=(1, 2), bits_per_param=3).required_length == 6

    def test_noise_stays_in_range(self) -> None:
        fitness = TargetFitness(noise=True, rng=np.random.default_rng(1))
        rng = np.random.default_rng(2)
        for _ in range(200):
            h = Hypothesis.random(42, rng)
            assert 0 <= fitness.score(h) <= 100
            assert all(0 <= p <= 100 for p in fitness.param_scores(h))

    def test_noise_changes_scores(self) -> None:
        fitness = TargetFitness(noise=True, rng=np.random.default_rng(3))
        h = encode([64] * 6)
        assert len({fitness.score(h) for _ in range(50)}) > 1

    def test_random_targets(self) -> None:
        a = TargetFitness.random_targets(n=4, bits_per_param=5, rng=np.random.default_rng(4))
        b = TargetFitness.random_targets(n=4, bits_per_param=5, rng=np.random.default_rng(4))
        assert a.targets.tolist() == b.targets.tolist()
        assert all(0 <= t < 32 for t in a.targets)
        assert a.required_length == 20

    def test_invalid_arguments(self) -> None:
        with pytest.raises(ValueError):
            TargetFitness(targets=())
        with pytest.raises(ValueError):
            TargetFitness(bits_per_param=0)


class TestRandomFitness:
    def test_range(self) -> None:
        fitness = RandomFitness(np.random.default_rng(5))
        h = Hypothesis.from_bits("1")
        values = [fitness.score(h) for _ in range(500)]
        assert all(0 <= v < 100 for v in values)
        assert len(set(values)) > 10
