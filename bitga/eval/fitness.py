# bitga/eval/fitness.py
import numpy as np

DEFAULT_TARGETS = (5, 125, 64, 101, 9, 113)


def decode_blocks(bits, n_blocks, bits_per_block):
    """
    Read n_blocks consecutive big-endian unsigned integers from the start of
    a bit vector. Trailing bits are ignored.
    """
    needed = n_blocks * bits_per_block
    if len(bits) < needed:
        raise ValueError(f"need at least {needed} bits to decode {n_blocks} values, got {len(bits)}")
    blocks = np.asarray(bits[:needed], dtype=np.int64).reshape(n_blocks, bits_per_block)
    weights = 1 << np.arange(bits_per_block - 1, -1, -1, dtype=np.int64)
    return blocks @ weights


class TargetFitness:
    """
    Placeholder oracle: decodes the hypothesis into integer parameters and
    scores how close each one is to a fixed target, in percent.
    fitness = int(mean over params of 100 - |value - target| / 2**bits * 100)
    With noise=True a uniform offset in [-5, 5) is added per parameter and
    the result clamped to [0, 100].
    """
    def __init__(self, targets=DEFAULT_TARGETS, bits_per_param=7, noise=False, rng=None):
        if bits_per_param < 1:
            raise ValueError(f"bits_per_param must be >= 1, got {bits_per_param}")
        if len(targets) == 0:
            raise ValueError("at least one target is required")
        self.targets = np.asarray(targets, dtype=np.int64)
        self.bits_per_param = bits_per_param
        self.noise = noise
        self.rng = rng if rng is not None else np.random.default_rng()

    @classmethod
    def random_targets(cls, n=len(DEFAULT_TARGETS), bits_per_param=7, rng=None, **kwargs):
        rng = rng if rng is not None else np.random.default_rng()
        targets = rng.integers(0, 2 ** bits_per_param, size=n)
        return cls(targets=targets, bits_per_param=bits_per_param, rng=rng, **kwargs)

    @property
    def required_length(self):
        return len(self.targets) * self.bits_per_param

    def decode(self, hypothesis):
        return decode_blocks(hypothesis.bits, len(self.targets), self.bits_per_param)

    def _percentages(self, hypothesis):
        diff = np.abs(self.decode(hypothesis) - self.targets)
        perc = 100.0 - diff / float(2 ** self.bits_per_param) * 100.0
        if self.noise:
            perc = np.clip(perc + self.rng.uniform(-5.0, 5.0, size=perc.shape), 0.0, 100.0)
        return perc

    def score(self, hypothesis):
        return int(self._percentages(hypothesis).sum() / len(self.targets))

    def param_scores(self, hypothesis):
        """Per-parameter closeness in percent, truncated to int."""
        return [int(p) for p in self._percentages(hypothesis)]

    __call__ = score


class RandomFitness:
    """Ignores the hypothesis and returns a random score in [0, 100)."""
    def __init__(self, rng=None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def score(self, hypothesis):
        return int(self.rng.integers(0, 100))

    __call__ = score
