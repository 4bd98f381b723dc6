# bitga/ga/chromosomes.py
import numpy as np


def random_binary_chrom(length, rng=None):
    rng = rng if rng is not None else np.random.default_rng()
    return rng.integers(0, 2, size=(length,), dtype=np.uint8)


def as_bit_array(bits):
    """uint8 view/copy of integer or bool input; other dtypes are rejected, not truncated."""
    arr = np.asarray(bits)
    if arr.size and arr.dtype.kind not in "biu":
        raise ValueError(f"bits must be integers or booleans, got dtype {arr.dtype}")
    return arr.astype(np.uint8, copy=False)


class Hypothesis:
    """
    Fixed-length bitstring individual.
    The bit buffer is owned by this object; from_bits() does not copy it,
    so callers must not hand the same buffer to two hypotheses.
    """
    __slots__ = ("_bits",)

    def __init__(self, bits):
        if bits.ndim != 1 or len(bits) == 0:
            raise ValueError(f"hypothesis needs a non-empty 1-D bit vector, got shape {bits.shape}")
        if np.any(bits > 1):
            raise ValueError("hypothesis bits must be 0 or 1")
        self._bits = bits

    @classmethod
    def random(cls, length, rng=None):
        if length < 1:
            raise ValueError(f"hypothesis length must be >= 1, got {length}")
        return cls(random_binary_chrom(length, rng))

    @classmethod
    def from_bits(cls, bits):
        if isinstance(bits, str):
            bits = [int(c) for c in bits]
        return cls(as_bit_array(bits))

    @property
    def bits(self):
        view = self._bits.view()
        view.flags.writeable = False
        return view

    def mutate(self, rng=None):
        """Flip one uniformly chosen bit in place."""
        rng = rng if rng is not None else np.random.default_rng()
        idx = int(rng.integers(len(self._bits)))
        self._bits[idx] ^= 1

    def copy(self):
        return Hypothesis(self._bits.copy())

    def to_display_string(self):
        return "".join("1" if b else "0" for b in self._bits)

    def __len__(self):
        return len(self._bits)

    def __getitem__(self, idx):
        return int(self._bits[idx])

    def __eq__(self, other):
        if not isinstance(other, Hypothesis):
            return NotImplemented
        return np.array_equal(self._bits, other._bits)

    __hash__ = None

    def __str__(self):
        return self.to_display_string()

    def __repr__(self):
        return f"Hypothesis('{self.to_display_string()}')"
