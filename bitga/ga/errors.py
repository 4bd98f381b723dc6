# bitga/ga/errors.py


class BitGAError(Exception):
    """Base class for errors raised by the GA engine."""


class ConfigurationError(BitGAError, ValueError):
    """Invalid run configuration. Raised before any population is built."""


class DegenerateSelectionError(BitGAError):
    """
    Fitness values cannot drive proportionate selection: the sum is not
    positive, or some value is negative or not finite.
    """

    def __init__(self, total, message=None):
        self.total = total
        super().__init__(message or f"fitness sum {total} cannot be used for proportionate selection")


class OracleFailure(BitGAError):
    """The fitness oracle raised while scoring one individual."""

    def __init__(self, index, hypothesis, generation=None):
        self.index = index
        self.hypothesis = hypothesis
        self.generation = generation
        super().__init__(f"fitness evaluation failed for individual {index} "
                         f"({hypothesis}) in generation {generation}")
