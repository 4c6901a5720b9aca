class InvalidConfigurationError(ValueError):
    """A profile or mapping handed to the engine is out of range."""


class ProbabilityDriftError(AssertionError):
    """Probability mass no longer sums to one: an internal combinatorial bug."""
