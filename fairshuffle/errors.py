"""
Error taxonomy for the fairshuffle package.

Every failure of the entropy chain is fatal for the current operation:
nothing here is retried internally, and no partial result is ever
returned. The command-line layer decides how to report them.
"""


class FairShuffleError(RuntimeError):
    """Base class for all fairshuffle failures."""


class EntropyError(FairShuffleError):
    """The entropy source could not supply genuinely random bits."""


class EntropyUnavailable(EntropyError):
    """The secure random device could not be opened."""


class EntropyShortRead(EntropyError):
    """A bulk read returned less than one full word of random data."""


class InvalidRange(FairShuffleError, ValueError):
    """A range of width zero (or outside 32 bits) was requested."""
