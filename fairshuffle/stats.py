"""
Statistical checks for sampler and shuffle output.

Chi-squared goodness of fit:
----------------------------
For N samples over k equally likely outcomes the expected count per
outcome is E = N / k, and

    chi2 = sum((observed - E)^2 / E)

follows a chi-squared distribution with k - 1 degrees of freedom when
the sampler is uniform. Its mean is k - 1; values far above the upper
critical value indicate bias.

The critical value is computed with the Wilson-Hilferty approximation
so no statistics package beyond numpy is needed:

    crit = dof * (1 - 2/(9 dof) + z * sqrt(2/(9 dof)))^3

where z is the standard normal quantile of the significance level
(3.719 for alpha = 1e-4).
"""

from dataclasses import dataclass

import numpy as np

from .sampler import RangeSampler
from .shuffle import Shuffler

DEFAULT_Z = 3.719


@dataclass
class UniformityResult:
    """Outcome of a chi-squared uniformity check for one maximum."""
    maximum: int
    samples: int
    counts: np.ndarray
    statistic: float
    critical: float

    @property
    def passed(self) -> bool:
        return self.statistic <= self.critical


def sample_counts(sampler: RangeSampler, maximum: int, n: int) -> np.ndarray:
    """
    Draw n samples in [0, maximum) and count each outcome.

    Returns:
        Integer array of length maximum.
    """
    draws = np.fromiter((sampler.sample(maximum) for _ in range(n)),
                        dtype=np.int64, count=n)
    return np.bincount(draws, minlength=maximum)


def chi_squared(counts) -> float:
    """Chi-squared statistic of counts against a uniform expectation."""
    counts = np.asarray(counts, dtype=np.float64)
    if counts.size < 2 or counts.sum() == 0:
        raise ValueError("need at least two outcomes and one observation")
    expected = counts.sum() / counts.size
    return float(np.sum((counts - expected) ** 2 / expected))


def chi_squared_critical(dof: int, z: float = DEFAULT_Z) -> float:
    """Approximate upper critical value of chi-squared with dof degrees of freedom."""
    if dof < 1:
        raise ValueError("dof must be at least 1")
    h = 2.0 / (9.0 * dof)
    return float(dof * (1.0 - h + z * np.sqrt(h)) ** 3)


def uniformity_report(sampler: RangeSampler, maximum: int, n: int,
                      z: float = DEFAULT_Z) -> UniformityResult:
    """Sample maximum's range n times and run the chi-squared check."""
    if maximum < 2:
        raise ValueError("uniformity needs at least two outcomes")
    counts = sample_counts(sampler, maximum, n)
    return UniformityResult(
        maximum=maximum,
        samples=n,
        counts=counts,
        statistic=chi_squared(counts),
        critical=chi_squared_critical(maximum - 1, z),
    )


def position_counts(shuffler: Shuffler, deck_size: int, rounds: int) -> np.ndarray:
    """
    Shuffle a fresh identity deck `rounds` times and tally placements.

    Returns:
        deck_size x deck_size array; entry [card, position] counts how
        often that card ended at that position. Every entry should be
        close to rounds / deck_size for an unbiased shuffle.
    """
    matrix = np.zeros((deck_size, deck_size), dtype=np.int64)
    positions = np.arange(deck_size)
    for _ in range(rounds):
        order = shuffler.shuffle(list(range(deck_size)))
        matrix[np.asarray(order), positions] += 1
    return matrix
