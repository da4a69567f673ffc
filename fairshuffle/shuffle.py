"""Fisher-Yates shuffle driven by the unbiased range sampler."""

from typing import MutableSequence, TypeVar

from .sampler import RangeSampler

T = TypeVar('T')


class Shuffler:
    """
    In-place uniform permutation of a mutable sequence.

    Every one of the len(seq)! orderings is equally likely, provided the
    sampler is unbiased.
    """

    def __init__(self, sampler: RangeSampler):
        self.sampler = sampler

    def shuffle(self, seq: MutableSequence[T]) -> MutableSequence[T]:
        """Shuffle seq in place and return it."""
        for i in range(len(seq) - 1, 0, -1):
            j = self.sampler.sample(i + 1)  # random index in [0, i]
            seq[i], seq[j] = seq[j], seq[i]
        return seq
