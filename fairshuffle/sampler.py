"""
Unbiased Range Sampler

Turns single random bits into a uniform integer in [0, max).

Background:
-----------
Say we want a value in [0, 4]. Three bits give a value x in [0, 7], but
x % 5 maps 0-7 onto 0, 1, 2, 3, 4, 0, 1 and favours 0 and 1. To stay
unbiased only whole groups of five may be used: values 0-4 are accepted
and the "defect" 5-7 (size 8 % 5 = 3) is rejected. An accepted r is
mapped to r // (rmax // max), which is exact because rmax - defect is a
multiple of max.

The classical fix throws the whole value away on rejection and starts
again. Here the rejected value is kept and extended with fresh random
bits on top, so fewer bits are used per accepted sample on average.

Extension policies:
-------------------
RECYCLE (default): a rejected r is uniform over the defect
    [rmax - defect, rmax), so it is re-based to r - (rmax - defect),
    uniform over [0, defect), and grown from there one top bit at a
    time. The candidate stays uniform over [0, rmax) at every step, so
    every outcome is exactly equally likely. rmax never exceeds
    2 * max, so no width cap is needed.

EXTEND: the rejected r is kept as-is and one top bit is added, doubling
    rmax, up to MAX_RAND_BITS (28) bits. Past that, each round still
    folds a fresh bit in at the top but then shifts the oldest (lowest)
    bit out, so the width stays fixed. This reproduces the classic
    bit-extension shuffle exactly, but it is NOT uniform for ranges that
    are not powers of two: after a rejection r only covers the defect
    and its doubled copy, not all of [0, 2 * rmax). Kept for replaying
    recorded streams and for the validation tooling.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from .errors import InvalidRange

MAX_RANGE = 0xFFFFFFFF

RECYCLE = 'recycle'
EXTEND = 'extend'
POLICIES = (RECYCLE, EXTEND)


@dataclass
class SamplerState:
    """Accumulator of one sample() call: 0 <= r < rmax."""
    maximum: int
    r: int = 0
    rmax: int = 1

    @property
    def defect(self) -> int:
        """Size of the rejected high sub-range [rmax - defect, rmax)."""
        return self.rmax % self.maximum

    @property
    def accepted(self) -> bool:
        return self.rmax >= self.maximum and self.r < self.rmax - self.defect


class RangeSampler:
    """Draws integers in [0, max) from an entropy source's ``next_bit()``."""

    MAX_RAND_BITS = 28

    def __init__(self, source, policy: str = RECYCLE,
                 bit_cap: int = MAX_RAND_BITS):
        """
        Args:
            source: Any object with a ``next_bit() -> int`` method.
            policy: RECYCLE (exactly uniform) or EXTEND (classic
                bit-extension with a width cap).
            bit_cap: EXTEND only. Width in bits beyond which the
                rejection phase stops widening the candidate.
        """
        if policy not in POLICIES:
            raise ValueError(f"unknown sampling policy {policy!r}, "
                             f"expected one of {POLICIES}")
        if bit_cap < 1:
            raise ValueError("bit_cap must be at least 1")
        self.source = source
        self.policy = policy
        self.bit_cap = bit_cap

    def _fold_bit(self, state: SamplerState,
                  trace: Optional[List[SamplerState]], widen: bool = True) -> None:
        # the new bit becomes the most significant digit of r
        if self.source.next_bit() == 1:
            state.r += state.rmax
        if widen:
            state.rmax <<= 1
        else:
            # throw away the lsb once the width is capped
            state.r >>= 1
        if trace is not None:
            trace.append(replace(state))

    def _grow(self, state: SamplerState,
              trace: Optional[List[SamplerState]]) -> None:
        """Add top bits until the candidate range covers maximum."""
        while state.rmax < state.maximum:
            self._fold_bit(state, trace)

    def sample(self, maximum: int,
               trace: Optional[List[SamplerState]] = None) -> int:
        """
        Return an integer in [0, maximum - 1].

        sample(1) returns 0 without drawing any bit.

        Args:
            maximum: Exclusive upper bound, 1 <= maximum <= 2**32 - 1.
            trace: Optional list receiving a snapshot of the accumulator
                after every bit drawn.

        Returns:
            The sampled integer.

        Raises:
            InvalidRange: maximum is zero, negative or wider than 32 bits.
            EntropyError: Propagated from the entropy source.
        """
        if isinstance(maximum, bool) or not isinstance(maximum, int):
            raise InvalidRange(f"sample() needs an int maximum, got {maximum!r}")
        if maximum <= 0:
            raise InvalidRange(f"sample() called with maximum == {maximum}")
        if maximum > MAX_RANGE:
            raise InvalidRange(f"sample() maximum {maximum} exceeds 32 bits")

        state = SamplerState(maximum)

        # Growth phase: get enough bits to be >= maximum
        self._grow(state, trace)

        # Rejection phase: keep adding bits until r is outside the defect
        if self.policy == RECYCLE:
            while not state.accepted:
                state.r -= state.rmax - state.defect
                state.rmax = state.defect
                self._grow(state, trace)
        else:
            cap = 1 << self.bit_cap
            while not state.accepted:
                self._fold_bit(state, trace, widen=state.rmax < cap)

        # Truncated division is exact: rmax - defect is a multiple of maximum
        return state.r // (state.rmax // maximum)
