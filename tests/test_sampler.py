"""
Tests for the Range Sampler
===========================
Hand-traced accumulators, range limits, exact uniformity by enumeration,
statistical uniformity, and the width cap of the extend policy.
"""

import itertools
import sys
from collections import Counter
from pathlib import Path

import pytest

# Ensure repo root is on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fairshuffle.entropy import RecordedBitSource
from fairshuffle.errors import EntropyShortRead, InvalidRange
from fairshuffle.sampler import EXTEND, RECYCLE, RangeSampler, SamplerState
from fairshuffle.stats import uniformity_report


def sample_with(bits, maximum, policy=RECYCLE, **kwargs):
    """Run one sample() on a recorded stream; return (value, trace, bits used)."""
    source = RecordedBitSource(bits)
    trace = []
    value = RangeSampler(source, policy=policy, **kwargs).sample(maximum, trace=trace)
    return value, trace, source.bits_consumed


def enumerate_outcomes(maximum, length, policy):
    """
    Run sample() on every bit string of the given length.

    Each string is equally likely, so the counts are exact probabilities
    scaled by 2**length. Strings too short to finish are counted apart.
    """
    counts = Counter()
    unfinished = 0
    for bits in itertools.product((0, 1), repeat=length):
        try:
            value = RangeSampler(RecordedBitSource(bits), policy=policy).sample(maximum)
        except EntropyShortRead:
            unfinished += 1
        else:
            counts[value] += 1
    return counts, unfinished


class TestHandTraces:
    """Accumulator traces worked out by hand."""

    def test_max_5_bits_1_0_1_is_rejected(self):
        # 1,0,1 builds r = 0b101 = 5 with rmax = 8; defect = 8 % 5 = 3,
        # so [5, 8) is rejected and a fourth bit is needed.
        with pytest.raises(EntropyShortRead):
            sample_with([1, 0, 1], 5)

    def test_max_5_bits_1_0_1_then_0(self):
        value, trace, used = sample_with([1, 0, 1, 0], 5)
        assert [(s.r, s.rmax) for s in trace] == [(1, 2), (1, 4), (5, 8), (0, 6)]
        assert trace[2].defect == 3
        assert not trace[2].accepted
        # rejected r = 5 re-based to 5 - (8 - 3) = 0 over [0, 3), one bit on top
        assert trace[3].defect == 1
        assert trace[3].accepted
        assert value == 0
        assert used == 4

    def test_max_5_bits_1_0_1_then_1(self):
        value, trace, used = sample_with([1, 0, 1, 1], 5)
        assert [(s.r, s.rmax) for s in trace] == [(1, 2), (1, 4), (5, 8), (3, 6)]
        assert value == 3
        assert used == 4

    def test_max_5_accepted_without_rejection(self):
        value, trace, used = sample_with([0, 1, 0], 5)
        assert [(s.r, s.rmax) for s in trace] == [(0, 2), (2, 4), (2, 8)]
        assert value == 2
        assert used == 3

    def test_extend_policy_max_5_bits_1_0_1_then_0(self):
        value, trace, used = sample_with([1, 0, 1, 0], 5, policy=EXTEND)
        assert [(s.r, s.rmax) for s in trace] == [(1, 2), (1, 4), (5, 8), (5, 16)]
        assert trace[3].defect == 1
        # 5 // (16 // 5)
        assert value == 1
        assert used == 4

    def test_extend_policy_max_5_bits_1_0_1_then_1(self):
        value, trace, _ = sample_with([1, 0, 1, 1], 5, policy=EXTEND)
        assert trace[-1] == SamplerState(5, r=13, rmax=16)
        assert value == 4

    def test_power_of_two_uses_exactly_its_width(self):
        value, trace, used = sample_with([1, 1, 0], 8)
        assert value == 3
        assert used == 3
        assert trace[-1].defect == 0

    def test_max_1_draws_no_bits(self):
        for policy in (RECYCLE, EXTEND):
            value, trace, used = sample_with([], 1, policy=policy)
            assert value == 0
            assert trace == []
            assert used == 0


class TestInvalidRange:

    @pytest.mark.parametrize("maximum", [0, -1, -52, 2 ** 32, 2 ** 40])
    def test_out_of_range_maximum(self, maximum):
        sampler = RangeSampler(RecordedBitSource([0] * 64))
        with pytest.raises(InvalidRange):
            sampler.sample(maximum)

    @pytest.mark.parametrize("maximum", [2.5, '5', None, True])
    def test_non_integer_maximum(self, maximum):
        with pytest.raises(InvalidRange):
            RangeSampler(RecordedBitSource([])).sample(maximum)

    def test_zero_draws_no_bits(self):
        source = RecordedBitSource([1, 0])
        with pytest.raises(InvalidRange):
            RangeSampler(source).sample(0)
        assert source.bits_consumed == 0

    def test_invalid_range_is_value_error(self):
        assert issubclass(InvalidRange, ValueError)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            RangeSampler(RecordedBitSource([]), policy='restart')


class TestRangeCorrectness:

    @pytest.mark.parametrize("policy", [RECYCLE, EXTEND])
    def test_every_maximum_up_to_64(self, seeded_bits, policy):
        sampler = RangeSampler(seeded_bits(400_000), policy=policy)
        for maximum in range(1, 65):
            values = [sampler.sample(maximum) for _ in range(200)]
            assert all(0 <= v < maximum for v in values)

    @pytest.mark.parametrize("maximum", [2 ** 31 + 1, 2 ** 32 - 1, 3 * 2 ** 29])
    def test_wide_maximums(self, seeded_bits, maximum):
        sampler = RangeSampler(seeded_bits(20_000))
        for _ in range(100):
            assert 0 <= sampler.sample(maximum) < maximum

    def test_same_bits_same_values(self, seeded_bits):
        first = RangeSampler(seeded_bits(50_000, seed=7))
        second = RangeSampler(seeded_bits(50_000, seed=7))
        a = [first.sample(m) for m in range(1, 53) for _ in range(20)]
        b = [second.sample(m) for m in range(1, 53) for _ in range(20)]
        assert a == b

    def test_state_invariant_holds_at_every_step(self, seeded_bits):
        sampler = RangeSampler(seeded_bits(100_000))
        for maximum in (3, 5, 13, 52, 1000, 2 ** 27 + 1):
            for _ in range(50):
                trace = []
                sampler.sample(maximum, trace=trace)
                assert all(0 <= s.r < s.rmax for s in trace)
                # re-based candidates never grow past twice the range
                assert all(s.rmax < 2 * maximum for s in trace)


class TestExactUniformity:
    """Enumerating every bit string gives exact outcome probabilities."""

    @pytest.mark.parametrize("maximum,length", [(3, 8), (5, 10), (6, 10), (13, 12)])
    def test_recycle_is_exactly_uniform(self, maximum, length):
        counts, unfinished = enumerate_outcomes(maximum, length, RECYCLE)
        assert sorted(counts) == list(range(maximum))
        assert len(set(counts.values())) == 1
        assert sum(counts.values()) + unfinished == 2 ** length

    def test_extend_policy_is_biased(self):
        # After a rejection r only covers the defect and its doubled copy,
        # so for maximum = 3 every extension lands on outcome 1.
        counts, _ = enumerate_outcomes(3, 8, EXTEND)
        assert counts[0] == counts[2] == 64
        assert counts[1] > counts[0]


class TestStatisticalUniformity:

    @pytest.mark.parametrize("maximum", [2, 3, 5, 13, 52])
    def test_chi_squared_does_not_reject(self, seeded_bits, maximum):
        sampler = RangeSampler(seeded_bits(1_500_000, seed=maximum))
        result = uniformity_report(sampler, maximum, 100_000)
        assert result.counts.sum() == 100_000
        assert result.passed, (result.statistic, result.critical)


class TestBitCap:
    """The extend policy stops widening at the cap and still terminates."""

    def test_growth_reaching_the_cap(self):
        # 2**27 + 1 needs the full 28 bits; all ones are rejected
        # (defect 2**27 - 1), a zero shifted in at the cap is accepted.
        maximum = 2 ** 27 + 1
        value, trace, used = sample_with([1] * 28 + [0], maximum, policy=EXTEND)
        assert trace[27] == SamplerState(maximum, r=2 ** 28 - 1, rmax=2 ** 28)
        assert trace[28] == SamplerState(maximum, r=2 ** 27 - 1, rmax=2 ** 28)
        assert value == 2 ** 27 - 1
        assert used == 29

    def test_rejection_growing_into_the_cap(self):
        # For maximum 3, all-ones candidates 2**k - 1 are always rejected
        # and widen up to the cap; ones at the cap keep r at 2**28 - 1.
        value, trace, used = sample_with([1] * 40 + [0], 3, policy=EXTEND)
        assert max(s.rmax for s in trace) == 2 ** 28
        assert trace[-1] == SamplerState(3, r=2 ** 27 - 1, rmax=2 ** 28)
        # (2**27 - 1) // (2**28 // 3)
        assert value == 1
        assert used == 41

    def test_small_cap(self):
        value, trace, used = sample_with([1, 1, 1, 1, 0], 3, policy=EXTEND, bit_cap=3)
        assert [(s.r, s.rmax) for s in trace] == [(1, 2), (3, 4), (7, 8), (7, 8), (3, 8)]
        assert value == 1
        assert used == 5

    @pytest.mark.parametrize("maximum", [2 ** 27 + 1, 2 ** 28 - 1, 2 ** 28 + 3, 2 ** 31 + 1])
    @pytest.mark.parametrize("policy", [RECYCLE, EXTEND])
    def test_large_maximums_terminate(self, seeded_bits, maximum, policy):
        sampler = RangeSampler(seeded_bits(200_000), policy=policy)
        for _ in range(200):
            assert 0 <= sampler.sample(maximum) < maximum
