"""Shared fixtures: reproducible bit streams for sampler and shuffle tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure repo root is on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fairshuffle.entropy import RecordedBitSource


@pytest.fixture
def seeded_bits():
    """Factory for a RecordedBitSource of n pseudo-random bits from a fixed seed."""
    def make(n, seed=2024):
        rng = np.random.default_rng(seed)
        return RecordedBitSource(rng.integers(0, 2, size=n).tolist())
    return make
