"""
fairshuffle - unbiased card shuffling from secure random bits

Provides:
- Buffered bit-level access to the OS secure random device
- Exactly uniform integer sampling using as few bits as possible
- Fisher-Yates shuffling of a 52-card deck
"""

from .deck import DECK_SIZE, Card, format_deck, new_deck
from .entropy import (EntropySource, RecordedBitSource, SystemEntropySource,
                      create_entropy_source)
from .errors import (EntropyError, EntropyShortRead, EntropyUnavailable,
                     FairShuffleError, InvalidRange)
from .sampler import EXTEND, RECYCLE, RangeSampler, SamplerState
from .shuffle import Shuffler

__all__ = [
    'Card', 'DECK_SIZE', 'format_deck', 'new_deck',
    'EntropySource', 'RecordedBitSource', 'SystemEntropySource',
    'create_entropy_source',
    'EntropyError', 'EntropyShortRead', 'EntropyUnavailable',
    'FairShuffleError', 'InvalidRange',
    'EXTEND', 'RECYCLE', 'RangeSampler', 'SamplerState', 'Shuffler',
]
