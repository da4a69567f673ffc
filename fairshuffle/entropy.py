"""
Entropy Source Module for Bit-Level Secure Randomness

This module serves cryptographically secure random bits one at a time,
reading them in bulk from the operating system's random device.

Why one bit at a time:
----------------------
Random bits are treated as a limited resource. The range sampler builds
each candidate value bit by bit and stops as soon as the value can be
mapped onto the requested range without bias, so it never needs more
bits than that. Reading the device once per bit would cost one syscall
per bit; instead a whole buffer of words is read at once and handed out
least-significant bit first.

Failure policy:
---------------
A device that cannot be opened, or a read that returns less than one
full word, raises immediately. There is no retry and no fallback to a
weaker generator: a degraded entropy source must never be papered over.
"""

import logging
import os
from typing import Iterable, Optional

import numpy as np

from .errors import EntropyShortRead, EntropyUnavailable

logger = logging.getLogger(__name__)


class EntropySource:
    """
    Buffered reader of secure random bits.

    The buffer holds up to ``buffer_words`` 32-bit words decoded from one
    bulk read. A cursor (word index, bit offset) walks through the valid
    words; bits come out least-significant first within each word. When
    the cursor runs past the last valid word, the next request refills
    the buffer from the device and the cursor starts over.

    The device handle is opened and closed around every refill, so
    nothing stays open between draws.
    """

    DEFAULT_DEVICE = '/dev/urandom'
    BUFFER_WORDS = 256   # 1 KiB per refill
    WORD_BYTES = 4
    WORD_BITS = WORD_BYTES * 8

    def __init__(self, device: str = DEFAULT_DEVICE,
                 buffer_words: int = BUFFER_WORDS):
        """
        Set up an empty buffer; nothing is read until the first bit is drawn.

        Args:
            device: Path of the secure random device.
            buffer_words: Capacity of the buffer in 32-bit words.
        """
        if buffer_words < 1:
            raise ValueError("buffer_words must be at least 1")
        self.device = device
        self.buffer_words = buffer_words

        self._words = np.zeros(0, dtype='<u4')
        self.valid_word_count = 0
        self.word_index = 0
        self.bit_offset = 0

        # Reporting counters
        self.bits_consumed = 0
        self.refills = 0

    def _read_block(self, num_bytes: int) -> bytes:
        """
        Perform one bulk read from the device.

        Args:
            num_bytes: Number of bytes requested.

        Returns:
            Whatever a single read returned (possibly fewer bytes).
        """
        try:
            f = open(self.device, 'rb', buffering=0)
        except OSError as e:
            raise EntropyUnavailable(
                f"cannot open entropy device {self.device}: {e}"
            ) from e

        with f:
            try:
                return f.read(num_bytes)
            except OSError as e:
                raise EntropyShortRead(
                    f"read from entropy device {self.device} failed: {e}"
                ) from e

    def _refill(self) -> None:
        """Replace the buffer with a fresh bulk read and reset the cursor."""
        data = self._read_block(self.buffer_words * self.WORD_BYTES)
        if data is None or len(data) < self.WORD_BYTES:
            got = 0 if data is None else len(data)
            raise EntropyShortRead(
                f"short read from entropy source: got {got} bytes, "
                f"need at least {self.WORD_BYTES}"
            )

        count = len(data) // self.WORD_BYTES
        # A trailing partial word is dropped, never padded
        self._words = np.frombuffer(data[:count * self.WORD_BYTES], dtype='<u4')
        self.valid_word_count = count
        self.word_index = 0
        self.bit_offset = 0
        self.refills += 1

        logger.debug("Refilled entropy buffer: %d words (refill #%d)",
                     count, self.refills)

    def next_bit(self) -> int:
        """
        Return the next secure random bit (0 or 1).

        May block on a bulk device read when the buffer is exhausted.

        Raises:
            EntropyUnavailable: The device could not be opened.
            EntropyShortRead: The device returned less than one word.
        """
        if self.word_index >= self.valid_word_count:
            self._refill()

        bit = (int(self._words[self.word_index]) >> self.bit_offset) & 1

        self.bit_offset += 1
        if self.bit_offset == self.WORD_BITS:
            self.word_index += 1
            self.bit_offset = 0

        self.bits_consumed += 1
        return bit

    def close(self) -> None:
        """Discard any buffered entropy so it can never be served again."""
        self._words = np.zeros(0, dtype='<u4')
        self.valid_word_count = 0
        self.word_index = 0
        self.bit_offset = 0

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - drops buffered bits."""
        self.close()
        return False


class SystemEntropySource(EntropySource):
    """
    Entropy source backed by ``os.urandom()`` instead of a device file.

    Used on platforms without ``/dev/urandom`` (e.g. Windows, where the
    kernel CSPRNG is only reachable through the OS API). Buffering and
    bit order are identical to EntropySource.
    """

    def __init__(self, buffer_words: int = EntropySource.BUFFER_WORDS):
        super().__init__(device='os.urandom', buffer_words=buffer_words)

    def _read_block(self, num_bytes: int) -> bytes:
        try:
            return os.urandom(num_bytes)
        except NotImplementedError as e:
            raise EntropyUnavailable(
                f"no OS randomness source available: {e}"
            ) from e


class RecordedBitSource:
    """
    Deterministic, finite bit stream with the EntropySource interface.

    Replays pre-recorded bits in order, which makes the sampler and the
    shuffler exactly reproducible. Running past the end is treated like a
    failing device.
    """

    def __init__(self, bits: Iterable[int]):
        self._bits = [int(b) for b in bits]
        for b in self._bits:
            if b not in (0, 1):
                raise ValueError(f"recorded bits must be 0 or 1, got {b}")
        self.bits_consumed = 0

    @property
    def remaining(self) -> int:
        return len(self._bits) - self.bits_consumed

    def next_bit(self) -> int:
        if self.bits_consumed >= len(self._bits):
            raise EntropyShortRead(
                f"recorded bit stream exhausted after {len(self._bits)} bits"
            )
        bit = self._bits[self.bits_consumed]
        self.bits_consumed += 1
        return bit


def create_entropy_source(device: Optional[str] = None) -> EntropySource:
    """
    Factory function to create the appropriate entropy source.

    An explicit device path is always honoured, and its failures stay
    fatal. Without one, the default device is used when it exists,
    otherwise the OS randomness API.

    Args:
        device: Optional path of a random device.

    Returns:
        EntropySource instance (device-based or os.urandom-based).
    """
    if device is not None:
        logger.debug("Using entropy device %s", device)
        return EntropySource(device)

    if os.path.exists(EntropySource.DEFAULT_DEVICE):
        logger.debug("Using entropy device %s", EntropySource.DEFAULT_DEVICE)
        return EntropySource()

    logger.debug("%s not present, using os.urandom()", EntropySource.DEFAULT_DEVICE)
    return SystemEntropySource()
