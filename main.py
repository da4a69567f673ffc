#!/usr/bin/env python3
"""
Secure Deck Shuffler - Main Entry Point

Shuffles a standard 52-card deck with a Fisher-Yates shuffle whose random
indices come from the OS secure random device.

Random bits are treated as a limited resource:
-----------------------------------------------
- Bits are read from the device in 1 KiB blocks and served one at a time
- Each index in [0, i] is built from just enough bits to cover the range
- A biased candidate is extended by one more bit instead of being thrown
  away, so on average fewer bits are used per card

A 52-card shuffle needs log2(52!) ~ 226 bits of entropy in theory; use
--stats to see how close the sampler gets.

Usage:
    python main.py ITERATIONS [--device PATH] [--stats] [-v]
"""

import argparse
import logging
import sys

from fairshuffle import (Shuffler, RangeSampler, FairShuffleError,
                         create_entropy_source, format_deck, new_deck)
from fairshuffle.sampler import POLICIES, RECYCLE


def iteration_count(text: str) -> int:
    """Parse ITERATIONS with base detection (10, 0x10, 0o17, 0b101)."""
    try:
        value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid iteration count: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"iteration count must be >= 0, got {value}")
    return value


def print_deck(title: str, deck) -> None:
    print(title)
    print(format_deck(deck))


def run(iterations: int, device=None, show_stats: bool = False,
        policy: str = RECYCLE) -> int:
    """
    Print the ordered deck, shuffle it `iterations` times, print it again.

    Returns:
        Process exit status.
    """
    deck = new_deck()
    print_deck("Original deck:", deck)

    with create_entropy_source(device) as source:
        shuffler = Shuffler(RangeSampler(source, policy=policy))

        # shuffle a lot, to see how fast we can go
        for _ in range(iterations):
            shuffler.shuffle(deck)

        print()
        print_deck("Shuffled deck:", deck)

        if show_stats:
            per_shuffle = source.bits_consumed / iterations if iterations else 0.0
            print(f"\nEntropy: {source.bits_consumed:,} bits drawn in "
                  f"{source.refills} refills ({per_shuffle:.1f} bits per shuffle)")

    return 0


def main(argv=None) -> int:
    """
    Main entry point for the shuffler.

    Fatal entropy or range errors are reported on stderr with exit status 1.
    """
    parser = argparse.ArgumentParser(
        description='Shuffle a 52-card deck using secure random bits',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Notes:
  Each shuffle is a Fisher-Yates pass; indices are sampled without bias
  from the OS secure random device, using as few bits as possible.
  A failing or short-reading device is fatal: no weaker randomness is
  ever substituted.
        """
    )

    parser.add_argument(
        'iterations',
        type=iteration_count,
        help='Number of shuffle passes (accepts 0x/0o/0b prefixes)'
    )

    parser.add_argument(
        '--device',
        type=str,
        default=None,
        help='Random device path (default: /dev/urandom, or os.urandom() '
             'where that device does not exist)'
    )

    parser.add_argument(
        '--policy',
        choices=POLICIES,
        default=RECYCLE,
        help=f'Rejection policy of the sampler (default: {RECYCLE})'
    )

    parser.add_argument(
        '--stats',
        action='store_true',
        help='Report the number of random bits and refills used'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return run(args.iterations, args.device, args.stats, args.policy)
    except FairShuffleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
