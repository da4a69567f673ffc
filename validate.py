#!/usr/bin/env python3
"""
Uniformity Validation for the Secure Shuffler

Samples several ranges many times from the real entropy source and checks
each against a uniform distribution, then shuffles an identity deck many
times and records where every card ends up.

Output Validation:
------------------
1. Chi-squared test per range - should stay below the critical value
2. Histogram - bars should sit on the expected-count line for every range
3. Position heatmap - should be featureless noise around rounds / 52

A biased sampler shows up as:
- Low outcomes favoured in the histogram (the classic "x % n" bias)
- A bright diagonal or band in the heatmap (cards staying near home)

Usage:
    python validate.py [--max 2 3 5 13 52] [--samples N] [--rounds N]
"""

import argparse
import logging
import sys
from typing import List

import numpy as np

# Conditional matplotlib import for headless environments
try:
    import matplotlib
    # Use non-interactive backend for headless environments
    matplotlib.use('Agg')
    import matplotlib.pyplot as plt
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False

from fairshuffle import (DECK_SIZE, FairShuffleError, RangeSampler, Shuffler,
                         create_entropy_source)
from fairshuffle.sampler import POLICIES, RECYCLE
from fairshuffle.stats import (UniformityResult, chi_squared, chi_squared_critical,
                               position_counts, uniformity_report)


# Constants
DEFAULT_MAXIMUMS = [2, 3, 5, 13, 52]
DEFAULT_SAMPLES = 100_000
DEFAULT_ROUNDS = 10_000
HISTOGRAM_OUTPUT = 'validation_histogram.png'
HEATMAP_OUTPUT = 'validation_positions.png'


def create_histogram_plot(results: List[UniformityResult], output_path: str) -> None:
    """
    Plot the outcome counts of every checked range, one panel per range.

    For a uniform sampler every bar should sit within a few
    sqrt(N / max) of the dashed N / max line.
    """
    if not MATPLOTLIB_AVAILABLE:
        print("Skipping histogram (matplotlib not available)")
        return

    fig, axes = plt.subplots(len(results), 1, figsize=(12, 3 * len(results)),
                             squeeze=False)

    for ax, result in zip(axes[:, 0], results):
        expected = result.samples / result.maximum
        ax.bar(np.arange(result.maximum), result.counts,
               color='steelblue', alpha=0.7)
        ax.axhline(y=expected, color='red', linestyle='--',
                   label=f'Expected uniform: {expected:.1f}')
        verdict = 'pass' if result.passed else 'FAIL'
        ax.set_title(
            f'sample({result.maximum}) - {result.samples:,} draws, '
            f'χ² = {result.statistic:.1f} (critical {result.critical:.1f}, {verdict})',
            fontsize=11
        )
        ax.set_ylabel('Frequency')
        ax.legend(loc='upper right')
        ax.grid(True, alpha=0.3)

    axes[-1, 0].set_xlabel('Outcome')

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Histogram saved to: {output_path}")


def create_position_plot(matrix: np.ndarray, rounds: int, output_path: str) -> None:
    """
    Show how often each card (row) landed on each position (column).

    An unbiased shuffle gives uniform noise with no diagonal or bands.
    """
    if not MATPLOTLIB_AVAILABLE:
        print("Skipping heatmap (matplotlib not available)")
        return

    fig, ax = plt.subplots(figsize=(10, 10))

    im = ax.imshow(matrix, cmap='gray', interpolation='nearest')

    cbar = plt.colorbar(im, ax=ax, shrink=0.8)
    cbar.set_label('Times card landed in position', fontsize=10)

    ax.set_xlabel('Final position', fontsize=12)
    ax.set_ylabel('Card (original position)', fontsize=12)
    ax.set_title(
        f'Card positions after {rounds:,} shuffles\n'
        'Visual Test: Should appear as uniform noise with no patterns',
        fontsize=14
    )

    plt.tight_layout()
    plt.savefig(output_path, dpi=150, bbox_inches='tight')
    plt.close()

    print(f"Heatmap saved to: {output_path}")


def validate(maximums: List[int], samples: int, rounds: int, device=None,
             policy: str = RECYCLE,
             histogram_path: str = HISTOGRAM_OUTPUT,
             heatmap_path: str = HEATMAP_OUTPUT) -> bool:
    """
    Run all checks against the real entropy source.

    Returns:
        True if every range and the position matrix pass.
    """
    all_passed = True

    with create_entropy_source(device) as source:
        sampler = RangeSampler(source, policy=policy)
        print(f"Sampling policy: {policy}")

        print("\n=== Range Uniformity ===")
        results = []
        for maximum in maximums:
            result = uniformity_report(sampler, maximum, samples)
            results.append(result)
            all_passed = all_passed and result.passed
            print(f"sample({maximum:>3}): χ² = {result.statistic:8.2f} "
                  f"(dof {maximum - 1}, critical {result.critical:.2f}) "
                  f"{'pass' if result.passed else 'FAIL'}")

        print("\n=== Shuffle Positions ===")
        matrix = position_counts(Shuffler(sampler), DECK_SIZE, rounds)
        # each row is the position distribution of one card
        row_stats = np.array([chi_squared(row) for row in matrix])
        worst = float(row_stats.max())
        critical = chi_squared_critical(DECK_SIZE - 1)
        positions_ok = worst <= critical
        all_passed = all_passed and positions_ok
        print(f"Shuffles: {rounds:,}")
        print(f"Worst card χ²: {worst:.2f} (critical {critical:.2f}) "
              f"{'pass' if positions_ok else 'FAIL'}")

        print(f"\nEntropy used: {source.bits_consumed:,} bits "
              f"in {source.refills} refills")

    create_histogram_plot(results, histogram_path)
    create_position_plot(matrix, rounds, heatmap_path)

    return all_passed


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description='Check the secure sampler and shuffle for uniformity'
    )
    parser.add_argument('--max', dest='maximums', type=int, nargs='+',
                        default=DEFAULT_MAXIMUMS,
                        help=f'Ranges to check (default: {DEFAULT_MAXIMUMS})')
    parser.add_argument('-n', '--samples', type=int, default=DEFAULT_SAMPLES,
                        help=f'Samples per range (default: {DEFAULT_SAMPLES})')
    parser.add_argument('-r', '--rounds', type=int, default=DEFAULT_ROUNDS,
                        help=f'Shuffles for the position check (default: {DEFAULT_ROUNDS})')
    parser.add_argument('--histogram', type=str, default=HISTOGRAM_OUTPUT,
                        help=f'Histogram output path (default: {HISTOGRAM_OUTPUT})')
    parser.add_argument('--heatmap', type=str, default=HEATMAP_OUTPUT,
                        help=f'Heatmap output path (default: {HEATMAP_OUTPUT})')
    parser.add_argument('--policy', choices=POLICIES, default=RECYCLE,
                        help=f'Rejection policy of the sampler (default: {RECYCLE})')
    parser.add_argument('--device', type=str, default=None,
                        help='Random device path (default: /dev/urandom)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    if any(m < 2 for m in args.maximums):
        parser.error("--max values must be at least 2")
    if args.samples < 1 or args.rounds < 1:
        parser.error("--samples and --rounds must be positive")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        passed = validate(args.maximums, args.samples, args.rounds, args.device,
                          args.policy, args.histogram, args.heatmap)
    except FairShuffleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("\nValidation " + ("passed." if passed else "FAILED."))
    return 0 if passed else 1


if __name__ == '__main__':
    sys.exit(main())
