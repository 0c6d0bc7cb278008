#!/usr/bin/env python3
"""
Test runner script for filecron

Wraps pytest with common configurations.

Usage:
    python run_tests.py                    # Run all tests
    python run_tests.py --unit             # Skip integration tests
    python run_tests.py --integration      # Run only integration tests
    python run_tests.py --coverage         # Run with coverage report
    python run_tests.py --fast             # Skip slow tests
    python run_tests.py tests/test_expander.py  # Run specific test file
"""

import sys
import argparse
import subprocess


def main():
    parser = argparse.ArgumentParser(
        description='Run filecron test suite',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    # Test selection options
    parser.add_argument(
        '--unit', '-u',
        action='store_true',
        help='Skip integration tests'
    )
    parser.add_argument(
        '--integration', '-i',
        action='store_true',
        help='Run only integration tests'
    )
    parser.add_argument(
        '--fast', '-f',
        action='store_true',
        help='Skip slow tests'
    )

    # Output options
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Verbose output'
    )
    parser.add_argument(
        '--coverage',
        action='store_true',
        help='Generate coverage report'
    )
    parser.add_argument(
        '--failfast', '-x',
        action='store_true',
        help='Stop on first failure'
    )

    parser.add_argument(
        'tests',
        nargs='*',
        help='Specific test files or directories to run'
    )

    args = parser.parse_args()

    cmd = [sys.executable, '-m', 'pytest']

    markers = []
    if args.unit:
        markers.append('not integration')
    if args.integration:
        markers.append('integration')
    if args.fast:
        markers.append('not slow')
    if markers:
        cmd.extend(['-m', ' and '.join(markers)])

    cmd.append('-vv' if args.verbose else '-v')

    if args.coverage:
        cmd.extend(['--cov=filecron', '--cov-report=term-missing'])
    if args.failfast:
        cmd.append('-x')

    cmd.extend(args.tests or ['tests'])

    print(f"Running: {' '.join(cmd)}")
    print("-" * 70)

    try:
        result = subprocess.run(cmd)
        return result.returncode
    except KeyboardInterrupt:
        print("\n\nTest run interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
