#!/usr/bin/env python3
"""
Command-line interface for mub - static site generator.
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .core import Site
from .errors import MubError
from .settings import load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='mub - build a static site from a content directory')
    parser.add_argument('config', nargs='?', default='config.json',
                        help='Path to the JSON or YAML configuration file')
    policy = parser.add_mutually_exclusive_group()
    policy.add_argument('--lenient', dest='strict', action='store_false', default=None,
                        help='Skip content that fails and report it after the build')
    policy.add_argument('--strict', dest='strict', action='store_true', default=None,
                        help='Abort the build on the first failing item (default)')
    parser.add_argument('--workers', type=int,
                        help='Number of worker processes (default: CPU count)')
    parser.add_argument('--output', type=str,
                        help='Output directory for the generated site')
    parser.add_argument('--no-search-index', dest='search_index', action='store_false', default=None,
                        help='Do not write search-index.json')
    parser.add_argument('--verbose', action='store_true',
                        help='Log every step to the console')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def print_skipped(errors) -> None:
    print(f"\nSkipped {len(errors)} item(s):", file=sys.stderr)
    for error in errors:
        print(f"  {error.path}: {error}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)
    overrides = {
        'strict': args.strict,
        'workers': args.workers,
        'output': args.output,
        'search_index': args.search_index,
    }

    try:
        settings = load_settings(args.config, overrides)
        result = Site(settings, verbose=args.verbose).build()
    except MubError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if result.errors:
        print_skipped(result.errors)
    return 0


if __name__ == '__main__':
    sys.exit(main())
