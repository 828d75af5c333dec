#!/usr/bin/env python3
"""
Build the fatal crash slide deck into a single HTML file.

Loads the crash table, fetches (or reads cached) boundary polygons, builds
every map and chart for the chosen year and writes a reveal.js document that
can be opened directly in a browser.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project src directory to path for absolute imports
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


from config import CRASH_TABLE_PATH, FOCUS_YEAR
from deck import DEFAULT_OUTPUT_PATH, build_deck


def parse_args() -> argparse.Namespace:
    """Configure and return CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Render the fatal crash map slides to a standalone HTML document."
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT_PATH,
        help="Destination HTML file (default: output/index.html).",
    )
    parser.add_argument(
        "--crash-table",
        type=Path,
        default=CRASH_TABLE_PATH,
        help="Serialized crash table (.parquet, .feather, .pkl or .csv).",
    )
    parser.add_argument(
        "--year",
        type=int,
        default=FOCUS_YEAR,
        help="Year shown on the map slides (default: %(default)s).",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    print(f"Building slides for {args.year} from {args.crash_table} ...")
    try:
        output_path, warnings = build_deck(
            args.output,
            crash_path=args.crash_table,
            year=args.year,
        )
    except FileNotFoundError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except (ValueError, RuntimeError) as exc:
        print(f"ERROR: deck build failed: {exc}", file=sys.stderr)
        return 1

    for message in dict.fromkeys(warnings):
        print(f"WARNING: {message}", file=sys.stderr)

    display_path: Path = output_path
    try:
        display_path = output_path.resolve().relative_to(Path.cwd())
    except ValueError:
        display_path = output_path

    print(f"Saved slide deck to {display_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
