#!/usr/bin/env python3
"""
Fetch and cache US Census cartographic boundary files for the slides.

Downloads the state, county and congressional district archives into
``data/boundaries`` and, when a tolerance is given, writes a simplified
GeoJSON next to each archive so deck builds read small files instead of
the full shapefiles.
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


import geopandas as gpd

from config import BOUNDARY_CACHE_DIR, BOUNDARY_YEAR
from geo.boundaries import (
    BOUNDARY_LEVELS,
    fetch_boundary_archive,
    normalize_boundaries,
    simplified_cache_path,
    simplify_boundaries,
)


DEFAULT_TOLERANCE = 0.01  # roughly 1km; enough for national-scale maps


def parse_args() -> argparse.Namespace:
    """Configure and return CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Download boundary archives and write simplified GeoJSON copies."
    )
    parser.add_argument(
        "--levels",
        nargs="+",
        choices=BOUNDARY_LEVELS,
        default=list(BOUNDARY_LEVELS),
        help="Boundary levels to cache (default: all).",
    )
    parser.add_argument(
        "--year",
        type=int,
        default=BOUNDARY_YEAR,
        help="Boundary vintage (default: %(default)s).",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=BOUNDARY_CACHE_DIR,
        help="Cache directory (default: data/boundaries).",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Download again even when the archive is already cached.",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=DEFAULT_TOLERANCE,
        help="Simplification tolerance in degrees (default: %(default)s). Use 0 to skip the GeoJSON copy.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    total = len(args.levels)
    failed = 0

    print(f"Caching {total} boundary level(s) for {args.year} in {args.cache_dir} ...")
    for index, level in enumerate(args.levels, start=1):
        print(f"[{index}/{total}] {level} ...", end=" ", flush=True)
        try:
            archive = fetch_boundary_archive(
                level,
                year=args.year,
                cache_dir=args.cache_dir,
                force=args.force,
            )
        except RuntimeError as exc:
            print(f"FAILED ({exc})")
            failed += 1
            continue

        if args.tolerance <= 0:
            print(f"OK ({archive.name})")
            continue

        boundaries = normalize_boundaries(gpd.read_file(archive), level)
        simplified = simplify_boundaries(boundaries, args.tolerance)
        output_path = simplified_cache_path(archive)
        simplified.to_file(output_path, driver="GeoJSON")
        print(f"OK ({len(simplified)} polygons -> {output_path.name})")

    if failed:
        print(f"Completed with {failed} failed level(s). See messages above for details.", file=sys.stderr)
        return 1
    print("Boundary cache is ready.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
