"""
EPIC Archive Sync - Orchestrator

Brings a local mirror of NASA's EPIC (Earth Polychromatic Imaging
Camera) natural-color archive up to date with the public catalog.

Workflow:
  1. Fetch available EPIC dates from the catalog and the local mirror
  2. Work out which dates the mirror is missing
  3. Fetch the image manifest for each missing date
  4. Download every PNG (optionally making a JPEG thumbnail)
  5. Print a run summary

Exit status: 0 on success, 1 on a fatal or configuration error, 2 on a
command-line usage error (argparse), 3 when the run finished but some
dates or images failed.
"""

import argparse
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path

from epic_sync.config import Settings
from epic_sync.errors import EpicSyncError
from epic_sync.nasa_api import EpicClient
from epic_sync.summary import print_summary
from epic_sync.sync import run_sync


def _count(minimum: int):
    def parse(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"invalid int value: {text!r}") from None
        if value < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {value}")
        return value
    return parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync a local EPIC image mirror with NASA's catalog")
    parser.add_argument(
        "--limit", type=_count(0), default=None,
        help="Process at most this many missing dates (default: all, or EPIC_DATE_LIMIT)",
    )
    parser.add_argument(
        "--workers", type=_count(1), default=None,
        help="Concurrent manifest fetches / downloads (default: EPIC_WORKERS or 1)",
    )
    parser.add_argument(
        "--output-dir", type=Path, default=None,
        help="Where to write PNGs (default: EPIC_OUTPUT_DIR or the temp directory)",
    )
    parser.add_argument(
        "--resize", type=_count(1), default=None, metavar="SIZE",
        help="Also write a SIZExSIZE JPEG thumbnail for each image",
    )
    parser.add_argument(
        "--overwrite", action="store_true",
        help="Re-download images that already exist locally",
    )
    parser.add_argument(
        "--fail-fast", action="store_true",
        help="Stop at the first failed date or image",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"[MAIN] Configuration error: {e}", file=sys.stderr)
        return 1

    settings = settings.with_overrides(
        output_dir=args.output_dir,
        workers=args.workers,
        date_limit=args.limit,
    )

    print("\n" + "=" * 60)
    print("  EPIC ARCHIVE SYNC")
    print(f"  {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print(f"  Catalog: {settings.catalog_url}")
    print(f"  Mirror:  {settings.mirror_url}")
    print(f"  Output:  {settings.output_dir}")
    print("=" * 60)

    try:
        with EpicClient(settings) as client:
            report = run_sync(
                client,
                settings,
                limit=settings.date_limit,
                workers=settings.workers,
                resize=args.resize,
                overwrite=args.overwrite,
                fail_fast=args.fail_fast,
            )
    except EpicSyncError as e:
        print(f"\n[MAIN] FATAL ERROR: {e}")
        traceback.print_exc()
        return 1

    print_summary(report)
    return 0 if report.ok else 3


if __name__ == "__main__":
    sys.exit(main())
