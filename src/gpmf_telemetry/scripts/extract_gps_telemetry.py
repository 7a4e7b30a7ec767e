#!/usr/bin/env python3
"""
Extract GPS Telemetry Script

Extracts GPS time and position telemetry from one or more GoPro MP4 files
into a single continuous CSV stream on stdout. Later files continue the
timestamps of the earlier ones, so chapter files of one recording can be
passed in order.

Usage:
    gpmf-telemetry GX010042.MP4 [GX020042.MP4 ...] > track.csv

Set GPMF_TELEMETRY_VERBOSE=1 for debug logging on stderr.
"""

import argparse
import logging
import sys

import rich.console
import rich.logging

from gpmf_telemetry.config import config
from gpmf_telemetry.errors import GpmfTelemetryError
from gpmf_telemetry.processing.file_stitcher import TelemetryStitcher

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    # stdout carries the CSV, so diagnostics go to stderr
    log_format = r"\[[bold]%(name)s[/bold]] %(message)s"
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        datefmt="[%X]",
        handlers=[
            rich.logging.RichHandler(
                console=rich.console.Console(stderr=True, color_system="auto"),
                show_level=True,
                show_path=False,
                enable_link_path=False,
                rich_tracebacks=True,
                tracebacks_show_locals=False,
                markup=True,
            )
        ],
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Extract GoPro GPS telemetry (GPSU, GPSF, GPSP, GPS5) to CSV"
    )
    parser.add_argument("mp4files", nargs="+", metavar="mp4file", help="GoPro MP4 file")
    args = parser.parse_args(argv)

    setup_logging(config.VERBOSE)

    stitcher = TelemetryStitcher(out=sys.stdout)
    try:
        stitcher.run(args.mp4files)
    except GpmfTelemetryError as exc:
        # one unwrapped line, without the log handler's columns
        rich.console.Console(stderr=True, soft_wrap=True).print(
            f"ERROR: {exc.summary}: {exc}", markup=False, highlight=False
        )
        return exc.exit_code
    finally:
        sys.stdout.flush()

    logger.info(
        f"Summary: {stitcher.rows_written} rows from {len(args.mp4files)} files "
        f"({stitcher.file_time_offset:.1f} s)."
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
