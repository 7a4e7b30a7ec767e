"""
Multi-file stitching.

GoPro splits long recordings into chapter files. Each file's payload windows
start at zero, so a running offset (the sum of the previous files' last
payload finish times) is added to every row timestamp to keep the output
continuous across files.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Callable, Iterable, Sequence, TextIO

from gpmf_telemetry.errors import EmptyOrInvalidSource
from gpmf_telemetry.processing.gpmf_source import GpmfSource, KeyedRecord, Payload
from gpmf_telemetry.processing.payload_driver import PayloadDriver
from gpmf_telemetry.processing.row_emitter import RowEmitter
from gpmf_telemetry.processing.sample_store import SampleStore

logger = logging.getLogger(__name__)

RecordReader = Callable[[bytes], Iterable[KeyedRecord]]


class TelemetryStitcher:
    """Drives the payload pipeline over a sequence of files."""

    def __init__(
        self,
        out: TextIO | None = None,
        open_source: Callable[[Path], GpmfSource] | None = None,
    ):
        self.out = out if out is not None else sys.stdout
        self.open_source = open_source if open_source is not None else GpmfSource.open
        self.file_time_offset = 0.0
        self.header_written = False
        self.rows_written = 0

    def process_file(
        self,
        payloads: Iterable[Payload],
        read_records: RecordReader = GpmfSource.records,
    ) -> float:
        """Run every payload of one file and return its last finish time.

        Sample state starts fresh for each file; only ``file_time_offset``
        carries over from the files before it.
        """
        emitter = RowEmitter(SampleStore(), self.file_time_offset, self.out)
        driver = PayloadDriver(emitter)

        if not self.header_written:
            emitter.write_header()
            self.header_written = True

        last_finish = 0.0
        processed = 0
        try:
            for payload in payloads:
                last_finish = driver.process_payload(
                    read_records(payload.raw), payload.window
                )
                processed += 1
        finally:
            self.rows_written += emitter.rows_written

        if processed == 0:
            raise EmptyOrInvalidSource("file yielded no GPMF payloads")

        logger.debug(
            "%d payloads, %d rows, last finish %.3f s",
            processed,
            emitter.rows_written,
            last_finish,
        )
        return last_finish

    def process_source(self, source: GpmfSource) -> float:
        """Validate *source*, process it and advance the running offset."""
        if source.duration <= 0.0:
            raise EmptyOrInvalidSource(
                f"{source.mp4_path.name}: non-positive duration {source.duration}"
            )
        if source.payload_count == 0:
            raise EmptyOrInvalidSource(f"{source.mp4_path.name}: no GPMF payloads")

        last_finish = self.process_file(source.payloads(), source.records)
        self.file_time_offset += last_finish
        return last_finish

    def run(self, paths: Sequence[str | Path]) -> int:
        """Process *paths* in order and return the number of rows written.

        The first error aborts the run; rows already written stay in ``out``.
        """
        for path in paths:
            path = Path(path)
            t0 = time.monotonic()
            rows_before = self.rows_written
            with self.open_source(path) as source:
                logger.info(
                    "Processing %s (%d payloads, %.1f s)",
                    path.name,
                    source.payload_count,
                    source.duration,
                )
                self.process_source(source)
            logger.info(
                "Wrote %d rows from %s in %.2f s (offset now %.3f s)",
                self.rows_written - rows_before,
                path.name,
                time.monotonic() - t0,
                self.file_time_offset,
            )
        return self.rows_written
