from __future__ import annotations

import sys
from typing import Sequence, TextIO

from gpmf_telemetry.config import config
from gpmf_telemetry.processing.sample_store import SampleStore
from gpmf_telemetry.telemetry_data import OutputRow, PositionSample


def format_header(column_names: Sequence[str] | None = None) -> str:
    if column_names is None:
        column_names = config.COLUMN_NAMES
    return ",".join(f'"{name}"' for name in column_names)


class RowEmitter:
    """Writes one CSV row per GPS5 sample to *out*."""

    def __init__(
        self,
        store: SampleStore,
        file_time_offset: float = 0.0,
        out: TextIO | None = None,
    ):
        self.store = store
        self.file_time_offset = file_time_offset
        self._out = out if out is not None else sys.stdout
        self.rows_written = 0

    def write_header(self) -> None:
        self._out.write(format_header() + "\n")

    def build_row(self, offset_s: float, sample: PositionSample) -> OutputRow:
        return OutputRow(
            timestamp_ms=(self.file_time_offset + offset_s) * 1000.0,
            iso_timestamp=self.store.current_time_anchor().isoformat(),
            position=sample,
            fix=self.store.current_fix(),
            precision=self.store.current_precision(),
        )

    def emit(self, offset_s: float, sample: PositionSample) -> OutputRow:
        row = self.build_row(offset_s, sample)
        self._out.write(row.format() + "\n")
        self.rows_written += 1
        return row
