from __future__ import annotations

import logging
from typing import Iterable

from gpmf_telemetry.config import config
from gpmf_telemetry.errors import StreamCorruption
from gpmf_telemetry.processing.gpmf_source import KeyedRecord
from gpmf_telemetry.processing.row_emitter import RowEmitter
from gpmf_telemetry.processing.sample_store import SampleStore
from gpmf_telemetry.processing.time_interpolator import TimeInterpolator
from gpmf_telemetry.telemetry_data import PayloadWindow, PositionSample

logger = logging.getLogger(__name__)

_GPS5_ELEMENTS = 5


class PayloadDriver:
    """Routes the keyed records of each payload of one file.

    Owns the file's :class:`SampleStore`, so GPSF / GPSP / GPSU values carry
    over from one payload to the next but never into another file.
    """

    def __init__(self, emitter: RowEmitter):
        self.store: SampleStore = emitter.store
        self.interpolator = TimeInterpolator(self.store)
        self.emitter = emitter

    def process_payload(
        self, records: Iterable[KeyedRecord], window: PayloadWindow
    ) -> float:
        """Process *records* in stream order and return the window's finish time."""
        for record in records:
            if not record.repeat or not record.struct_size:
                logger.debug("Skipping empty %s record", record.key)
                continue

            if record.key == config.TIME_SYNC_KEY:
                self.store.observe_time_anchor(record.text())
            elif record.key == config.FIX_KEY:
                self.store.observe_fix(int(record.values()[0, 0]))
            elif record.key == config.PRECISION_KEY:
                self.store.observe_precision(int(record.values()[0, 0]))
            elif record.key == config.POSITION_KEY:
                self._emit_positions(record, window)

        return window.finish

    def _emit_positions(self, record: KeyedRecord, window: PayloadWindow) -> None:
        samples = record.scaled()
        if samples.shape[1] < _GPS5_ELEMENTS:
            raise StreamCorruption(
                f"{record.key} has {samples.shape[1]} elements, "
                f"expected {_GPS5_ELEMENTS}"
            )
        self.interpolator.begin(window, samples.shape[0])
        # offsets() leads so its final anchor step runs once samples run out
        for offset, values in zip(self.interpolator.offsets(), samples):
            self.emitter.emit(offset, PositionSample.from_values(values))
