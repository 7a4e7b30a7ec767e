"""
Sub-payload timing.

GPSU arrives about once per payload while GPS5 carries ~18 samples, so each
sample's time is reconstructed by spreading the samples evenly across the
payload window. The store's time anchor moves forward by the same step, so
the absolute UTC time follows the file-relative offset.
"""

from __future__ import annotations

from typing import Iterator

from gpmf_telemetry.errors import DegenerateWindow
from gpmf_telemetry.processing.sample_store import SampleStore
from gpmf_telemetry.telemetry_data import PayloadWindow


class TimeInterpolator:
    def __init__(self, store: SampleStore):
        self._store = store
        self._now = 0.0
        self._step = 0.0
        self._sample_count = 0

    @property
    def step(self) -> float:
        """Seconds per sample in the current payload."""
        return self._step

    def begin(self, window: PayloadWindow, sample_count: int) -> None:
        if sample_count <= 0:
            raise DegenerateWindow(
                f"window [{window.start}, {window.finish}] has no samples"
            )
        self._sample_count = sample_count
        self._step = (window.finish - window.start) / sample_count
        self._now = window.start

    def _step_anchor(self) -> float:
        """Move the offset and the store's anchor forward by one step."""
        self._now += self._step
        anchor = self._store.current_time_anchor()
        self._store.set_time_anchor(anchor.shifted(self._step * 1000.0))
        return self._now

    def offsets(self) -> Iterator[float]:
        """Yield one offset per sample, starting at the window start.

        The anchor advances only after the consumer is done with a sample,
        so each row is stamped with the time of its own sample.
        """
        for _ in range(self._sample_count):
            yield self._now
            self._step_anchor()
