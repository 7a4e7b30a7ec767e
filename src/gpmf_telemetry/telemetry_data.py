"""Telemetry data models shared by the reconstruction pipeline."""

from __future__ import annotations

import datetime

import pydantic

UNIX_EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)

# ---------------------------------------------------------------------------
# Time models
# ---------------------------------------------------------------------------


class PayloadWindow(pydantic.BaseModel):
    """Time span of one GPMF payload within its file (seconds)."""

    model_config = pydantic.ConfigDict(frozen=True)

    start: float
    finish: float


class TimeAnchor(pydantic.BaseModel):
    """Most recent absolute UTC time, split into whole seconds and milliseconds."""

    model_config = pydantic.ConfigDict(frozen=True)

    whole_seconds: datetime.datetime = UNIX_EPOCH
    """Second-resolution UTC time."""

    milliseconds: float = 0.0
    """Sub-second quantity to add to ``whole_seconds``, in ``[0, 1000)``."""

    def shifted(self, ms: float) -> TimeAnchor:
        """Return a copy moved forward by *ms* milliseconds.

        Whole seconds roll forward once for every 1000 ms accumulated, so
        minute, hour and day boundaries are handled by ``datetime``.
        """
        milliseconds = self.milliseconds + ms
        whole_seconds = self.whole_seconds
        while milliseconds >= 1000.0:
            milliseconds -= 1000.0
            whole_seconds += datetime.timedelta(seconds=1)
        return TimeAnchor(whole_seconds=whole_seconds, milliseconds=milliseconds)

    def isoformat(self) -> str:
        """``YYYY-MM-DDTHH:MM:SS.mmmZ`` with milliseconds truncated."""
        return "%s.%03dZ" % (
            self.whole_seconds.strftime("%Y-%m-%dT%H:%M:%S"),
            int(self.milliseconds),
        )


# ---------------------------------------------------------------------------
# Sample / row models
# ---------------------------------------------------------------------------


class PositionSample(pydantic.BaseModel):
    """One scaled GPS5 sample."""

    latitude: float  # deg
    longitude: float  # deg
    altitude: float  # m, WGS 84
    speed_2d: float  # m/s
    speed_3d: float  # m/s

    @classmethod
    def from_values(cls, values) -> PositionSample:
        lat, lon, alt, speed_2d, speed_3d = (float(v) for v in values[:5])
        return cls(
            latitude=lat,
            longitude=lon,
            altitude=alt,
            speed_2d=speed_2d,
            speed_3d=speed_3d,
        )


class OutputRow(pydantic.BaseModel):
    timestamp_ms: float
    """Milliseconds since the start of the first file of the run."""

    iso_timestamp: str
    position: PositionSample
    fix: int = 0
    precision: int = 0

    def format(self) -> str:
        p = self.position
        return (
            f"{self.timestamp_ms:f}, {self.iso_timestamp}, "
            f"{p.latitude:.6f}, {p.longitude:.6f}, {p.altitude:.6f}, "
            f"{p.speed_2d:.6f}, {p.speed_3d:.6f}, "
            f"{self.fix}, {self.precision}"
        )
