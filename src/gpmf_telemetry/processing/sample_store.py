"""Latest-observed GPS state: fix quality, precision and UTC time anchor."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from gpmf_telemetry.errors import MalformedTimestamp
from gpmf_telemetry.telemetry_data import TimeAnchor

logger = logging.getLogger(__name__)

# GPSU field positions in "YYMMDDHHMMSS.mmm" (position 12 is the separator)
_GPSU_FIELDS = {
    "year": slice(0, 2),
    "month": slice(2, 4),
    "day": slice(4, 6),
    "hour": slice(6, 8),
    "minute": slice(8, 10),
    "second": slice(10, 12),
    "millisecond": slice(13, 16),
}
_GPSU_LENGTH = 16


def parse_gpsu(gpsu: str) -> TimeAnchor:
    """Parse a GPMF ``GPSU`` string into a :class:`TimeAnchor`.

    Format: ``YYMMDDHHMMSS.mmm``  e.g. ``"250508104822.180"``. The value is
    already UTC. Characters past position 15 are ignored.
    """
    if len(gpsu) < _GPSU_LENGTH:
        raise MalformedTimestamp(f"GPSU {gpsu!r} is shorter than {_GPSU_LENGTH}")

    fields: dict[str, int] = {}
    for name, span in _GPSU_FIELDS.items():
        digits = gpsu[span]
        if not (digits.isascii() and digits.isdigit()):
            raise MalformedTimestamp(f"GPSU {gpsu!r}: {name} {digits!r} is not numeric")
        fields[name] = int(digits)

    try:
        whole_seconds = datetime(
            2000 + fields["year"],
            fields["month"],
            fields["day"],
            fields["hour"],
            fields["minute"],
            fields["second"],
            tzinfo=timezone.utc,
        )
    except ValueError as exc:
        raise MalformedTimestamp(f"GPSU {gpsu!r}: {exc}") from exc

    return TimeAnchor(
        whole_seconds=whole_seconds, milliseconds=float(fields["millisecond"])
    )


class SampleStore:
    """Most recent GPSF / GPSP / GPSU values of one file.

    Values stay valid until overwritten. Fix and precision read as 0 and the
    time anchor as the Unix epoch until first observed.
    """

    def __init__(self):
        self._fix = 0
        self._precision = 0
        self._time_anchor = TimeAnchor()

    def observe_fix(self, quality: int) -> None:
        self._fix = int(quality)

    def observe_precision(self, value: int) -> None:
        self._precision = int(value) & 0xFFFF

    def observe_time_anchor(self, raw: str) -> None:
        self._time_anchor = parse_gpsu(raw)
        logger.debug("GPSU %s", self._time_anchor.isoformat())

    def set_time_anchor(self, anchor: TimeAnchor) -> None:
        self._time_anchor = anchor

    def current_fix(self) -> int:
        return self._fix

    def current_precision(self) -> int:
        return self._precision

    def current_time_anchor(self) -> TimeAnchor:
        return self._time_anchor
