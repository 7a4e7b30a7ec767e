"""Error taxonomy for GPS telemetry extraction.

Every error is fatal to the run. The CLI maps each class to its own exit
status and prints ``summary`` as the one-line diagnostic.
"""

from __future__ import annotations


class GpmfTelemetryError(RuntimeError):
    exit_code: int = 1
    summary: str = "GPMF telemetry extraction failed"


class NoMetadataTrack(GpmfTelemetryError):
    exit_code = 3
    summary = "invalid MP4/MOV or it has no GPMF data"


class EmptyOrInvalidSource(GpmfTelemetryError):
    exit_code = 4
    summary = "GPMF track is empty or has no valid duration"


class MalformedTimestamp(GpmfTelemetryError, ValueError):
    exit_code = 5
    summary = "GPMF data has corruption (malformed GPSU timestamp)"


class DegenerateWindow(GpmfTelemetryError, ValueError):
    exit_code = 6
    summary = "GPMF data has corruption (time-bearing record without samples)"


class UnsupportedRecordType(GpmfTelemetryError):
    exit_code = 7
    summary = "Unknown GPMF Type within"


class StreamCorruption(GpmfTelemetryError):
    exit_code = 8
    summary = "GPMF data has corruption"
