"""
GPMF metadata source — reaches the ``gpmd`` track of a GoPro MP4 and walks its KLV records.

Each MP4 packet on the metadata track is one GPMF payload covering a time window
given by the packet's ``pts_time`` and ``duration_time``. Packet timing comes from
``ffprobe``; the raw payload bytes come from ``ffmpeg`` and are split by the packet
sizes ffprobe reports.

Within a payload, GPMF data is a tree of KLV items: a 4-byte FourCC key, a 1-byte
type, a 1-byte structure size, a 2-byte big-endian repeat count, then
``struct_size * repeat`` bytes padded to a 4-byte boundary. Type ``0`` marks a
nested container (``DEVC``, ``STRM``). Leaf items are yielded depth-first in
stream order; the ``SCAL`` divisor that precedes a data item inside the same
``STRM`` is attached to it.
"""

from __future__ import annotations

import json
import logging
import struct
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np

from gpmf_telemetry.config import config
from gpmf_telemetry.errors import NoMetadataTrack, StreamCorruption, UnsupportedRecordType
from gpmf_telemetry.telemetry_data import PayloadWindow

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# GPMF binary type → numpy big-endian dtype
# ---------------------------------------------------------------------------
_TYPE_DTYPE: dict[str, str] = {
    "b": "i1",
    "B": "u1",
    "s": ">i2",
    "S": ">u2",
    "l": ">i4",
    "L": ">u4",
    "f": ">f4",
    "d": ">f8",
    "j": ">i8",
    "J": ">u8",
}

# ASCII payloads: plain chars and the 16-byte UTC date string
_TEXT_TYPES = {"c", "U"}

_KLV_HEADER = struct.Struct(">4scBH")


# ---------------------------------------------------------------------------
# Data-classes for payloads and records
# ---------------------------------------------------------------------------


@dataclass
class KeyedRecord:
    """One leaf KLV item of a GPMF payload."""

    key: str  # e.g. "GPS5", "GPSU"
    type_char: str  # GPMF type, e.g. "l", "U"
    struct_size: int  # bytes per sample
    repeat: int  # number of samples
    data: bytes
    scal_record: KeyedRecord | None = None  # preceding SCAL in the same STRM

    @property
    def scal(self) -> np.ndarray | None:
        """SCAL divisors, decoded only when a value is scaled."""
        if self.scal_record is None:
            return None
        return self.scal_record.values().flatten()

    @property
    def elements(self) -> int:
        """Number of values per sample."""
        if self.type_char in _TEXT_TYPES:
            return self.struct_size
        dtype = _TYPE_DTYPE.get(self.type_char)
        if dtype is None:
            return 1
        return self.struct_size // np.dtype(dtype).itemsize

    def values(self) -> np.ndarray:
        """Decode the record into a ``(repeat, elements)`` float64 array."""
        dtype = _TYPE_DTYPE.get(self.type_char)
        if dtype is None:
            raise UnsupportedRecordType(
                f"{self.key}: cannot decode GPMF type {self.type_char!r}"
            )
        elems = self.elements
        total = elems * self.repeat
        if total == 0 or total * np.dtype(dtype).itemsize > len(self.data):
            raise StreamCorruption(
                f"{self.key}: {len(self.data)} bytes do not hold "
                f"{self.repeat} x {elems} values of type {self.type_char!r}"
            )
        flat = np.frombuffer(self.data, dtype=dtype, count=total)
        return flat.astype(np.float64).reshape(self.repeat, elems)

    def scaled(self) -> np.ndarray:
        """Return :meth:`values` divided by the stream's ``SCAL``."""
        values = self.values()
        scal = self.scal
        if scal is None or scal.size == 0:
            return values
        if scal.size == 1:
            return values / scal[0]
        if scal.size != values.shape[1]:
            raise StreamCorruption(
                f"{self.key}: SCAL has {scal.size} divisors "
                f"for {values.shape[1]} elements"
            )
        return values / scal[np.newaxis, :]

    def text(self) -> str:
        """Decode an ASCII record (``c`` or ``U``) into a string."""
        if self.type_char not in _TEXT_TYPES:
            raise UnsupportedRecordType(
                f"{self.key}: GPMF type {self.type_char!r} is not text"
            )
        return (
            self.data[: self.struct_size * self.repeat]
            .decode("latin1", errors="replace")
            .rstrip("\x00")
        )


@dataclass
class Payload:
    """One GPMF payload (one MP4 packet, ≈1 s of data)."""

    index: int
    window: PayloadWindow
    raw: bytes


# ---------------------------------------------------------------------------
# Low-level GPMF KLV walking
# ---------------------------------------------------------------------------


def _decode_key(raw_key: bytes, pos: int) -> str:
    if not all(0x20 <= b < 0x7F for b in raw_key):
        raise StreamCorruption(f"invalid GPMF key {raw_key!r} at offset {pos}")
    return raw_key.decode("ascii")


def iter_records(data: bytes) -> Iterator[KeyedRecord]:
    """Lazily yield leaf :class:`KeyedRecord` items of *data* in stream order."""
    pos = 0
    length = len(data)
    scal_record: KeyedRecord | None = None
    while pos < length:
        if pos + _KLV_HEADER.size > length:
            # Trailing zero padding is legal; anything else is a cut header
            if any(data[pos:]):
                raise StreamCorruption(f"truncated KLV header at offset {pos}")
            return
        raw_key, raw_type, struct_size, repeat = _KLV_HEADER.unpack_from(data, pos)
        if raw_key == b"\x00\x00\x00\x00":
            # Zero key marks the end of the valid data in a padded payload
            return
        key = _decode_key(raw_key, pos)
        type_char = raw_type.decode("latin1")
        data_len = struct_size * repeat
        start = pos + _KLV_HEADER.size
        end = start + data_len
        if end > length:
            raise StreamCorruption(
                f"{key} at offset {pos} declares {data_len} bytes, "
                f"only {length - start} remain"
            )
        body = data[start:end]
        pos = end + (4 - (end % 4)) % 4

        if type_char == "\x00":
            yield from iter_records(body)
            continue

        record = KeyedRecord(
            key=key,
            type_char=type_char,
            struct_size=struct_size,
            repeat=repeat,
            data=body,
            scal_record=scal_record,
        )
        if key == config.SCALE_KEY and repeat and struct_size:
            scal_record = record
        yield record


# ---------------------------------------------------------------------------
# ffprobe / ffmpeg helpers
# ---------------------------------------------------------------------------


def _run(args: list[str], text: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(args, capture_output=True, text=text, check=True)


def _probe_gpmf_stream(mp4_path: Path) -> tuple[int, float]:
    """Return the stream index and duration of the ``gpmd`` track."""
    result = _run(
        [
            config.FFPROBE,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_streams",
            str(mp4_path),
        ]
    )
    info = json.loads(result.stdout)
    for s in info.get("streams", []):
        if s.get("codec_tag_string") == config.GPMF_CODEC_TAG:
            duration = s.get("duration")
            return int(s["index"]), float(duration) if duration else 0.0
    raise NoMetadataTrack(f"{mp4_path} has no {config.GPMF_CODEC_TAG} stream")


def _probe_packets(mp4_path: Path, stream_idx: int) -> list[dict]:
    result = _run(
        [
            config.FFPROBE,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_packets",
            "-select_streams",
            str(stream_idx),
            str(mp4_path),
        ]
    )
    return json.loads(result.stdout).get("packets", [])


def _extract_raw(mp4_path: Path, stream_idx: int) -> bytes:
    result = _run(
        [
            config.FFMPEG,
            "-v",
            "quiet",
            "-i",
            str(mp4_path),
            "-map",
            f"0:{stream_idx}",
            "-f",
            "rawvideo",
            "-",
        ],
        text=False,
    )
    return result.stdout


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class GpmfSource:
    """GPMF payloads of one MP4 file, with per-packet timing."""

    def __init__(
        self,
        mp4_path: Path,
        duration: float,
        packets: list[dict],
        raw: bytes,
    ):
        self.mp4_path = mp4_path
        self.duration = duration
        self._packets = packets
        self._raw = raw

    @classmethod
    def open(cls, mp4_path: str | Path) -> GpmfSource:
        """Locate the GPMF track of *mp4_path* and load its packets.

        Raises :class:`NoMetadataTrack` if the file is unreadable or has no
        ``gpmd`` track.
        """
        mp4_path = Path(mp4_path)
        if not mp4_path.is_file():
            raise NoMetadataTrack(f"{mp4_path} does not exist")

        t0 = time.monotonic()
        try:
            stream_idx, duration = _probe_gpmf_stream(mp4_path)
            logger.debug("Found gpmd metadata on stream index %d", stream_idx)
            packets = _probe_packets(mp4_path, stream_idx)
            raw = _extract_raw(mp4_path, stream_idx)
        except (subprocess.CalledProcessError, OSError, json.JSONDecodeError) as exc:
            raise NoMetadataTrack(f"{mp4_path}: {exc}") from exc

        total_expected = sum(int(p["size"]) for p in packets)
        if total_expected != len(raw):
            logger.warning(
                "Raw GPMF size mismatch: expected %d, got %d bytes",
                total_expected,
                len(raw),
            )
        logger.debug(
            "Loaded %d GPMF packets (%.1f KiB) from %s in %.2f s",
            len(packets),
            len(raw) / 1024,
            mp4_path.name,
            time.monotonic() - t0,
        )
        return cls(mp4_path, duration, packets, raw)

    def __enter__(self) -> GpmfSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._packets = []
        self._raw = b""

    @property
    def payload_count(self) -> int:
        return len(self._packets)

    def payloads(self) -> Iterator[Payload]:
        """Yield payloads in index order."""
        offset = 0
        for index, pmeta in enumerate(self._packets):
            try:
                psize = int(pmeta["size"])
                start = float(pmeta["pts_time"])
                finish = start + float(pmeta["duration_time"])
            except (KeyError, ValueError) as exc:
                raise StreamCorruption(
                    f"packet {index} of {self.mp4_path.name} has no timing: {exc}"
                ) from exc
            chunk = self._raw[offset : offset + psize]
            offset += psize
            if len(chunk) < psize:
                raise StreamCorruption(
                    f"packet {index} of {self.mp4_path.name} is truncated"
                )
            yield Payload(
                index=index,
                window=PayloadWindow(start=start, finish=finish),
                raw=chunk,
            )

    @staticmethod
    def records(raw: bytes) -> Iterator[KeyedRecord]:
        return iter_records(raw)
