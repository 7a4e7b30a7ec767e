"""Synthetic GPMF payload builders."""

from __future__ import annotations

import struct
from pathlib import Path

import pytest

from gpmf_telemetry.processing.gpmf_source import Payload, iter_records
from gpmf_telemetry.telemetry_data import PayloadWindow

GPS5_SCAL = (10_000_000, 10_000_000, 1000, 1000, 100)


def klv(key: str, type_char: str, struct_size: int, repeat: int, data: bytes) -> bytes:
    header = struct.pack(
        ">4scBH", key.encode("ascii"), type_char.encode("latin1"), struct_size, repeat
    )
    return header + data + b"\x00" * ((-len(data)) % 4)


def container(key: str, *children: bytes) -> bytes:
    body = b"".join(children)
    return struct.pack(">4scBH", key.encode("ascii"), b"\x00", 4, len(body) // 4) + body


def gpsu(value: str) -> bytes:
    return klv("GPSU", "U", 16, 1, value.encode("ascii"))


def gpsf(value: int) -> bytes:
    return klv("GPSF", "L", 4, 1, struct.pack(">I", value))


def gpsp(value: int) -> bytes:
    return klv("GPSP", "S", 2, 1, struct.pack(">H", value))


def gps5(positions, scal=GPS5_SCAL) -> list[bytes]:
    """SCAL + GPS5 items for *positions* given in physical units."""
    raw = b"".join(
        struct.pack(">5l", *(round(v * s) for v, s in zip(p, scal))) for p in positions
    )
    return [
        klv("SCAL", "l", 4, len(scal), struct.pack(">%dl" % len(scal), *scal)),
        klv("GPS5", "l", 20, len(positions), raw),
    ]


def gps_payload(positions=(), *, time=None, fix=None, precision=None) -> bytes:
    """One DEVC > STRM payload in the order GoPro cameras write it."""
    items = []
    if fix is not None:
        items.append(gpsf(fix))
    if time is not None:
        items.append(gpsu(time))
    if precision is not None:
        items.append(gpsp(precision))
    if positions:
        items.extend(gps5(positions))
    return container("DEVC", klv("DVNM", "c", 11, 1, b"HERO9 Black"), container("STRM", *items))


class FakeSource:
    """Stands in for :class:`GpmfSource` with in-memory payloads."""

    records = staticmethod(iter_records)

    def __init__(self, name: str, payloads: list[tuple[float, float, bytes]], duration=None):
        self.mp4_path = Path(name)
        self._payloads = [
            Payload(index=i, window=PayloadWindow(start=s, finish=f), raw=raw)
            for i, (s, f, raw) in enumerate(payloads)
        ]
        if duration is None:
            duration = payloads[-1][1] if payloads else 0.0
        self.duration = duration
        self.closed = False

    @property
    def payload_count(self) -> int:
        return len(self._payloads)

    def payloads(self):
        yield from self._payloads

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True


@pytest.fixture
def position():
    return (51.5, -0.12, 35.0, 1.5, 2.0)
