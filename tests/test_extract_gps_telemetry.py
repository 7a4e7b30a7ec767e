import pytest

from conftest import FakeSource, container, gps_payload, klv
from gpmf_telemetry.processing.gpmf_source import GpmfSource
from gpmf_telemetry.scripts import extract_gps_telemetry


def test_usage_without_files(capsys):
    with pytest.raises(SystemExit) as exc_info:
        extract_gps_telemetry.main([])

    assert exc_info.value.code != 0
    assert "usage" in capsys.readouterr().err


def test_missing_file_exits_with_no_metadata_code(tmp_path, capsys):
    assert extract_gps_telemetry.main([str(tmp_path / "missing.MP4")]) == 3
    assert capsys.readouterr().out == ""


def test_writes_csv_to_stdout(monkeypatch, capsys, position):
    sources = {
        "A.MP4": FakeSource(
            "A.MP4",
            [(0.0, 1.0, gps_payload([position], time="210615123045.000", fix=3, precision=150))],
        ),
        "B.MP4": FakeSource("B.MP4", [(0.0, 1.0, gps_payload([position]))]),
    }
    monkeypatch.setattr(GpmfSource, "open", classmethod(lambda cls, path: sources[path.name]))

    assert extract_gps_telemetry.main(["A.MP4", "B.MP4"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].startswith('"cts","date"')
    assert lines[1].startswith("0.000000, 2021-06-15T12:30:45.000Z, 51.500000")
    assert lines[2].startswith("1000.000000, 1970-01-01T00:00:00.000Z")


def test_unsupported_type_exit_code(monkeypatch, capsys):
    raw = container("DEVC", container("STRM", klv("GPSP", "?", 2, 1, b"\x00\x00")))
    monkeypatch.setattr(
        GpmfSource,
        "open",
        classmethod(lambda cls, path: FakeSource("A.MP4", [(0.0, 1.0, raw)])),
    )

    assert extract_gps_telemetry.main(["A.MP4"]) == 7
    # header was already written when the error hit
    assert capsys.readouterr().out.splitlines() == [
        '"cts","date","GPS (Lat.) [deg]","GPS (Long.) [deg]","GPS (Alt.) [m]",'
        '"GPS (2D speed) [m/s]","GPS (3D speed) [m/s]","fix","precision"'
    ]


def _serve(monkeypatch, raw):
    monkeypatch.setattr(
        GpmfSource,
        "open",
        classmethod(lambda cls, path: FakeSource("A.MP4", [(0.0, 1.0, raw)])),
    )


def test_unsupported_type_reports_one_line(monkeypatch, capsys):
    raw = container("DEVC", container("STRM", klv("GPSP", "?", 2, 1, b"\x00\x00")))
    _serve(monkeypatch, raw)

    assert extract_gps_telemetry.main(["A.MP4"]) == 7

    err = capsys.readouterr().err
    assert err.count("\n") == 1
    assert err.startswith("ERROR: Unknown GPMF Type within: GPSP")


def test_stream_corruption_reports_one_line(monkeypatch, capsys):
    # GPS5 declares four 20-byte samples but carries only one
    raw = container("DEVC", container("STRM", klv("GPS5", "l", 20, 4, b"\x00" * 20)))
    _serve(monkeypatch, raw)

    assert extract_gps_telemetry.main(["A.MP4"]) == 8

    err = capsys.readouterr().err
    assert err.count("\n") == 1
    assert err.startswith("ERROR: GPMF data has corruption: GPS5 at offset 0 declares 80 bytes")


def test_long_diagnostic_is_not_wrapped(tmp_path, capsys):
    missing = tmp_path / ("x" * 200) / "missing.MP4"

    assert extract_gps_telemetry.main([str(missing)]) == 3

    err = capsys.readouterr().err
    assert err.count("\n") == 1
    assert str(missing) in err
