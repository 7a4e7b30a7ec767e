"""
GPMF Telemetry Scripts Package

Command-line entry points.

Available scripts:
- extract_gps_telemetry: GoPro MP4 files to a continuous GPS CSV on stdout
"""

__all__ = ["extract_gps_telemetry"]
