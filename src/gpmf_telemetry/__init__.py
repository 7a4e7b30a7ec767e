"""GPS telemetry extraction from GoPro GPMF metadata tracks."""

__version__ = "1.0.0"
