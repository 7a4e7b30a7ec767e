import pydantic_settings


class GpmfTelemetryConfig(pydantic_settings.BaseSettings):
    model_config = pydantic_settings.SettingsConfigDict(env_prefix="GPMF_TELEMETRY_")

    # External tools used to reach the GPMF track
    FFPROBE: str = "ffprobe"
    FFMPEG: str = "ffmpeg"

    # Sample description tag of the GoPro metadata track
    GPMF_CODEC_TAG: str = "gpmd"

    # Debug logging on stderr
    VERBOSE: bool = False

    # --- GPMF FourCC keys ---
    TIME_SYNC_KEY: str = "GPSU"  # UTC "YYMMDDHHMMSS.mmm"
    FIX_KEY: str = "GPSF"  # 0 = no lock, 2 = 2D, 3 = 3D
    PRECISION_KEY: str = "GPSP"  # DOP x 100
    POSITION_KEY: str = "GPS5"  # lat, lon, alt, speed2d, speed3d
    SCALE_KEY: str = "SCAL"

    # --- CSV output ---
    COLUMN_NAMES: list[str] = [
        "cts",
        "date",
        "GPS (Lat.) [deg]",
        "GPS (Long.) [deg]",
        "GPS (Alt.) [m]",
        "GPS (2D speed) [m/s]",
        "GPS (3D speed) [m/s]",
        "fix",
        "precision",
    ]


config = GpmfTelemetryConfig()
