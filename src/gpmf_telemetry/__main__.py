import sys

from gpmf_telemetry.scripts.extract_gps_telemetry import main

sys.exit(main())
