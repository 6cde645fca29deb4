import os
from dotenv import load_dotenv

load_dotenv()

# ── NASA POWER ────────────────────────────────────────────────────────────────
POWER_DAILY_URL = os.getenv(
    "POWER_DAILY_URL", "https://power.larc.nasa.gov/api/temporal/daily/point"
)
POWER_COMMUNITY = "RE"
POWER_REQUEST_TIMEOUT_SECONDS = float(os.getenv("POWER_REQUEST_TIMEOUT_SECONDS", "60"))
POWER_SOURCE_URL = "https://power.larc.nasa.gov/"
DATA_SOURCE_NAME = "NASA POWER API"

# Default analysis window (inclusive years)
DEFAULT_START_YEAR = 2004
DEFAULT_END_YEAR = 2024

# Days either side of the requested calendar date to include
DEFAULT_WINDOW_DAYS = int(os.getenv("WINDOW_DAYS", "0"))

# ── Statistics ────────────────────────────────────────────────────────────────
SENTINEL_THRESHOLD = -999.0  # provider "no data" marker: any value <= this
STAT_DECIMALS = 2
PROBABILITY_DECIMALS = 3
TREND_DECIMALS = 2

# ── Geocoding ─────────────────────────────────────────────────────────────────
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
HTTP_USER_AGENT = "Weatherish/1.0 (climate-probability)"

# ── Export / logging ──────────────────────────────────────────────────────────
EXPORT_DIR = os.getenv("EXPORT_DIR", "data/exports")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Variable configuration ────────────────────────────────────────────────────
# variable_key → { code (POWER parameter), unit, label, threshold (default),
#                  risk (medium cut-off, high cut-off) on exceedance probability }
VARIABLES = {
    "temperature": {
        "code": "T2M",
        "unit": "°C",
        "label": "Temperature",
        "threshold": 30.0,
        "risk": (0.3, 0.5),
    },
    "precipitation": {
        "code": "PRECTOTCORR",
        "unit": "mm",
        "label": "Precipitation",
        "threshold": 10.0,
        "risk": (0.15, 0.3),
    },
    "windSpeed": {
        "code": "WS10M",
        "unit": "m/s",
        "label": "Wind Speed",
        "threshold": 15.0,
        "risk": (0.2, 0.4),
    },
    "humidity": {
        "code": "RH2M",
        "unit": "%",
        "label": "Humidity",
        "threshold": 80.0,
        "risk": (0.4, 0.6),
    },
}

# Variables checked by default when none are requested explicitly
DEFAULT_VARIABLES = ["temperature", "precipitation"]

# Reverse lookup (alias → variable key) for command-line and chat input.
_VARIABLE_ALIASES: dict[str, str] = {}
for _key, _info in VARIABLES.items():
    _VARIABLE_ALIASES[_key.lower()] = _key
    _VARIABLE_ALIASES[_info["label"].lower()] = _key
    _VARIABLE_ALIASES[_info["code"].lower()] = _key

_EXTRA_ALIASES: dict[str, str] = {
    "temp": "temperature",
    "t": "temperature",
    "rain": "precipitation",
    "precip": "precipitation",
    "wind": "windSpeed",
    "wind_speed": "windSpeed",
    "wind-speed": "windSpeed",
    "rh": "humidity",
}
for _alias, _key in _EXTRA_ALIASES.items():
    _VARIABLE_ALIASES[_alias] = _key


def variable_key_from_text(text: str) -> str | None:
    """Return the VARIABLES key that *text* names, or None."""
    return _VARIABLE_ALIASES.get(text.strip().lower())
