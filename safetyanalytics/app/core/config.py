import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def load_env_file(env_path: Path) -> bool:
    """Load KEY=VALUE lines from a .env file into os.environ (existing keys win)."""
    if not env_path.exists():
        return False
    with open(env_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.split("#")[0].strip()  # Remove inline comments
                os.environ.setdefault(key, value)
    return True


def _parse_cors_origins(value: str | None) -> list[str]:
    if not value:
        return ["*"]

    cleaned = value.strip()
    if not cleaned:
        return ["*"]

    if cleaned.startswith("["):
        try:
            parsed = json.loads(cleaned)
            if isinstance(parsed, list):
                origins = [str(item).strip() for item in parsed if str(item).strip()]
                if origins:
                    return origins
        except json.JSONDecodeError:
            pass

    origins = [item.strip() for item in cleaned.split(",") if item.strip()]
    return origins or ["*"]


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


ENV_FILE_LOADED = load_env_file(Path(__file__).resolve().parent.parent / ".env")

# OSHA standard: incidents per 200,000 work hours (100 employees x 2,000 hours)
OSHA_HOURS = 200000

BASELINE_HOURS = _env_float("SAFETY_BASELINE_HOURS", float(OSHA_HOURS))
PATTERN_THRESHOLD = _env_int("SAFETY_PATTERN_THRESHOLD", 3)
TREND_THRESHOLD = _env_float("SAFETY_TREND_THRESHOLD", 5.0)
MAX_UPLOAD_BYTES = _env_int("SAFETY_MAX_UPLOAD_BYTES", 20 * 1024 * 1024)
PREFERENCES_PATH = Path(
    os.environ.get("SAFETY_PREFERENCES_PATH", "~/.safety_analytics/preferences.json")
).expanduser()
LOG_LEVEL = os.environ.get("SAFETY_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = _parse_cors_origins(os.environ.get("CORS_ORIGINS"))
