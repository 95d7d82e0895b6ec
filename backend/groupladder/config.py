import logging
import os

logger = logging.getLogger(__name__)


def _canon_prefix(val):
    """
    Normalize API prefix to always be exactly like '/api':
      - defaults to '/api' when unset/empty
      - ensures a single leading slash
      - removes any trailing slash (except for root)
    """
    val = (val or "/api").strip()
    if not val.startswith("/"):
        val = "/" + val
    if len(val) > 1 and val.endswith("/"):
        val = val[:-1]
    return val


def _env_float(env_var: str, default: float, *, minimum: float | None = None) -> float:
    raw_value = os.getenv(env_var)
    if raw_value is None or not raw_value.strip():
        return default

    try:
        value = float(raw_value)
    except ValueError:
        logger.warning(
            "%s is not a valid number (got %r); defaulting to %s",
            env_var,
            raw_value,
            default,
        )
        return default

    if minimum is not None and value < minimum:
        logger.warning("%s must be >= %s; defaulting to %s", env_var, minimum, default)
        return default

    return value


def _env_int(env_var: str, default: int, *, minimum: int | None = None) -> int:
    value = _env_float(env_var, float(default), minimum=minimum)
    if not value.is_integer():
        logger.warning("%s must be a whole number; defaulting to %s", env_var, default)
        return default
    return int(value)


API_PREFIX = _canon_prefix(os.getenv("API_PREFIX"))

# Elo parameters. New players (and every player at the start of a season)
# begin at BASELINE_RATING.
BASELINE_RATING = _env_float("BASELINE_RATING", 1200.0)
K_FACTOR = _env_float("K_FACTOR", 32.0, minimum=0.0)
RATING_FLOOR = _env_float("RATING_FLOOR", 800.0)
RATING_CEILING = _env_float("RATING_CEILING", 2400.0)

MAX_SCORE = _env_int("MAX_SCORE", 1000, minimum=0)

MIN_RELATIONSHIP_GAMES = _env_int("MIN_RELATIONSHIP_GAMES", 3, minimum=1)
RECENT_FORM_LENGTH = _env_int("RECENT_FORM_LENGTH", 5, minimum=1)

STATS_CACHE_TTL_SECONDS = _env_float("STATS_CACHE_TTL_SECONDS", 300.0, minimum=0.0)
STATS_CACHE_MAX_ENTRIES = _env_int("STATS_CACHE_MAX_ENTRIES", 512, minimum=1)
