import logging
import os

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

logger = logging.getLogger(__name__)


def _sample_rate(env_var: str) -> float:
    """Read a Sentry sample rate, falling back to ``0.0`` when unusable."""

    raw = os.getenv(env_var)
    if raw is None:
        return 0.0
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s is not a number (got %r); sampling disabled", env_var, raw)
        return 0.0
    if not 0.0 <= value <= 1.0:
        logger.warning("%s must be within [0, 1] (got %s); sampling disabled", env_var, value)
        return 0.0
    return value


def init_sentry() -> bool:
    """Initialise Sentry from ``SENTRY_*`` variables; ``False`` when disabled."""

    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        logger.info("SENTRY_DSN not provided; error reporting disabled.")
        return False

    environment = (os.getenv("SENTRY_ENVIRONMENT") or "").strip() or None
    release = (os.getenv("SENTRY_RELEASE") or "").strip() or None

    sentry_sdk.init(
        dsn=dsn,
        integrations=[FastApiIntegration()],
        environment=environment,
        release=release,
        traces_sample_rate=_sample_rate("SENTRY_TRACES_SAMPLE_RATE"),
        profiles_sample_rate=_sample_rate("SENTRY_PROFILES_SAMPLE_RATE"),
        send_default_pii=False,
    )
    sentry_sdk.set_tag("service", "groupladder")
    logger.info("Sentry enabled (environment=%s, release=%s)", environment, release)
    return True
