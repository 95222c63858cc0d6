from __future__ import annotations

import logging
import os

import structlog

_configured = False


def configure_logging() -> None:
    global _configured
    if _configured:
        return

    level_name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if os.getenv("LOG_FORMAT", "console").strip().lower() == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _configured = True


def _sample_rate(raw: str, default: float = 0.1) -> float:
    try:
        rate = float(raw)
    except ValueError:
        return default
    return max(0.0, min(1.0, rate))


def init_sentry() -> bool:
    """Enable error reporting when ``SENTRY_DSN`` is set. Returns whether it was enabled."""
    dsn = os.getenv("SENTRY_DSN", "").strip()
    if not dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    from . import __version__

    environment = os.getenv("SENTRY_ENV", os.getenv("APP_ENV", "development"))
    sentry_sdk.init(
        dsn=dsn,
        release=f"reddit-pulse@{__version__}",
        environment=environment,
        integrations=[FastApiIntegration()],
        traces_sample_rate=_sample_rate(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
    )
    structlog.get_logger().info("sentry_enabled", environment=environment)
    return True
