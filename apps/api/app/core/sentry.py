"""Sentry SDK integration.

Captures exceptions and performance traces without leaking GitHub
credentials. Every request to this API carries a session token that wraps
a GitHub access token, so scrubbing is not optional here:

  - `send_default_pii=False`: no cookies or user data sent by default.
  - `before_send` redacts any field whose key looks sensitive (token,
    secret, password, dsn, api_key, authorization, cookie) in `extra`,
    `request.data` and `request.headers`.
  - No-op when SENTRY_DSN is empty (local dev, CI).
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS = frozenset(
    {"api_key", "secret", "password", "token", "dsn", "authorization", "cookie"}
)

REDACTED = "[REDACTED]"


def _scrub_secrets(event: dict[str, Any], hint: Any) -> dict[str, Any]:
    """Sentry before_send hook: redact values for sensitive keys."""
    _scrub_dict(event.get("extra", {}))
    request = event.get("request", {})
    for section in ("data", "headers"):
        value = request.get(section)
        if isinstance(value, dict):
            _scrub_dict(value)
    return event


def _scrub_dict(d: dict[str, Any]) -> None:
    """Recursively redact sensitive values in-place."""
    for key in list(d.keys()):
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
            d[key] = REDACTED
        elif isinstance(d[key], dict):
            _scrub_dict(d[key])


def init_sentry(dsn: str, environment: str = "development") -> bool:
    """Initialise the Sentry SDK. Returns True when Sentry was enabled.

    Args:
        dsn: Sentry DSN string. Empty string disables Sentry entirely.
        environment: Sentry environment tag ("development" | "production").
    """
    if not dsn or not dsn.strip():
        logger.debug("Sentry DSN not configured: skipping initialisation")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.httpx import HttpxIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[FastApiIntegration(), HttpxIntegration()],
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=_scrub_secrets,
    )
    logger.info("Sentry initialised (environment=%s)", environment)
    return True
