"""Session Logging - library-scoped handler, session-aware JSON output, secret redaction.

Invariants:
    - Handlers attach to the "atp_session" logger only; the root logger is untouched
    - Level and format come from Settings (log_level, log_format)
    - Token-bearing text never leaves a configured handler: "Bearer <token>" and
      JWT-shaped strings are masked in messages, secret-named extras are masked
    - configure_logging is idempotent: a second call replaces its own handler

Design Decisions:
    - Redaction as a handler filter: it runs for records from every child logger,
      which a filter on the parent logger would not
    - Opt-in: importing the package configures nothing
"""

import json
import logging
import re
from datetime import datetime, timezone

from atp_session.config import Settings, get_settings

LIBRARY_LOGGER = "atp_session"
REDACTED = "[REDACTED]"

_SESSION_FIELDS = (
    "did", "handle", "service", "nsid", "error_code", "status_code", "event",
)
_SECRET_KEY_PARTS = ("jwt", "token", "password", "secret")
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)
# header.payload.signature, base64url; "eyJ" is the encoding of '{"'
_JWT_RE = re.compile(r"eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*")


def redact_secrets(text: str) -> str:
    """Mask bearer credentials and JWT-shaped substrings."""
    text = _BEARER_RE.sub(rf"\g<1>{REDACTED}", text)
    return _JWT_RE.sub(REDACTED, text)


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SECRET_KEY_PARTS)


class SecretRedactingFilter(logging.Filter):
    """Rewrite records in place so no formatter can emit a token."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact_secrets(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        for key in list(record.__dict__):
            if _is_secret_key(key) and record.__dict__[key] is not None:
                record.__dict__[key] = REDACTED
        return True


class SessionJSONFormatter(logging.Formatter):
    """One JSON object per record, with the session fields that are set."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _SESSION_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = redact_secrets(self.formatException(record.exc_info))
        return json.dumps(log, ensure_ascii=False, default=str)


class _TextFormatter(logging.Formatter):
    def formatException(self, ei) -> str:
        return redact_secrets(super().formatException(ei))


def configure_logging(settings: Settings | None = None) -> logging.Handler:
    """Attach a stream handler to the library logger, driven by settings."""
    settings = settings or get_settings()
    logger = logging.getLogger(LIBRARY_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, "_atp_session_handler", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler()
    handler._atp_session_handler = True
    handler.addFilter(SecretRedactingFilter())
    if settings.log_format == "json":
        handler.setFormatter(SessionJSONFormatter())
    else:
        handler.setFormatter(_TextFormatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return handler
