"""Redaction helpers for safe logging.

Anything that came from 8x8 or from the conversation engine is untrusted and
must pass through these helpers before it is logged.
"""

import hashlib
import json
import re
from typing import Any

# E.164 numbers and free-form phone strings
_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"

# Provider error bodies are truncated before logging
MAX_BODY_LOG_CHARS = 2000


def redact_string(value: str) -> str:
    """Replace phone numbers and e-mail addresses in ``value``."""
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    result = _EMAIL_PATTERN.sub(_REDACTED, result)
    return result


def redact_value(value: Any) -> str:
    """Render any value as a log-safe string.

    Scalars are kept (strings are scrubbed), containers are reduced to their
    shape and unknown objects to their type name.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        return f"dict(keys={list(value.keys())})"
    if isinstance(value, (list, tuple)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def redact_body(body: Any) -> str:
    """Render a provider response body for diagnostics.

    Unlike ``redact_value`` this keeps the structure of JSON bodies, since
    8x8 puts its error codes and messages in there, but still scrubs
    phone numbers out of the serialized text.
    """
    if body is None:
        return "null"
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if not isinstance(body, str):
        body = json.dumps(body, default=str, sort_keys=True)
    return redact_string(body)[:MAX_BODY_LOG_CHARS]


def hash_for_log(value: str) -> str:
    """Short non-reversible fingerprint, used to correlate log lines."""
    return hashlib.sha256(value.encode()).hexdigest()[:12]


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    """Build a context dict safe for logging. All values are redacted."""
    return {k: redact_value(v) for k, v in kwargs.items()}
