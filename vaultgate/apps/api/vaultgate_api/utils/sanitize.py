"""Redaction for log output.

The gateway only ever holds two kinds of secret: a bearer token from the
Authorization header and an apiKey query parameter. Caller text sent to
the detect tools is PII by definition and is redacted by key.

Strings longer than MAX_STR_FOR_REGEX skip the regex pass and are
replaced by a length + sha256 marker, so large tool payloads never reach
the log verbatim.
"""

import hashlib
import re
import traceback
from typing import Any

MAX_STR_FOR_REGEX: int = 2048
MAX_DEPTH: int = 6

REDACTED = "[REDACTED]"

# Lower-cased; compared against dict keys and log extra names.
_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "authorization",
    "api_key",
    "apikey",
    "token",
    "bearer_token",
    "credential",
    "inputstring",
    "input_string",
    "processed_text",
    "processedtext",
})

_BEARER = re.compile(r"Bearer\s+\S+", re.IGNORECASE)
_API_KEY_PARAM = re.compile(r"(apiKey=)[^&\s]+", re.IGNORECASE)


def _fingerprint(s: str) -> str:
    digest = hashlib.sha256(s.encode("utf-8", errors="replace")).hexdigest()[:16]
    return f"[TRUNCATED len={len(s)} sha256={digest}]"


def sanitize_str(s: str) -> str:
    """Redact bearer tokens and apiKey query values from a string."""
    if not isinstance(s, str):
        return s  # type: ignore[return-value]
    if len(s) > MAX_STR_FOR_REGEX:
        return _fingerprint(s)
    return _API_KEY_PARAM.sub(rf"\1{REDACTED}", _BEARER.sub(REDACTED, s))


def sanitize_obj(obj: Any, depth: int = 0) -> Any:
    """Recursively sanitize a log extra value, redacting sensitive keys."""
    if depth >= MAX_DEPTH:
        return "[DEPTH_LIMIT]"

    if isinstance(obj, dict):
        return {
            key: REDACTED
            if isinstance(key, str) and key.lower() in _SENSITIVE_KEYS
            else sanitize_obj(value, depth + 1)
            for key, value in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [sanitize_obj(item, depth + 1) for item in obj]
    if isinstance(obj, str):
        return sanitize_str(obj)
    return obj


def sanitize_exc(exc_info: tuple) -> str:
    """Traceback text without locals, run through sanitize_str line by line."""
    _type, value, _tb = exc_info
    if value is None:
        return ""
    lines = traceback.TracebackException.from_exception(value, capture_locals=False).format()
    return "".join(sanitize_str(line) for line in lines)
