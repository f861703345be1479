"""Secret masking for log output.

Sensitive values are replaced with a fixed-length marker instead of being
dropped, so log lines keep the same shape whether or not a secret was sent.
"""
from __future__ import annotations
import json
from typing import Any

REDACTION_MARKER = "*" * 8

SENSITIVE_KEYS = frozenset({
    "password",
    "client_secret",
    "access_token",
    "id_token",
    "refresh_token",
})


def mask_secrets(payload: Any) -> Any:
    """Return a copy of payload with every sensitive field masked.

    Dicts and lists are walked recursively; the input is never mutated.
    """
    if isinstance(payload, dict):
        masked = {}
        for key, value in payload.items():
            if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
                masked[key] = REDACTION_MARKER
            else:
                masked[key] = mask_secrets(value)
        return masked
    if isinstance(payload, (list, tuple)):
        return [mask_secrets(item) for item in payload]
    return payload


def masked_json(payload: Any) -> str:
    """Serialize payload for a log line with secrets masked."""
    return json.dumps(mask_secrets(payload), sort_keys=True, default=str)
