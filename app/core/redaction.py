from __future__ import annotations

from typing import Any, Dict, Iterable

SENSITIVE_FIELDS = {"idNumber", "aadhaar", "panNumber", "phone", "dateOfBirth"}


def redact(info: Dict[str, Any] | None, fields: Iterable[str] = SENSITIVE_FIELDS) -> Dict[str, Any]:
    """Copy of a personal-info dict safe to hand to the logger."""
    if not info:
        return {}
    hidden = set(fields)
    return {k: ("[REDACTED]" if k in hidden else v) for k, v in info.items()}


def mask_token(token: str | None) -> str | None:
    if not token:
        return None
    return token[:8] + "-REDACTED-" + token[-4:]
