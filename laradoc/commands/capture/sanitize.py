"""Redaction of sensitive values before captures hit the disk."""

from __future__ import annotations

from typing import Any

from laradoc.formats.config import SanitizeConfig


class Sanitizer:
    """Replaces the value of every key that contains a sensitive word.

    Matching is a case-insensitive substring test, so ``password`` also
    covers ``password_confirmation`` and ``X-Api-Key`` matches ``api-key``
    style entries.
    """

    def __init__(self, config: SanitizeConfig | None = None):
        config = config or SanitizeConfig()
        self.enabled = config.enabled
        self.sensitive_keys = [k.lower() for k in config.sensitive_keys]
        self.redacted_value = config.redacted_value

    def is_sensitive(self, key: str) -> bool:
        key = key.lower()
        return any(word in key for word in self.sensitive_keys)

    def sanitize(self, value: Any) -> Any:
        if not self.enabled:
            return value
        if isinstance(value, dict):
            return {
                k: self.redacted_value if self.is_sensitive(str(k)) else self.sanitize(v)
                for k, v in value.items()
            }
        if isinstance(value, list):
            return [self.sanitize(v) for v in value]
        return value
