from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Optional


SERVICE_NAME = "pronounce-backend"

_REGION_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]*[a-z0-9])?$")


def is_valid_region(region: str) -> bool:
    """Region becomes a hostname label, so only [a-z0-9-] is accepted."""
    return bool(_REGION_RE.match(str(region or "").strip().lower()))


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_opt_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return float(value)


def parse_origin_list(raw: str) -> frozenset[str]:
    """Split a comma-separated origin list; blank entries are dropped."""
    return frozenset(
        item.strip().rstrip("/") for item in str(raw or "").split(",") if item.strip()
    )


@dataclass(frozen=True)
class RelayConfig:
    port: int = 3000
    host: str = "0.0.0.0"
    azure_speech_key: str = ""
    azure_speech_region: str = ""
    pronounce_secret: str = ""
    allowed_origins: frozenset[str] = field(default_factory=frozenset)
    upstream_timeout_sec: Optional[float] = None
    log_level: str = "INFO"
    max_body_bytes: int = 5 * 1024 * 1024

    @property
    def has_secret(self) -> bool:
        return bool(self.pronounce_secret.strip())

    @property
    def has_azure_key(self) -> bool:
        return bool(self.azure_speech_key.strip())

    @property
    def has_azure_region(self) -> bool:
        return is_valid_region(self.azure_speech_region)

    @property
    def upstream_configured(self) -> bool:
        return self.has_azure_key and self.has_azure_region

    def origin_allowed(self, origin: str | None) -> bool:
        # Empty allow-list is permissive.
        if not self.allowed_origins:
            return True
        if not origin:
            return False
        return origin.strip().rstrip("/") in self.allowed_origins


def load_config() -> RelayConfig:
    return RelayConfig(
        port=_getenv_int("PORT", 3000),
        host=_getenv_str("HOST", "0.0.0.0"),
        azure_speech_key=_getenv_str("AZURE_SPEECH_KEY", "").strip(),
        azure_speech_region=_getenv_str("AZURE_SPEECH_REGION", "").strip().lower(),
        pronounce_secret=_getenv_str("PRONOUNCE_SECRET", "").strip(),
        allowed_origins=parse_origin_list(_getenv_str("ALLOWED_ORIGINS", "")),
        upstream_timeout_sec=_getenv_opt_float("AZURE_SPEECH_TIMEOUT_SEC"),
        log_level=_getenv_str("PRONOUNCE_LOG_LEVEL", "INFO"),
        max_body_bytes=_getenv_int("PRONOUNCE_MAX_BODY_BYTES", 5 * 1024 * 1024),
    )
