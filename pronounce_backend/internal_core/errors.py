from __future__ import annotations

from typing import Any


REQUIRED_FIELDS: tuple[str, ...] = ("targetText", "language", "audioBase64")


class RelayError(RuntimeError):
    """Terminal failure for a single relay request, rendered as a JSON error body."""

    status_code: int = 500
    error: str = "Server error"

    def __init__(self, error: str | None = None, **extra: Any) -> None:
        self.error = error or type(self).error
        self.extra = extra
        super().__init__(self.error)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, **self.extra}


class OriginNotAllowed(RelayError):
    status_code = 403
    error = "Origin not allowed"


class Unauthorized(RelayError):
    status_code = 401
    error = "Unauthorized"


class MissingFields(RelayError):
    status_code = 400
    error = "Missing fields"

    def __init__(self) -> None:
        super().__init__(required=list(REQUIRED_FIELDS))


class InvalidFields(RelayError):
    status_code = 400
    error = "Invalid fields"


class UnsupportedAudioFormat(RelayError):
    status_code = 400
    error = "Unsupported audio format"


class InvalidAudioEncoding(RelayError):
    status_code = 400
    error = "Invalid audio encoding"


class AudioTooShort(RelayError):
    status_code = 400
    error = "Audio too short or empty"


class PayloadTooLarge(RelayError):
    status_code = 413
    error = "Payload too large"


class ServerNotConfigured(RelayError):
    status_code = 500
    error = "Server not configured"


class UpstreamFailed(RelayError):
    status_code = 502
    error = "Azure request failed"
