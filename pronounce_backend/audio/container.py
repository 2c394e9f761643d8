from __future__ import annotations

"""
Audio container resolution for inbound base64 clips.

The assessment endpoint accepts Ogg/Opus and 16 kHz PCM WAV bodies only.
WebM is rejected before any upstream call.
"""

import base64
import binascii
import re
from dataclasses import dataclass

from pronounce_backend.internal_core.errors import (
    AudioTooShort,
    InvalidAudioEncoding,
    UnsupportedAudioFormat,
)


MIN_AUDIO_BYTES = 2000

OGG_OPUS_CONTENT_TYPE = "audio/ogg; codecs=opus"
WAV_PCM_CONTENT_TYPE = "audio/wav; codecs=audio/pcm; samplerate=16000"

WEBM_UNSUPPORTED_DETAIL = (
    "WebM audio is not supported by the assessment service; record as "
    "Ogg/Opus (audio/ogg;codecs=opus) or 16 kHz PCM WAV (audio/wav)."
)

_DATA_URL_RE = re.compile(r"^\s*data:([^,]*?);base64,", flags=re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

_EBML_MAGIC = b"\x1a\x45\xdf\xa3"


@dataclass(frozen=True)
class AudioPayload:
    mime: str
    data: bytes
    content_type: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def normalize_mime(raw: str | None) -> str:
    return str(raw or "").strip().lower()


def split_data_url(audio_base64: str) -> tuple[str | None, str]:
    """Return (mime, base64 body); mime is None when no data-URL preamble is present."""
    text = str(audio_base64 or "")
    match = _DATA_URL_RE.match(text)
    if match is None:
        return None, text
    return normalize_mime(match.group(1)), text[match.end():]


def resolve_declared_mime(audio_mime: str | None, audio_base64: str) -> str:
    hint = normalize_mime(audio_mime)
    if hint:
        return hint
    data_url_mime, _ = split_data_url(audio_base64)
    return data_url_mime or ""


def sniff_container(data: bytes) -> str:
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "audio/wav"
    if data[:4] == b"OggS":
        return "audio/ogg"
    if data[:4] == _EBML_MAGIC:
        return "audio/webm"
    return ""


def is_webm(mime: str) -> bool:
    return "webm" in normalize_mime(mime)


def is_ogg_opus(mime: str) -> bool:
    mt = normalize_mime(mime)
    return "ogg" in mt or "opus" in mt


def upstream_content_type(mime: str) -> str:
    if is_ogg_opus(mime):
        return OGG_OPUS_CONTENT_TYPE
    return WAV_PCM_CONTENT_TYPE


def decode_audio_base64(audio_base64: str) -> bytes:
    _, body = split_data_url(audio_base64)
    compact = _WHITESPACE_RE.sub("", body)
    if not compact:
        return b""
    padded = compact + "=" * (-len(compact) % 4)
    altchars = b"-_" if ("-" in compact or "_" in compact) else None
    try:
        return base64.b64decode(padded, altchars=altchars, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidAudioEncoding(detail=f"audioBase64 is not valid base64: {exc}") from exc


def prepare_audio(audio_base64: str, audio_mime: str | None = None) -> AudioPayload:
    """Resolve, validate and decode an inbound clip.

    Raises UnsupportedAudioFormat, InvalidAudioEncoding or AudioTooShort.
    """
    mime = resolve_declared_mime(audio_mime, audio_base64)
    if is_webm(mime):
        raise UnsupportedAudioFormat(detail=WEBM_UNSUPPORTED_DETAIL, audioMime=mime)

    data = decode_audio_base64(audio_base64)
    if len(data) < MIN_AUDIO_BYTES:
        raise AudioTooShort(sizeBytes=len(data), minBytes=MIN_AUDIO_BYTES)

    if not mime:
        mime = sniff_container(data)
        if is_webm(mime):
            raise UnsupportedAudioFormat(detail=WEBM_UNSUPPORTED_DETAIL, audioMime=mime)

    return AudioPayload(mime=mime, data=data, content_type=upstream_content_type(mime))
