import base64
import io
import wave

import pytest

from pronounce_backend.audio.container import (
    MIN_AUDIO_BYTES,
    OGG_OPUS_CONTENT_TYPE,
    WAV_PCM_CONTENT_TYPE,
    decode_audio_base64,
    prepare_audio,
    resolve_declared_mime,
    sniff_container,
    split_data_url,
    upstream_content_type,
)
from pronounce_backend.audio.diagnostics import describe_audio
from pronounce_backend.internal_core.errors import (
    AudioTooShort,
    InvalidAudioEncoding,
    UnsupportedAudioFormat,
)


def _silent_wav(frames: int = 4000, rate: int = 16000) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(b"\x00\x00" * frames)
    return buf.getvalue()


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_split_data_url_extracts_mime_and_body() -> None:
    mime, body = split_data_url("data:Audio/Ogg;codecs=opus;base64,QUJD")
    assert mime == "audio/ogg;codecs=opus"
    assert body == "QUJD"


def test_split_data_url_without_preamble() -> None:
    assert split_data_url("QUJD") == (None, "QUJD")


def test_explicit_hint_wins_over_data_url() -> None:
    assert resolve_declared_mime(" AUDIO/WAV ", "data:audio/ogg;base64,QUJD") == "audio/wav"
    assert resolve_declared_mime(None, "data:audio/ogg;base64,QUJD") == "audio/ogg"
    assert resolve_declared_mime("", "QUJD") == ""


def test_sniff_container_magic_bytes() -> None:
    assert sniff_container(_silent_wav()) == "audio/wav"
    assert sniff_container(b"OggS\x00\x02") == "audio/ogg"
    assert sniff_container(b"\x1a\x45\xdf\xa3\x9f") == "audio/webm"
    assert sniff_container(b"\x00\x01\x02\x03") == ""


@pytest.mark.parametrize(
    ("mime", "content_type"),
    [
        ("audio/ogg", OGG_OPUS_CONTENT_TYPE),
        ("audio/ogg;codecs=opus", OGG_OPUS_CONTENT_TYPE),
        ("audio/opus", OGG_OPUS_CONTENT_TYPE),
        ("audio/wav", WAV_PCM_CONTENT_TYPE),
        ("audio/mpeg", WAV_PCM_CONTENT_TYPE),
        ("", WAV_PCM_CONTENT_TYPE),
    ],
)
def test_upstream_content_type(mime: str, content_type: str) -> None:
    assert upstream_content_type(mime) == content_type


def test_decode_tolerates_whitespace_and_missing_padding() -> None:
    assert decode_audio_base64("QUJD\nREU") == b"ABCDE"
    assert decode_audio_base64("data:audio/wav;base64,QUJDREU=") == b"ABCDE"


def test_decode_rejects_garbage() -> None:
    with pytest.raises(InvalidAudioEncoding):
        decode_audio_base64("***")


@pytest.mark.parametrize("mime", ["audio/webm", "audio/webm;codecs=opus", "VIDEO/WEBM"])
def test_prepare_audio_rejects_webm_hints(mime: str) -> None:
    with pytest.raises(UnsupportedAudioFormat) as excinfo:
        prepare_audio(_b64(_silent_wav()), mime)
    assert excinfo.value.status_code == 400
    assert "Ogg/Opus" in excinfo.value.to_payload()["detail"]


def test_prepare_audio_rejects_short_payload() -> None:
    with pytest.raises(AudioTooShort) as excinfo:
        prepare_audio(_b64(b"\x00" * (MIN_AUDIO_BYTES - 1)), "audio/wav")
    assert excinfo.value.to_payload()["minBytes"] == MIN_AUDIO_BYTES


def test_prepare_audio_rejects_empty_data_url() -> None:
    with pytest.raises(AudioTooShort):
        prepare_audio("data:audio/wav;base64,", None)


def test_prepare_audio_accepts_exact_minimum() -> None:
    payload = prepare_audio(_b64(b"\x00" * MIN_AUDIO_BYTES), None)
    assert payload.size_bytes == MIN_AUDIO_BYTES
    assert payload.mime == ""
    assert payload.content_type == WAV_PCM_CONTENT_TYPE


def test_prepare_audio_sniffs_wav_without_hint() -> None:
    wav = _silent_wav()
    payload = prepare_audio(_b64(wav), None)
    assert payload.mime == "audio/wav"
    assert payload.data == wav


def test_describe_audio_reports_wav_header() -> None:
    info = describe_audio(_silent_wav(frames=8000, rate=8000), "audio/wav")
    assert info["duration_sec"] == pytest.approx(1.0)
    assert info["sample_rate_hz"] == 8000
    assert info["rms"] == 0.0
    assert "16kHz" in info["warning"]


def test_describe_audio_never_raises_on_broken_wav() -> None:
    info = describe_audio(b"RIFF" + b"\x00" * 40, "audio/wav")
    assert "wav_error" in info
    assert describe_audio(b"OggS", "audio/ogg") == {"mime": "audio/ogg", "size_bytes": 4}
