from __future__ import annotations

import io
import wave
from typing import Any, Dict

import numpy as np


def load_wav_info(data: bytes) -> tuple[float, int, int, int]:
    with wave.open(io.BytesIO(data), "rb") as wf:
        frames = wf.getnframes()
        rate = wf.getframerate()
        channels = wf.getnchannels()
        width = wf.getsampwidth()
        duration = frames / float(rate) if rate else 0.0
        return duration, rate, channels, width


def load_pcm16_float32(data: bytes) -> np.ndarray:
    with wave.open(io.BytesIO(data), "rb") as wf:
        width = wf.getsampwidth()
        channels = wf.getnchannels()
        if width != 2:
            raise ValueError(f"Expected 16-bit PCM WAV, got sampwidth={width}")
        raw = wf.readframes(wf.getnframes())
    audio_i16 = np.frombuffer(raw, dtype="<i2")
    if channels > 1:
        usable = audio_i16.size - (audio_i16.size % channels)
        audio_i16 = audio_i16[:usable].reshape(-1, channels).mean(axis=1)
    return (np.asarray(audio_i16, dtype=np.float32) / 32768.0).clip(-1.0, 1.0)


def compute_rms(audio: np.ndarray) -> float:
    if audio.size == 0:
        return 0.0
    x = audio.astype(np.float32)
    return float(np.sqrt(np.mean(x * x)))


def describe_audio(data: bytes, mime: str) -> Dict[str, Any]:
    """Best-effort summary for request logs. Never raises."""
    info: Dict[str, Any] = {"mime": mime or "unknown", "size_bytes": len(data)}
    if data[:4] != b"RIFF":
        return info
    try:
        duration, rate, channels, width = load_wav_info(data)
        info.update(
            {
                "duration_sec": round(duration, 3),
                "sample_rate_hz": rate,
                "channels": channels,
                "sample_width": width,
            }
        )
        if rate != 16000:
            info["warning"] = f"expected 16kHz PCM, got {rate}Hz"
        info["rms"] = round(compute_rms(load_pcm16_float32(data)), 5)
    except (wave.Error, ValueError, EOFError) as exc:
        info["wav_error"] = str(exc)
    return info
