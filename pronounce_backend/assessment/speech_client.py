from __future__ import annotations

"""
Azure Speech pronunciation-assessment REST adapter.

Design intent:
- One upstream call per request; no retry, no caching.
- Read the body as text first; upstream error pages are not always JSON.
- Surface non-success statuses as UpstreamFailed with the parsed body.
"""

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from pronounce_backend.internal_core.config import is_valid_region
from pronounce_backend.internal_core.errors import UpstreamFailed


logger = logging.getLogger(__name__)

SPEECH_HOST = "stt.speech.microsoft.com"
RECOGNITION_PATH = "speech/recognition/conversation/cognitiveservices/v1"
RESULT_FORMAT = "detailed"

GRADING_SYSTEM = "HundredMark"
GRANULARITY = "Phoneme"
DIMENSION = "Comprehensive"


@dataclass(frozen=True)
class UpstreamReply:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def build_recognition_url(region: str) -> str:
    normalized = str(region or "").strip().lower()
    if not is_valid_region(normalized):
        raise ValueError(f"Invalid speech region: {region!r}")
    return f"https://{normalized}.{SPEECH_HOST}/{RECOGNITION_PATH}"


def build_assessment_config(reference_text: str, *, enable_miscue: bool = True) -> dict[str, str]:
    return {
        "ReferenceText": reference_text,
        "GradingSystem": GRADING_SYSTEM,
        "Granularity": GRANULARITY,
        "Dimension": DIMENSION,
        "EnableMiscue": "True" if enable_miscue else "False",
    }


def encode_assessment_header(reference_text: str, *, enable_miscue: bool = True) -> str:
    config = build_assessment_config(reference_text, enable_miscue=enable_miscue)
    raw = json.dumps(config, ensure_ascii=False).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def build_request_headers(
    *,
    api_key: str,
    content_type: str,
    reference_text: str,
    enable_miscue: bool = True,
) -> dict[str, str]:
    return {
        "Ocp-Apim-Subscription-Key": api_key,
        "Content-Type": content_type,
        "Accept": "application/json",
        "Pronunciation-Assessment": encode_assessment_header(
            reference_text, enable_miscue=enable_miscue
        ),
    }


def parse_body_text(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return {"raw": text}


async def assess_pronunciation(
    audio: bytes,
    *,
    region: str,
    api_key: str,
    language: str,
    reference_text: str,
    content_type: str,
    enable_miscue: bool = True,
    timeout_sec: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpstreamReply:
    """Send one assessment request and return the successful reply.

    Raises UpstreamFailed on transport errors and on non-2xx replies.
    """
    url = build_recognition_url(region)
    params = {"language": language, "format": RESULT_FORMAT}
    headers = build_request_headers(
        api_key=api_key,
        content_type=content_type,
        reference_text=reference_text,
        enable_miscue=enable_miscue,
    )
    client_kwargs: dict[str, Any] = {}
    if timeout_sec is not None:
        client_kwargs["timeout"] = timeout_sec
    if transport is not None:
        client_kwargs["transport"] = transport

    async with httpx.AsyncClient(**client_kwargs) as client:
        try:
            response = await client.post(url, params=params, headers=headers, content=audio)
        except httpx.RequestError as exc:
            logger.warning("Speech request to %s failed: %s", url, exc)
            raise UpstreamFailed(azureStatus=None, detail=str(exc)) from exc

    reply = UpstreamReply(status_code=response.status_code, body=parse_body_text(response.text))
    logger.info("Speech service replied %s for language=%s", reply.status_code, language)
    if not reply.ok:
        logger.warning("Speech service rejected request: status=%s", reply.status_code)
        raise UpstreamFailed(azureStatus=reply.status_code, azureBody=reply.body)
    return reply
