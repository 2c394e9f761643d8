import asyncio
import base64
import json

import httpx
import pytest

from pronounce_backend.assessment.speech_client import (
    assess_pronunciation,
    build_recognition_url,
    build_request_headers,
    encode_assessment_header,
    parse_body_text,
)
from pronounce_backend.internal_core.errors import UpstreamFailed


def _decode_header(value: str) -> dict:
    return json.loads(base64.b64decode(value).decode("utf-8"))


def test_recognition_url_uses_normalized_region() -> None:
    assert build_recognition_url(" WestEurope ") == (
        "https://westeurope.stt.speech.microsoft.com/"
        "speech/recognition/conversation/cognitiveservices/v1"
    )


@pytest.mark.parametrize("region", ["  ", "west europe", "eastus.evil.example/x", "-eastus", "eastus-"])
def test_recognition_url_rejects_invalid_region(region: str) -> None:
    with pytest.raises(ValueError):
        build_recognition_url(region)


@pytest.mark.parametrize(("enable_miscue", "flag"), [(True, "True"), (False, "False")])
def test_assessment_header_serializes_miscue_flag_as_string(enable_miscue: bool, flag: str) -> None:
    config = _decode_header(encode_assessment_header("Grüß Gott", enable_miscue=enable_miscue))
    assert config == {
        "ReferenceText": "Grüß Gott",
        "GradingSystem": "HundredMark",
        "Granularity": "Phoneme",
        "Dimension": "Comprehensive",
        "EnableMiscue": flag,
    }


def test_request_headers_carry_key_and_content_type() -> None:
    headers = build_request_headers(
        api_key="abc",
        content_type="audio/ogg; codecs=opus",
        reference_text="hi",
    )
    assert headers["Ocp-Apim-Subscription-Key"] == "abc"
    assert headers["Content-Type"] == "audio/ogg; codecs=opus"
    assert headers["Accept"] == "application/json"
    assert _decode_header(headers["Pronunciation-Assessment"])["ReferenceText"] == "hi"


def test_parse_body_text_wraps_non_json() -> None:
    assert parse_body_text('{"NBest": []}') == {"NBest": []}
    assert parse_body_text("") == {"raw": ""}
    assert parse_body_text("Bad Gateway") == {"raw": "Bad Gateway"}


def _run(transport: httpx.MockTransport, **overrides):
    kwargs = {
        "region": "eastus",
        "api_key": "k",
        "language": "fr-FR",
        "reference_text": "bonjour",
        "content_type": "audio/wav; codecs=audio/pcm; samplerate=16000",
        "transport": transport,
    }
    kwargs.update(overrides)
    return asyncio.run(assess_pronunciation(b"\x01" * 2048, **kwargs))


def test_assess_pronunciation_returns_parsed_reply() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"RecognitionStatus": "Success"})

    reply = _run(httpx.MockTransport(handler), timeout_sec=5.0)
    assert reply.ok is True
    assert reply.body == {"RecognitionStatus": "Success"}
    assert len(seen) == 1
    assert seen[0].url.params["language"] == "fr-FR"
    assert seen[0].url.host == "eastus.stt.speech.microsoft.com"


def test_assess_pronunciation_raises_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, text="Access denied")

    with pytest.raises(UpstreamFailed) as excinfo:
        _run(httpx.MockTransport(handler))
    payload = excinfo.value.to_payload()
    assert excinfo.value.status_code == 502
    assert payload["azureStatus"] == 401
    assert payload["azureBody"] == {"raw": "Access denied"}


def test_assess_pronunciation_raises_on_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UpstreamFailed) as excinfo:
        _run(httpx.MockTransport(handler))
    assert excinfo.value.to_payload()["azureStatus"] is None
