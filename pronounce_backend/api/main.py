from __future__ import annotations

"""
HTTP surface for the pronunciation relay.

Design intent:
- Keep the handler a linear pipeline with early exits.
- Delegate audio, upstream and shaping logic to audio/assessment modules.
- Render every failure as a JSON error object; never a partial result.
"""

import hmac
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from pronounce_backend.assessment.models import AssessmentRequest, AssessmentResult, HealthResponse
from pronounce_backend.assessment.scoring import build_assessment_result
from pronounce_backend.assessment.speech_client import assess_pronunciation
from pronounce_backend.audio.container import prepare_audio
from pronounce_backend.audio.diagnostics import describe_audio
from pronounce_backend.internal_core.config import SERVICE_NAME, RelayConfig, load_config
from pronounce_backend.internal_core.errors import (
    REQUIRED_FIELDS,
    InvalidFields,
    MissingFields,
    OriginNotAllowed,
    PayloadTooLarge,
    RelayError,
    ServerNotConfigured,
    Unauthorized,
)


SECRET_HEADER = "x-pronounce-secret"
CORS_ALLOW_METHODS = "GET,POST,OPTIONS"
CORS_ALLOW_HEADERS = f"Content-Type, {SECRET_HEADER}"
CORS_MAX_AGE_SECONDS = 86400

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Injected config (tests, __main__) wins; otherwise a bad env fails startup here.
    if not isinstance(getattr(app.state, "config", None), RelayConfig):
        app.state.config = load_config()
    logger.info("Pronounce backend config loaded.")
    yield


app = FastAPI(title="pronounce backend service", lifespan=lifespan)


def _get_config() -> RelayConfig:
    existing = getattr(app.state, "config", None)
    if isinstance(existing, RelayConfig):
        return existing
    created = load_config()
    setattr(app.state, "config", created)
    return created


def _get_speech_transport() -> Any:
    return getattr(app.state, "speech_transport", None)


def _apply_cors_headers(response: Response, config: RelayConfig, origin: str | None) -> None:
    response.headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
    response.headers["Access-Control-Max-Age"] = str(CORS_MAX_AGE_SECONDS)
    if not config.allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = "*"
        return
    response.headers["Vary"] = "Origin"
    if origin and config.origin_allowed(origin):
        response.headers["Access-Control-Allow-Origin"] = origin


@app.middleware("http")
async def cors_layer(request: Request, call_next: Any) -> Response:
    config = _get_config()
    origin = request.headers.get("origin")
    if request.method == "OPTIONS":
        response: Response = Response(status_code=204)
    else:
        response = await call_next(request)
    _apply_cors_headers(response, config, origin)
    return response


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def _enforce_origin(request: Request, config: RelayConfig) -> None:
    origin = request.headers.get("origin")
    # Non-browser callers send no Origin header.
    if origin and not config.origin_allowed(origin):
        raise OriginNotAllowed(origin=origin)


def _enforce_secret(request: Request, config: RelayConfig) -> None:
    if not config.has_secret:
        logger.warning("Rejecting /pronounce: no shared secret configured.")
        raise Unauthorized()
    # Header values arrive latin-1 decoded; compare the raw UTF-8 bytes.
    supplied = str(request.headers.get(SECRET_HEADER) or "").encode("latin-1").strip()
    expected = config.pronounce_secret.strip().encode("utf-8")
    if not supplied or not hmac.compare_digest(supplied, expected):
        raise Unauthorized()


async def _read_json_body(request: Request, config: RelayConfig) -> dict[str, Any]:
    raw = await request.body()
    if len(raw) > config.max_body_bytes:
        raise PayloadTooLarge(maxBytes=config.max_body_bytes)
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _parse_assessment_request(payload: dict[str, Any]) -> AssessmentRequest:
    if not all(payload.get(name) for name in REQUIRED_FIELDS):
        raise MissingFields()
    cleaned = {key: value for key, value in payload.items() if value is not None}
    try:
        return AssessmentRequest.model_validate(cleaned)
    except ValidationError as exc:
        issues = [
            {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        raise InvalidFields(issues=issues) from exc


async def _run_assessment(request: Request, config: RelayConfig) -> AssessmentResult:
    _enforce_secret(request, config)
    _enforce_origin(request, config)

    body = _parse_assessment_request(await _read_json_body(request, config))

    if not config.upstream_configured:
        logger.error("Speech key or region missing; cannot assess pronunciation.")
        raise ServerNotConfigured()

    audio = prepare_audio(body.audioBase64, body.audioMime)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Audio accepted: %s", describe_audio(audio.data, audio.mime))

    reply = await assess_pronunciation(
        audio.data,
        region=config.azure_speech_region,
        api_key=config.azure_speech_key,
        language=body.language,
        reference_text=body.targetText,
        content_type=audio.content_type,
        enable_miscue=body.enableMiscue,
        timeout_sec=config.upstream_timeout_sec,
        transport=_get_speech_transport(),
    )
    return build_assessment_result(
        reply.body,
        target_text=body.targetText,
        language=body.language,
        enable_miscue=body.enableMiscue,
        audio_mime=audio.mime,
    )


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    config = _get_config()
    return HealthResponse(
        service=SERVICE_NAME,
        hasSecret=config.has_secret,
        hasAzureKey=config.has_azure_key,
        hasAzureRegion=config.has_azure_region,
        allowedOrigins=sorted(config.allowed_origins),
    )


@app.post("/pronounce", response_model=AssessmentResult)
async def pronounce(request: Request) -> AssessmentResult:
    config = _get_config()
    try:
        return await _run_assessment(request, config)
    except RelayError:
        raise
    except Exception as exc:
        logger.exception("Unexpected error while assessing pronunciation.")
        raise RelayError("Server error", detail=str(exc)) from exc
