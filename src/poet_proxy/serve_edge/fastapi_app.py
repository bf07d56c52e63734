"""FastAPI edge proxy for Gemini text/image generation.

Endpoints:
- GET /health
- POST /api/generate  { "type": "text"|"image", "prompt": "..." }
- OPTIONS /api/generate  (CORS preflight)
"""
from __future__ import annotations
import json
import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from poet_proxy.common.config import ProxySettings, load_settings
from poet_proxy.common.envelope import (
    MSG_CONFIG_ERROR,
    MSG_EMPTY_PROMPT,
    MSG_FAILURE,
    MSG_METHOD_NOT_ALLOWED,
    error_envelope,
    success_envelope,
)
from poet_proxy.common.errors import ConfigurationError, ProxyError
from poet_proxy.common.logging_setup import setup_logging
from poet_proxy.common.schema import GenerateIn, GenerationMode, GenerationRequest
from poet_proxy.upstream.gemini import generate

LOGGER = logging.getLogger("poet_proxy.edge.app")

# Every standard method is routed to the handler so the key check and the
# error envelope apply to all of them.
ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


class PrettyJSONResponse(JSONResponse):
    """JSON rendered with 2-space indent and raw (non-escaped) Persian text."""

    def render(self, content: Any) -> bytes:
        return json.dumps(content, ensure_ascii=False, indent=2).encode("utf-8")


@lru_cache
def get_settings() -> ProxySettings:
    return load_settings()


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    """Shared client opened by the lifespan; None makes the executor open its own."""
    return getattr(request.app.state, "http_client", None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        settings.require_api_key()
    except ConfigurationError as e:
        LOGGER.warning("%s Requests will be rejected until GEMINI_API_KEY is set.", e)
    async with httpx.AsyncClient(timeout=settings.timeout_s) as client:
        app.state.http_client = client
        yield
    app.state.http_client = None


app = FastAPI(lifespan=lifespan)


def _reply(
    content: dict[str, Any],
    status_code: int,
    settings: ProxySettings,
    content_type: str = "application/json",
) -> PrettyJSONResponse:
    return PrettyJSONResponse(
        content=content,
        status_code=status_code,
        headers={
            "Content-Type": content_type,
            "Access-Control-Allow-Origin": settings.cors_allow_origin,
        },
    )


def _preflight(settings: ProxySettings) -> Response:
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": settings.cors_allow_origin,
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Allow-Methods": "POST",
            "Access-Control-Max-Age": "86400",
        },
    )


async def _parse_body(request: Request) -> GenerationRequest | None:
    """Parse the inbound body; None when the prompt is empty.

    A JSON array or scalar carries no prompt and is read as ``{}``; a JSON
    ``null`` body has no fields at all and is rejected.
    """
    payload = await request.json()
    if payload is None:
        raise ValueError("Request body must be a JSON object")
    if not isinstance(payload, dict):
        payload = {}
    body = GenerateIn.model_validate(payload)
    if not body.prompt:
        return None
    return GenerationRequest(mode=GenerationMode.parse(body.type), prompt=body.prompt)


@app.get("/health")
def health(settings: ProxySettings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "text_model": settings.text_model, "image_model": settings.image_model}


@app.api_route("/api/generate", methods=ALL_METHODS)
async def generate_endpoint(
    request: Request,
    settings: ProxySettings = Depends(get_settings),
    client: httpx.AsyncClient | None = Depends(get_http_client),
) -> Response:
    try:
        api_key = settings.require_api_key()
    except ConfigurationError as e:
        LOGGER.error("Rejecting request: %s", e)
        return _reply(error_envelope(MSG_CONFIG_ERROR, str(e)), 500, settings)

    if request.method == "OPTIONS":
        return _preflight(settings)

    if request.method != "POST":
        return _reply(error_envelope(MSG_METHOD_NOT_ALLOWED), 405, settings)

    try:
        gen_request = await _parse_body(request)
        if gen_request is None:
            return _reply(error_envelope(error_details=MSG_EMPTY_PROMPT), 400, settings)

        result = await generate(gen_request, api_key, settings=settings, client=client)
    except (ProxyError, ValueError) as e:
        LOGGER.error("Generation request failed: %s", e)
        return _reply(error_envelope(MSG_FAILURE, str(e)), 500, settings)

    LOGGER.info("Served %s generation", gen_request.mode.value)
    return _reply(
        success_envelope(gen_request, result),
        200,
        settings,
        content_type="application/json;charset=UTF-8",
    )
