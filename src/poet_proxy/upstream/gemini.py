"""Text and image generation against the Gemini generateContent API.

Request shapes:
- contents[0].parts[0].text: user prompt
- systemInstruction.parts[0].text: mode-specific system prompt
- generationConfig.responseModalities: ["TEXT", "IMAGE"] (image mode only)

Responses are read defensively: every level of
``candidates[0].content.parts[]`` may be absent or of the wrong type.
"""
from __future__ import annotations
import logging
from typing import Any

import httpx

from poet_proxy.common.config import ProxySettings
from poet_proxy.common.errors import GenerationError
from poet_proxy.common.schema import (
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    ImageResult,
    OutboundRequest,
    TextResult,
    UpstreamCallResult,
)
from poet_proxy.common.templates import (
    DEFAULT_IMAGE_SYSTEM_PROMPT,
    DEFAULT_TEXT_SYSTEM_PROMPT,
    resolve_system_prompt,
)
from poet_proxy.upstream.retry import SleepFn, execute

LOGGER = logging.getLogger("poet_proxy.upstream.gemini")

NO_TEXT_PLACEHOLDER = "متن تولید شده یافت نشد."
DEFAULT_IMAGE_MIME = "image/png"


def build_payload(prompt: str, system_prompt: str, modalities: list[str] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "contents": [{"parts": [{"text": prompt}]}],
        "systemInstruction": {"parts": [{"text": system_prompt}]},
    }
    if modalities:
        payload["generationConfig"] = {"responseModalities": list(modalities)}
    return payload


def _first_candidate(result: UpstreamCallResult) -> dict[str, Any]:
    candidates = result.get("candidates") if isinstance(result, dict) else None
    if isinstance(candidates, list) and candidates and isinstance(candidates[0], dict):
        return candidates[0]
    return {}


def _parts(result: UpstreamCallResult) -> list[Any]:
    content = _first_candidate(result).get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    return parts if isinstance(parts, list) else []


def extract_text(result: UpstreamCallResult) -> str | None:
    """Return the first part's text, or None when absent or empty."""
    parts = _parts(result)
    if not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    return text if isinstance(text, str) and text else None


def find_image_part(result: UpstreamCallResult) -> dict[str, Any] | None:
    """
    Return the ``inlineData`` of the first image part.

    A part qualifies when its MIME type starts with ``image/``; a part with
    inline data but no MIME type is taken as ``image/png``.
    """
    for part in _parts(result):
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData")
        if not isinstance(inline, dict):
            continue
        mime = inline.get("mimeType")
        if mime is None or (isinstance(mime, str) and mime.startswith("image/")):
            return inline
    return None


def failure_diagnostics(result: UpstreamCallResult) -> tuple[str, str]:
    """Best-effort (finish reason, first safety probability) for error reporting."""
    candidate = _first_candidate(result)
    finish_reason = candidate.get("finishReason") or "Unknown"
    safety = "N/A"
    ratings = candidate.get("safetyRatings")
    if isinstance(ratings, list) and ratings and isinstance(ratings[0], dict):
        safety = ratings[0].get("probability") or "N/A"
    return str(finish_reason), str(safety)


def to_data_url(b64_data: str, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    return f"data:{mime_type};base64,{b64_data}"


def extract_image(result: UpstreamCallResult) -> ImageResult:
    inline = find_image_part(result)
    data = inline.get("data") if inline else None
    if not isinstance(data, str) or not data:
        finish_reason, safety = failure_diagnostics(result)
        raise GenerationError(finish_reason=finish_reason, safety=safety)
    mime_type = inline.get("mimeType") or DEFAULT_IMAGE_MIME
    return ImageResult(data_url=to_data_url(data, mime_type), mime_type=mime_type)


def _executor_kwargs(
    settings: ProxySettings,
    client: httpx.AsyncClient | None,
    sleep: SleepFn | None,
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {
        "client": client,
        "max_retries": settings.max_retries,
        "backoff_base_s": settings.backoff_base_s,
        "timeout_s": settings.timeout_s,
    }
    if sleep is not None:
        kwargs["sleep"] = sleep
    return kwargs


async def generate_text(
    prompt: str,
    api_key: str,
    *,
    settings: ProxySettings | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn | None = None,
) -> TextResult:
    """
    Generate a short poem for ``prompt``.

    A missing or empty upstream text is not an error: the placeholder is
    returned instead.
    """
    settings = settings or ProxySettings()
    system_prompt = resolve_system_prompt(settings.text_system_prompt_path, DEFAULT_TEXT_SYSTEM_PROMPT)
    request = OutboundRequest(body=build_payload(prompt, system_prompt))
    result = await execute(settings.text_api_url, request, api_key, **_executor_kwargs(settings, client, sleep))

    text = extract_text(result)
    if text is None:
        LOGGER.warning("Upstream returned no text; using placeholder")
        return TextResult(poem=NO_TEXT_PLACEHOLDER)
    return TextResult(poem=text)


async def generate_image(
    prompt: str,
    api_key: str,
    *,
    settings: ProxySettings | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn | None = None,
) -> ImageResult:
    """
    Generate an image for ``prompt`` and return it as a data URL.

    Raises:
        GenerationError: the upstream response carries no image data.
    """
    settings = settings or ProxySettings()
    system_prompt = resolve_system_prompt(settings.image_system_prompt_path, DEFAULT_IMAGE_SYSTEM_PROMPT)
    request = OutboundRequest(body=build_payload(prompt, system_prompt, ["TEXT", "IMAGE"]))
    result = await execute(settings.image_api_url, request, api_key, **_executor_kwargs(settings, client, sleep))
    return extract_image(result)


async def generate(
    request: GenerationRequest,
    api_key: str,
    *,
    settings: ProxySettings | None = None,
    client: httpx.AsyncClient | None = None,
    sleep: SleepFn | None = None,
) -> GenerationResult:
    """Dispatch ``request`` to the extractor for its mode."""
    if request.mode is GenerationMode.IMAGE:
        return await generate_image(request.prompt, api_key, settings=settings, client=client, sleep=sleep)
    return await generate_text(request.prompt, api_key, settings=settings, client=client, sleep=sleep)
