"""Proxy error taxonomy."""
from __future__ import annotations
import json
from typing import Any


class ProxyError(Exception):
    """Base exception for proxy failures surfaced at the HTTP boundary."""

    pass


class ConfigurationError(ProxyError):
    """Raised when the deployment is missing a usable credential or setting."""

    pass


class UpstreamError(ProxyError):
    """Raised by the executor once every attempt has failed.

    Args:
        attempts: Number of calls issued.
        last_error: Parsed error body of the last non-OK response, or the
            message of the last transport/decode exception.
        status_code: HTTP status of the last response, None when the last
            attempt never produced one.
    """

    def __init__(self, attempts: int, last_error: Any, status_code: int | None = None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.status_code = status_code
        if status_code is not None:
            detail = json.dumps(last_error, ensure_ascii=False)
            message = f"API returned non-OK status. Last error: {detail}"
        else:
            message = f"Failed after {attempts} attempts. Last error: {last_error}"
        super().__init__(message)


class GenerationError(ProxyError):
    """Raised when the upstream call succeeded but carried no usable image."""

    def __init__(self, finish_reason: str = "Unknown", safety: str = "N/A") -> None:
        self.finish_reason = finish_reason
        self.safety = safety
        super().__init__(
            f"Image generation failed. Blocked/Finish Reason: {finish_reason}, "
            f"Safety: {safety}. Check the prompt."
        )
