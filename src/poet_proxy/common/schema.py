"""Pydantic models and dataclasses for request/response types."""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel

# Parsed JSON body returned by the upstream service on success.
UpstreamCallResult = dict[str, Any]


class GenerationMode(str, Enum):
    TEXT = "text"
    IMAGE = "image"

    @classmethod
    def parse(cls, value: Any) -> "GenerationMode":
        """Map an inbound ``type`` value to a mode; anything unrecognized is text."""
        if isinstance(value, str) and value.lower() == cls.IMAGE.value:
            return cls.IMAGE
        return cls.TEXT


class GenerateIn(BaseModel):
    type: str | None = None
    prompt: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """Validated inbound request. ``prompt`` is non-empty."""
    mode: GenerationMode
    prompt: str


@dataclass(frozen=True)
class OutboundRequest:
    """Outbound call description handed to the retrying executor."""
    body: dict[str, Any]
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "application/json"})


@dataclass(frozen=True)
class TextResult:
    poem: str


@dataclass(frozen=True)
class ImageResult:
    data_url: str
    mime_type: str


GenerationResult = Union[TextResult, ImageResult]
