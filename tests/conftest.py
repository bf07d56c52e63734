from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest


class Recorder:
    """MockTransport handler replaying scripted responses and recording calls."""

    def __init__(self, script: list[Any]) -> None:
        self._script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self._script.pop(0) if len(self._script) > 1 else self._script[0]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        status, body = step
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, content=body)

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture
def make_client() -> Callable[[Recorder], httpx.AsyncClient]:
    def _make(recorder: Recorder) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(recorder))

    return _make


def text_body(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def image_body(data: str, mime: str | None = "image/png") -> dict[str, Any]:
    inline: dict[str, Any] = {"data": data}
    if mime is not None:
        inline["mimeType"] = mime
    return {"candidates": [{"content": {"parts": [{"text": "here"}, {"inlineData": inline}]}}]}
