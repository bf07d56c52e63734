"""Retrying request executor for the upstream generative-content API.

Each attempt issues one POST, parses the body as JSON regardless of status
(the API reports structured errors in the body), and returns on the first
2xx. Failed attempts are followed by an exponential backoff sleep of
``backoff_base_s * 2**i`` seconds while attempts remain.
"""
from __future__ import annotations
import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from poet_proxy.common.config import MAX_RETRIES
from poet_proxy.common.errors import UpstreamError
from poet_proxy.common.schema import OutboundRequest, UpstreamCallResult

LOGGER = logging.getLogger("poet_proxy.upstream.retry")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryOutcome:
    """Result of one executor invocation.

    ``payload`` is set only when ``ok``; otherwise ``last_error`` holds the
    last error body (``status_code`` set) or exception message.
    """
    ok: bool
    attempts: int
    payload: UpstreamCallResult | None = None
    last_error: Any = None
    status_code: int | None = None

    def unwrap(self) -> UpstreamCallResult:
        if not self.ok:
            raise UpstreamError(self.attempts, self.last_error, self.status_code)
        return self.payload


def backoff_delay(attempt: int, base_s: float = 1.0) -> float:
    """Delay after failed 0-indexed ``attempt``: 1s, 2s, 4s, ... for base 1."""
    return base_s * (2 ** attempt)


async def _attempt(
    client: httpx.AsyncClient,
    endpoint: str,
    request: OutboundRequest,
    api_key: str,
) -> tuple[httpx.Response, Any]:
    response = await client.request(
        request.method,
        endpoint,
        params={"key": api_key},
        headers=request.headers,
        json=request.body,
    )
    return response, response.json()


async def fetch_with_retry(
    endpoint: str,
    request: OutboundRequest,
    api_key: str,
    *,
    client: httpx.AsyncClient | None = None,
    max_retries: int = MAX_RETRIES,
    backoff_base_s: float = 1.0,
    timeout_s: float = 120.0,
    sleep: SleepFn = asyncio.sleep,
) -> RetryOutcome:
    """
    Call ``endpoint`` up to ``max_retries`` times and report the outcome.

    Args:
        endpoint: Upstream URL without the credential.
        request: Method, headers and JSON body to send.
        api_key: Credential, sent as the ``key`` query parameter.
        client: Shared client; a private one with ``timeout_s`` is opened otherwise.
        max_retries: Total attempts, including the first.
        backoff_base_s: Base of the exponential backoff in seconds.
        timeout_s: Timeout for a privately opened client.
        sleep: Awaitable delay function, injectable for tests.

    Returns:
        RetryOutcome; never raises for HTTP, transport or decode failures.
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout_s) as own:
            return await fetch_with_retry(
                endpoint,
                request,
                api_key,
                client=own,
                max_retries=max_retries,
                backoff_base_s=backoff_base_s,
                sleep=sleep,
            )

    last_error: Any = None
    status_code: int | None = None
    for i in range(max_retries):
        try:
            response, result = await _attempt(client, endpoint, request, api_key)
        except (httpx.HTTPError, ValueError) as e:
            last_error = str(e) or type(e).__name__
            status_code = None
            LOGGER.warning("Upstream attempt %d/%d raised: %s", i + 1, max_retries, last_error)
        else:
            if response.is_success:
                if i:
                    LOGGER.info("Upstream call succeeded on attempt %d/%d", i + 1, max_retries)
                return RetryOutcome(ok=True, attempts=i + 1, payload=result)
            last_error = result
            status_code = response.status_code
            LOGGER.warning(
                "Upstream attempt %d/%d returned HTTP %d", i + 1, max_retries, status_code
            )

        if i < max_retries - 1:
            await sleep(backoff_delay(i, backoff_base_s))

    LOGGER.error("Upstream call failed after %d attempts", max_retries)
    return RetryOutcome(
        ok=False,
        attempts=max_retries,
        last_error=last_error,
        status_code=status_code,
    )


async def execute(
    endpoint: str,
    request: OutboundRequest,
    api_key: str,
    **kwargs: Any,
) -> UpstreamCallResult:
    """Like ``fetch_with_retry`` but returns the payload or raises UpstreamError."""
    outcome = await fetch_with_retry(endpoint, request, api_key, **kwargs)
    return outcome.unwrap()
