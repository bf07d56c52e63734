from __future__ import annotations

import asyncio

import httpx
import pytest

from poet_proxy.common.errors import UpstreamError
from poet_proxy.common.schema import OutboundRequest
from poet_proxy.upstream.retry import backoff_delay, execute, fetch_with_retry

from conftest import Recorder

URL = "https://upstream.test/v1beta/models/m:generateContent"
REQ = OutboundRequest(body={"contents": [{"parts": [{"text": "hi"}]}]})
OK = (200, {"candidates": []})
BAD = (503, {"error": {"code": 503, "message": "overloaded"}})


def _run(recorder, fake_sleep, make_client, **kwargs):
    async def go():
        async with make_client(recorder) as client:
            return await fetch_with_retry(URL, REQ, "secret-key-123", client=client, sleep=fake_sleep, **kwargs)

    return asyncio.run(go())


def test_first_success_returns_without_retry(fake_sleep, make_client) -> None:
    rec = Recorder([OK])
    outcome = _run(rec, fake_sleep, make_client)
    assert outcome.ok
    assert outcome.payload == {"candidates": []}
    assert outcome.attempts == 1
    assert len(rec.requests) == 1
    assert fake_sleep.delays == []


def test_credential_sent_as_key_query_param(fake_sleep, make_client) -> None:
    rec = Recorder([OK])
    _run(rec, fake_sleep, make_client)
    sent = rec.requests[0]
    assert sent.method == "POST"
    assert sent.url.params["key"] == "secret-key-123"
    assert sent.headers["content-type"] == "application/json"
    assert rec.bodies[0] == REQ.body


def test_all_attempts_fail_with_backoff(fake_sleep, make_client) -> None:
    rec = Recorder([BAD])
    outcome = _run(rec, fake_sleep, make_client)
    assert not outcome.ok
    assert outcome.attempts == 3
    assert outcome.status_code == 503
    assert outcome.last_error == BAD[1]
    assert len(rec.requests) == 3
    assert fake_sleep.delays == [1.0, 2.0]


@pytest.mark.parametrize("failures", [1, 2])
def test_recovers_after_failures(failures, fake_sleep, make_client) -> None:
    rec = Recorder([BAD] * failures + [OK])
    outcome = _run(rec, fake_sleep, make_client)
    assert outcome.ok
    assert outcome.attempts == failures + 1
    assert len(rec.requests) == failures + 1
    assert fake_sleep.delays == [1.0, 2.0][:failures]


def test_transport_error_is_retried_and_reported(fake_sleep, make_client) -> None:
    rec = Recorder([httpx.ConnectError("connection refused")])
    outcome = _run(rec, fake_sleep, make_client)
    assert not outcome.ok
    assert outcome.status_code is None
    assert outcome.last_error == "connection refused"
    assert len(rec.requests) == 3


def test_malformed_json_counts_as_failure(fake_sleep, make_client) -> None:
    rec = Recorder([(200, b"<html>oops</html>"), OK])
    outcome = _run(rec, fake_sleep, make_client)
    assert outcome.ok
    assert outcome.attempts == 2
    assert fake_sleep.delays == [1.0]


def test_last_error_is_from_final_attempt(fake_sleep, make_client) -> None:
    rec = Recorder([BAD, BAD, httpx.ReadTimeout("timed out")])
    outcome = _run(rec, fake_sleep, make_client)
    assert outcome.last_error == "timed out"
    assert outcome.status_code is None


def test_execute_raises_upstream_error(fake_sleep, make_client) -> None:
    rec = Recorder([BAD])

    async def go():
        async with make_client(rec) as client:
            await execute(URL, REQ, "secret-key-123", client=client, sleep=fake_sleep)

    with pytest.raises(UpstreamError) as info:
        asyncio.run(go())
    err = info.value
    assert err.attempts == 3
    assert err.status_code == 503
    assert "overloaded" in str(err)
    assert "secret-key-123" not in str(err)


def test_custom_attempts_and_base(fake_sleep, make_client) -> None:
    rec = Recorder([BAD])
    outcome = _run(rec, fake_sleep, make_client, max_retries=4, backoff_base_s=0.5)
    assert outcome.attempts == 4
    assert fake_sleep.delays == [0.5, 1.0, 2.0]


def test_backoff_delay() -> None:
    assert [backoff_delay(i) for i in range(3)] == [1.0, 2.0, 4.0]
