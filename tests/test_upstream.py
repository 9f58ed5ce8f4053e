import asyncio
import json

import httpx
import pytest

from conftest import make_upstream
from errors import UpstreamResponseError

CHAT_OK = {"choices": [{"message": {"content": "  A short summary.  "}}]}


def test_retry_backs_off_then_succeeds(sleeper) -> None:
    statuses = iter([429, 429, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        return httpx.Response(status, json=CHAT_OK if status == 200 else {"error": "rate"})

    upstream = make_upstream(handler, sleeper)
    response = asyncio.run(upstream.post_with_retry("https://chat.test/v1", {"x": 1}))

    assert response.status_code == 200
    assert sleeper.delays == [1.0, 2.0]
    assert sum(sleeper.delays) >= 3.0


def test_retry_gives_up_after_three_retries(sleeper) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(429, json={"error": "rate"})

    upstream = make_upstream(handler, sleeper)
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(upstream.post_with_retry("https://chat.test/v1", {}))

    assert len(calls) == 4
    assert sleeper.delays == [1.0, 2.0, 4.0]


def test_other_errors_are_not_retried(sleeper) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503)

    upstream = make_upstream(handler, sleeper)
    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(upstream.post_with_retry("https://chat.test/v1", {}))

    assert len(calls) == 1
    assert sleeper.delays == []


def test_summarize_sends_chat_request_and_trims(sleeper) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=CHAT_OK)

    upstream = make_upstream(handler, sleeper)
    assert asyncio.run(upstream.summarize("alice: hi\nbob: hello")) == "A short summary."

    request = seen[0]
    assert request.headers["Authorization"] == "Bearer okey"
    body = json.loads(request.content)
    assert body["model"] == "gpt-3.5-turbo"
    assert body["max_tokens"] == 150
    assert body["messages"][-1] == {"role": "user", "content": "alice: hi\nbob: hello"}


def test_summarize_rejects_unexpected_shape(sleeper) -> None:
    upstream = make_upstream(lambda request: httpx.Response(200, json={"choices": []}), sleeper)

    with pytest.raises(UpstreamResponseError):
        asyncio.run(upstream.summarize("text"))


def test_detect_language_reads_first_detection() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/detect")
        assert request.url.params["key"] == "gkey"
        return httpx.Response(200, json={"data": {"detections": [[{"language": "fr", "confidence": 1}]]}})

    upstream = make_upstream(handler)
    assert asyncio.run(upstream.detect_language("Bonjour")) == "fr"


def test_detect_language_without_detections() -> None:
    upstream = make_upstream(lambda request: httpx.Response(200, json={"data": {}}))
    assert asyncio.run(upstream.detect_language("???")) is None
