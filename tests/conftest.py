from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend import RelayBackend
from upstream import UpstreamClient


class RecordingChannel:
    """Channel that keeps every pushed event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []
        self.closed = False

    def push(self, event: str, data: Any) -> bool:
        if self.closed:
            return False
        self.events.append((event, data))
        return True

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def backend() -> RelayBackend:
    return RelayBackend()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


def make_upstream(handler, sleeper=None) -> UpstreamClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs = {"translation_key": "gkey", "openai_key": "okey"}
    if sleeper is not None:
        kwargs["sleep"] = sleeper
    return UpstreamClient(client, **kwargs)


@pytest.fixture
def client():
    with TestClient(create_app()) as c:
        yield c
