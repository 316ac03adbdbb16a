import json

import httpx
import pytest

from query_insight.core.config.env import ENV_FIELDS, ENV_PREFIX
from query_insight.core.config.models import AppConfig

API_URL = "https://llm.test/v1/chat/completions"
TOKEN = "sk-test"


class RecordingHandler:
    """httpx.MockTransport handler that records every request and replies with a canned response."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class BrokenStream(httpx.AsyncByteStream):
    """Yields the given chunks, then fails like a dropped connection (or the given error)."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None):
        self.chunks = chunks
        self.error = error

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        raise self.error or httpx.ReadError("connection reset by peer")


def json_reply(payload, status_code: int = 200):
    return lambda request: httpx.Response(status_code, json=payload)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # Keep the developer's QUERY_INSIGHT_* settings out of the tests; restored afterwards
    for suffix in ENV_FIELDS:
        name = ENV_PREFIX + suffix
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


@pytest.fixture
def config():
    return AppConfig(env_file_path=None)


@pytest.fixture
def make_transport():
    def _make(responder):
        handler = RecordingHandler(responder)
        return handler, httpx.MockTransport(handler)

    return _make
