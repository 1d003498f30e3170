"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Generator, List

import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cohere_openai.services.network_manager import network_manager  # noqa: E402


class ChunkedStream(httpx.AsyncByteStream):
    """Async byte stream that yields the given chunks one read at a time."""

    def __init__(self, chunks: List[bytes]) -> None:
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


def ndjson(*events: dict) -> bytes:
    return b"".join(orjson.dumps(event) + b"\n" for event in events)


def parse_sse(text: str) -> List[dict]:
    """Split an SSE body into decoded JSON payloads."""
    frames = [frame for frame in text.split("\n\n") if frame]
    payloads = []
    for frame in frames:
        assert frame.startswith("data: ")
        payloads.append(orjson.loads(frame[len("data: "):]))
    return payloads


class FakeUpstream:
    """Records upstream calls and answers with a canned response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"text": "hi"}
        )

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def last_payload(self) -> Any:
        return orjson.loads(self.requests[-1].content)

    def respond_with(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handler = handler

    def stream_chunks(self, chunks: List[bytes]) -> ChunkedStream:
        stream = ChunkedStream(chunks)
        self.respond_with(
            lambda request: httpx.Response(
                200,
                headers={"content-type": "application/stream+json"},
                stream=stream,
            )
        )
        return stream

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def fake_upstream() -> Generator[FakeUpstream, None, None]:
    """Route every upstream call through an in-process mock transport."""
    upstream = FakeUpstream()
    network_manager.set_transport(httpx.MockTransport(upstream))
    yield upstream
    network_manager.set_transport(None)


@pytest.fixture
def client(fake_upstream) -> Generator[TestClient, None, None]:
    from main import app

    with TestClient(app) as test_client:
        yield test_client
