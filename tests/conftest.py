"""Shared fakes for curl_cffi sessions and responses."""

import json

import pytest
from curl_cffi.requests.exceptions import RequestException

from stagegen.config import settings
from stagegen.models.model import ResolvedModel


PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


class FakeResponse:
    """Stands in for a curl_cffi response, streamed or not."""

    def __init__(self, status_code=200, content=b"", headers=None, chunks=None):
        self.status_code = status_code
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}
        self._chunks = list(chunks) if chunks is not None else None
        self._content = content
        self.closed = False
        self.chunks_read = 0

    @property
    def content(self):
        if self._chunks is not None:
            return b"".join(self._chunks)
        return self._content

    async def acontent(self):
        return self.content

    async def aiter_content(self):
        for chunk in self._chunks if self._chunks is not None else [self._content]:
            self.chunks_read += 1
            yield chunk

    async def aclose(self):
        self.closed = True


class BrokenStreamResponse(FakeResponse):
    """Event stream whose connection drops after the given chunks."""

    def __init__(self, *chunks, error=None):
        super().__init__(
            headers={"Content-Type": "text/event-stream"},
            chunks=[c.encode() if isinstance(c, str) else c for c in chunks],
        )
        self.error = error or RequestException("connection reset mid-stream")

    async def aiter_content(self):
        async for chunk in super().aiter_content():
            yield chunk
        raise self.error

    async def acontent(self):
        raise self.error


class FakeSession:
    """Replays queued POST results and serves GET responses by URL."""

    def __init__(self, post=None, get=None):
        self.post_results = list(post or [])
        self.get_results = dict(get or {})
        self.post_calls = []
        self.get_calls = []

    async def post(self, url, **kwargs):
        self.post_calls.append((url, kwargs))
        result = self.post_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def get(self, url, **kwargs):
        self.get_calls.append(url)
        result = self.get_results.get(url, FakeResponse(404))
        if isinstance(result, Exception):
            raise result
        return result


def json_response(payload, status_code=200):
    return FakeResponse(
        status_code=status_code,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json"},
    )


def sse_response(*chunks):
    return FakeResponse(
        headers={"Content-Type": "text/event-stream; charset=utf-8"},
        chunks=[c.encode() if isinstance(c, str) else c for c in chunks],
    )


def inline_payload(data="Zm9v", mime_type="image/png", finish_reason=None):
    candidate = {"content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": data}}]}}
    if finish_reason:
        candidate["finishReason"] = finish_reason
    return {"candidates": [candidate]}


def text_payload(text, finish_reason=None):
    candidate = {"content": {"parts": [{"text": text}]}}
    if finish_reason:
        candidate["finishReason"] = finish_reason
    return {"candidates": [candidate]}


def sse_event(payload):
    data = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return f"data: {data}\n\n"


@pytest.fixture
def model():
    return ResolvedModel(
        id="gemini-2.5-flash-image",
        api_base_url="https://api.example.com/",
    )


@pytest.fixture
def no_delay(monkeypatch):
    monkeypatch.setattr(settings, "retry_base_delay", 0.0)
    monkeypatch.setattr(settings, "max_retry", 3)


@pytest.fixture
def no_proxy_origin(monkeypatch):
    monkeypatch.setattr(settings, "local_origin", None)
