"""Extract generated images from generateContent responses.

Two response shapes are supported: a single JSON document, and a
`text/event-stream` body whose `data:` events each carry a partial
GenerateContentResponse. Both end up as a data URI, either taken from an
inline image part or downloaded from a Markdown image link found in the text.
"""

import codecs
import enum
import json
import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from curl_cffi.requests.exceptions import RequestException
from loguru import logger
from pydantic import ValidationError

from stagegen.exceptions import ExtractionError, ResponseParseError, UpstreamConnectionError
from stagegen.models.response import GenerateContentResponse, ResponsePart
from stagegen.services.asset_fetcher import AssetFetcher


EVENT_STREAM_CONTENT_TYPE = "text/event-stream"
DONE_MARKER = "[DONE]"
DEFAULT_IMAGE_MIME_TYPE = "image/png"

_MARKDOWN_IMAGE = re.compile(r"!\[[^\]]*\]\((https?://[^\s)]+)\)")
_DATA_PREFIX = re.compile(r"^data:\s?")


def is_event_stream(content_type: str | None) -> bool:
    return EVENT_STREAM_CONTENT_TYPE in (content_type or "").lower()


def extract_markdown_image_url(text: str) -> str | None:
    """Return the URL of the first Markdown image in the text."""
    match = _MARKDOWN_IMAGE.search(text or "")
    return match.group(1) if match else None


def inline_part_to_data_url(part: ResponsePart) -> str | None:
    if part.inlineData is None or not part.inlineData.data:
        return None
    mime_type = part.inlineData.mimeType or DEFAULT_IMAGE_MIME_TYPE
    return f"data:{mime_type};base64,{part.inlineData.data}"


class StreamPhase(str, enum.Enum):
    """Where the stream parser is in the current read."""

    READING = "reading"
    EVENT_BOUNDARY = "event_boundary"
    DRAINED = "drained"


@dataclass
class StreamParseState:
    """Accumulator for one streamed response."""

    decoder: codecs.IncrementalDecoder = field(
        default_factory=lambda: codecs.getincrementaldecoder("utf-8")(errors="replace")
    )
    # Pieces of the event still waiting for its blank line
    pending: list[str] = field(default_factory=list)
    # A trailing "\r" held back until the next chunk shows whether "\n" follows
    pending_cr: bool = False
    collected_text: str = ""
    inline_data_url: str | None = None
    stop_received: bool = False
    phase: StreamPhase = StreamPhase.READING
    events: int = 0
    ignored_events: int = 0

    @property
    def buffer(self) -> str:
        return "".join(self.pending)


class EventStreamParser:
    """Incremental parser for Gemini server-sent events.

    Feed raw chunks as they arrive, then call `finish()` once the source is
    exhausted. Chunk boundaries do not need to match event boundaries, and
    each chunk is only scanned once.
    """

    def __init__(self):
        self.state = StreamParseState()

    def feed(self, chunk: bytes) -> None:
        state = self.state
        if state.phase is StreamPhase.DRAINED:
            raise RuntimeError("Stream parser already drained")

        self._append(self._normalize(state.decoder.decode(chunk)))
        state.phase = StreamPhase.READING

    def finish(self) -> StreamParseState:
        """Flush what is left in the buffer and mark the stream drained."""
        state = self.state
        if state.phase is StreamPhase.DRAINED:
            return state

        self._append(self._normalize(state.decoder.decode(b"", final=True)))
        if state.pending_cr:
            state.pending.append("\r")
            state.pending_cr = False

        remainder = state.buffer
        state.pending = []
        if remainder.strip():
            self._handle_event(remainder)

        state.phase = StreamPhase.DRAINED
        logger.debug(
            f"Stream drained: {state.events} events, {state.ignored_events} ignored, "
            f"stop={state.stop_received}, inline={state.inline_data_url is not None}"
        )
        return state

    def _normalize(self, text: str) -> str:
        state = self.state
        if state.pending_cr:
            text = "\r" + text
            state.pending_cr = False
        if text.endswith("\r"):
            text = text[:-1]
            state.pending_cr = True
        return text.replace("\r\n", "\n")

    def _append(self, text: str) -> None:
        """Add decoded text, dispatching every event it completes."""
        state = self.state
        if not text:
            return

        # A pending event ending in "\n" plus text starting with "\n" is a boundary
        prefix = "\n" if state.pending and state.pending[-1].endswith("\n") else ""
        window = prefix + text
        offset = len(prefix)

        start = 0
        index = window.find("\n\n")
        while index != -1:
            end = index - offset
            if end < 0:
                event = state.buffer[:-1]
                start = 1
            else:
                event = state.buffer + text[start:end]
                start = end + 2
            state.pending = []

            state.phase = StreamPhase.EVENT_BOUNDARY
            self._handle_event(event)
            index = window.find("\n\n", start + offset)

        if start < len(text):
            state.pending.append(text[start:])

    def _handle_event(self, event: str) -> None:
        data_lines = [
            _DATA_PREFIX.sub("", line)
            for line in event.split("\n")
            if line.startswith("data:")
        ]
        if not data_lines:
            return

        data = "\n".join(data_lines).strip()
        if not data:
            return

        self.state.events += 1
        if data == DONE_MARKER:
            self.state.stop_received = True
            return

        try:
            payload = GenerateContentResponse.model_validate(json.loads(data))
        except (json.JSONDecodeError, ValidationError):
            # Keep-alive comments and other non-JSON noise
            self.state.ignored_events += 1
            logger.debug(f"Ignoring unparsable stream event: {data[:100]}")
            return

        self._handle_payload(payload)

    def _handle_payload(self, payload: GenerateContentResponse) -> None:
        state = self.state
        for candidate in payload.candidates:
            if candidate.finishReason == "STOP":
                state.stop_received = True

            parts = candidate.content.parts if candidate.content else []
            for part in parts:
                if state.inline_data_url is None:
                    state.inline_data_url = inline_part_to_data_url(part)
                if part.text is not None:
                    state.collected_text += part.text


class ResponseParser:
    """Turns a provider response into a data URI."""

    def __init__(self, asset_fetcher: AssetFetcher):
        self.asset_fetcher = asset_fetcher

    async def parse(self, response) -> str:
        """Parse a curl_cffi response opened with `stream=True`."""
        content_type = response.headers.get("content-type") or ""
        try:
            if is_event_stream(content_type):
                return await self.parse_stream(response.aiter_content())
            body = await response.acontent()
        except RequestException as e:
            logger.error(f"Reading response body failed: {e}")
            raise UpstreamConnectionError(f"Response body read failed: {e}") from e
        return await self.parse_document(body)

    async def parse_document(self, body: bytes | str) -> str:
        """Parse a single JSON response body."""
        try:
            document = GenerateContentResponse.model_validate(json.loads(body))
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Invalid JSON response: {e}")
            raise ResponseParseError(
                "Image generation failed: response is not valid JSON"
            ) from e

        collected_text = ""
        if document.candidates and document.candidates[0].content:
            for part in document.candidates[0].content.parts:
                data_url = inline_part_to_data_url(part)
                if data_url:
                    return data_url
                if part.text is not None:
                    collected_text += part.text

        return await self._resolve_text(collected_text, "response")

    async def parse_stream(self, chunks: AsyncIterator[bytes] | None) -> str:
        """Parse a server-sent event stream, reading it to the end."""
        if chunks is None:
            raise ResponseParseError("Image generation failed: response body is empty")

        parser = EventStreamParser()
        async for chunk in chunks:
            if chunk:
                parser.feed(chunk)
        state = parser.finish()

        if state.inline_data_url:
            return state.inline_data_url

        if not state.stop_received:
            logger.warning("Stream ended without a STOP signal, using collected content")
        return await self._resolve_text(state.collected_text, "SSE response")

    async def _resolve_text(self, text: str, source: str) -> str:
        image_url = extract_markdown_image_url(text)
        if image_url:
            logger.info(f"No inline image, downloading Markdown image: {image_url}")
            return await self.asset_fetcher.to_data_url(image_url)

        raise ExtractionError(
            f"Image generation failed: no image data extracted from {source}"
        )
