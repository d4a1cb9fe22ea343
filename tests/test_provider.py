import json

import pytest
from curl_cffi.requests.exceptions import RequestException

from conftest import (
    PNG_BYTES,
    BrokenStreamResponse,
    FakeResponse,
    FakeSession,
    inline_payload,
    json_response,
    sse_event,
    sse_response,
    text_payload,
)
from stagegen.exceptions import (
    ApiKeyError,
    ConfigurationError,
    ExtractionError,
    MediaGenerationError,
    ResponseParseError,
    UpstreamConnectionError,
    UpstreamHTTPError,
)
from stagegen.models.request import GenerationRequest
from stagegen.services.asset_fetcher import AssetFetcher
from stagegen.services.provider import (
    SERVICE_BUSY_MESSAGE,
    UNSAFE_PROMPT_MESSAGE,
    MediaGenerationProvider,
)


pytestmark = pytest.mark.usefixtures("no_delay", "no_proxy_origin")

REQUEST = GenerationRequest(prompt="sunset over mountains", aspect_ratio="16:9")


async def test_generates_inline_image(model):
    response = json_response(inline_payload("Zm9v"))
    session = FakeSession(post=[response])
    provider = MediaGenerationProvider(session)

    result = await provider.generate_image(REQUEST, model, "secret")

    assert result == "data:image/png;base64,Zm9v"
    url, kwargs = session.post_calls[0]
    assert url == "https://api.example.com/v1beta/models/gemini-2.5-flash-image:generateContent"
    assert kwargs["headers"]["Authorization"] == "Bearer secret"
    assert kwargs["stream"] is True
    assert "imageConfig" not in kwargs["json"]["generationConfig"]
    assert response.closed


async def test_custom_endpoint_is_used(model):
    custom = model.model_copy(update={"endpoint": "/v1/custom:generate"})
    session = FakeSession(post=[json_response(inline_payload())])

    await MediaGenerationProvider(session).generate_image(REQUEST, custom, "k")

    assert session.post_calls[0][0] == "https://api.example.com/v1/custom:generate"


async def test_streamed_response(model):
    response = sse_response(
        sse_event(text_payload("Working on it")),
        sse_event(inline_payload("c3RyZWFt", mime_type="image/jpeg")),
        sse_event(text_payload("done", "STOP")),
    )
    session = FakeSession(post=[response])

    result = await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert result == "data:image/jpeg;base64,c3RyZWFt"
    assert response.chunks_read == 3
    assert response.closed


async def test_markdown_link_is_downloaded(model):
    image_url = "https://cdn.example.com/out.png"
    session = FakeSession(
        post=[json_response(text_payload(f"![out]({image_url})"))],
        get={image_url: FakeResponse(200, content=PNG_BYTES, headers={"Content-Type": "image/png"})},
    )

    result = await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert result.startswith("data:image/png;base64,")
    assert session.get_calls == [image_url]


async def test_missing_model_fails_before_network():
    session = FakeSession()

    with pytest.raises(ConfigurationError):
        await MediaGenerationProvider(session).generate_image(REQUEST, None, "k")

    assert session.post_calls == []


async def test_missing_api_key_fails_before_network(model):
    session = FakeSession()

    with pytest.raises(ApiKeyError):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "")

    assert session.post_calls == []


async def test_unauthorized_is_not_retried(model):
    error_body = json.dumps({"error": {"message": "API key not valid"}}).encode()
    session = FakeSession(post=[FakeResponse(401, content=error_body), json_response(inline_payload())])

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "bad")

    assert len(session.post_calls) == 1
    assert exc_info.value.status_code == 401
    assert exc_info.value.message == "API key not valid"


async def test_bad_request_has_readable_message(model):
    session = FakeSession(post=[FakeResponse(400, content=b"{}")])

    with pytest.raises(UpstreamHTTPError) as exc_info:
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert exc_info.value.message == UNSAFE_PROMPT_MESSAGE
    assert len(session.post_calls) == 1


async def test_transient_errors_are_retried(model):
    session = FakeSession(
        post=[
            RequestException("connection reset"),
            FakeResponse(500, content=b"oops"),
            json_response(inline_payload("b2s=")),
        ]
    )

    result = await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert result == "data:image/png;base64,b2s="
    assert len(session.post_calls) == 3


async def test_last_error_surfaces_after_exhaustion(model):
    session = FakeSession(
        post=[
            FakeResponse(502, content=b"bad gateway"),
            FakeResponse(500, content=b""),
            RequestException("timed out"),
        ]
    )

    with pytest.raises(UpstreamConnectionError, match="timed out"):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert len(session.post_calls) == 3


async def test_connection_lost_while_streaming(model):
    response = BrokenStreamResponse(sse_event(text_payload("Working on it")))
    session = FakeSession(post=[response])

    with pytest.raises(UpstreamConnectionError, match="connection reset mid-stream"):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert response.chunks_read == 1
    assert response.closed


async def test_connection_lost_while_reading_document(model):
    response = BrokenStreamResponse(error=RequestException("operation timed out"))
    response.headers = {"content-type": "application/json"}
    session = FakeSession(post=[response])

    with pytest.raises(MediaGenerationError, match="timed out"):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert response.closed


def test_error_messages():
    message = MediaGenerationProvider._error_message
    assert message(500, b"") == SERVICE_BUSY_MESSAGE
    assert message(429, b'{"error": {"message": "Quota exceeded"}}') == "Quota exceeded"
    assert message(404, b"not here") == "not here"
    assert message(503, b"") == "HTTP error: 503"


async def test_invalid_json_is_not_retried(model):
    session = FakeSession(
        post=[FakeResponse(200, content=b"<html>", headers={"Content-Type": "text/html"})]
    )

    with pytest.raises(ResponseParseError):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")

    assert len(session.post_calls) == 1


async def test_empty_result_is_extraction_error(model):
    session = FakeSession(post=[json_response(text_payload("no image for you"))])

    with pytest.raises(ExtractionError):
        await MediaGenerationProvider(session).generate_image(REQUEST, model, "k")


async def test_asset_fetcher_can_be_injected(model):
    session = FakeSession(post=[json_response(inline_payload())])
    fetcher = AssetFetcher(session, local_origin="http://localhost:8000")

    provider = MediaGenerationProvider(session, asset_fetcher=fetcher)

    assert provider.asset_fetcher is fetcher
    assert provider.parser.asset_fetcher is fetcher


def test_aspect_ratio_support(model):
    provider = MediaGenerationProvider(FakeSession())

    assert provider.is_aspect_ratio_supported("9:16", model)
    assert not provider.is_aspect_ratio_supported("5:4", model)
    assert not provider.is_aspect_ratio_supported("1:1", None)
