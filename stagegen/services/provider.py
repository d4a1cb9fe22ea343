"""Gemini-style image generation provider."""

import json
from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException
from loguru import logger

from stagegen.config import settings
from stagegen.exceptions import (
    ApiKeyError,
    ConfigurationError,
    UpstreamConnectionError,
    UpstreamHTTPError,
)
from stagegen.models.model import ResolvedModel
from stagegen.models.request import GenerationRequest
from stagegen.services.asset_fetcher import AssetFetcher
from stagegen.services.request_builder import build_headers, build_request_body
from stagegen.services.response_parser import ResponseParser
from stagegen.services.retry import retry_operation


UNSAFE_PROMPT_MESSAGE = (
    "The prompt may contain unsafe or prohibited content and could not be "
    "processed. Please revise it and try again."
)
SERVICE_BUSY_MESSAGE = (
    "The service is handling too many requests right now. Please try again later."
)


class MediaGenerationProvider:
    """Provider for Gemini-compatible image generation APIs."""

    def __init__(self, session: AsyncSession, asset_fetcher: AssetFetcher | None = None):
        self.session = session
        self.asset_fetcher = asset_fetcher or AssetFetcher(session)
        self.parser = ResponseParser(self.asset_fetcher)

    async def generate_image(
        self,
        request: GenerationRequest,
        model: ResolvedModel | None,
        api_key: str | None,
    ) -> str:
        """
        Generate an image and return it as a data URI.

        Args:
            request: The generation request
            model: Resolved model descriptor
            api_key: API key for the model

        Returns:
            `data:<mime>;base64,<payload>` string

        Raises:
            MediaGenerationError: Any failure, see stagegen.exceptions
        """
        if model is None:
            raise ConfigurationError("No image model available")
        if not api_key:
            raise ApiKeyError("API key is missing, configure one for this model")

        body = build_request_body(request, model)
        headers = build_headers(api_key)
        url = model.url

        logger.info(
            f"Generating image with {model.id} "
            f"({len(request.reference_images)} reference images)"
        )

        async def attempt():
            return await self._call_api(url, headers, body)

        response = await retry_operation(
            attempt,
            max_attempts=settings.max_retry,
            base_delay=settings.retry_base_delay,
        )

        try:
            return await self.parser.parse(response)
        finally:
            await response.aclose()

    def is_aspect_ratio_supported(
        self, aspect_ratio: str, model: ResolvedModel | None
    ) -> bool:
        if model is None:
            return False
        return aspect_ratio in model.supported_aspect_ratios

    async def _call_api(self, url: str, headers: dict, body: dict):
        """
        POST the request once.

        Returns:
            The streamed response, still open, with a success status
        """
        try:
            response = await self.session.post(
                url,
                headers=headers,
                json=body,
                timeout=settings.timeout,
                proxy=settings.proxy,
                stream=True,
            )
        except RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise UpstreamConnectionError(f"Request failed: {e}") from e

        if 200 <= response.status_code < 300:
            return response

        try:
            error_body = await response.acontent()
        finally:
            await response.aclose()

        message = self._error_message(response.status_code, error_body)
        logger.error(
            f"API request failed - status: {response.status_code}, "
            f"response: {error_body[:1024]!r}"
        )
        raise UpstreamHTTPError(response.status_code, message)

    @staticmethod
    def _error_message(status_code: int, body: bytes) -> str:
        if status_code == 400:
            return UNSAFE_PROMPT_MESSAGE
        if status_code == 500:
            return SERVICE_BUSY_MESSAGE

        message = f"HTTP error: {status_code}"
        text = body.decode("utf-8", errors="replace").strip() if body else ""
        try:
            error = json.loads(text).get("error") or {}
            return error.get("message") or message
        except (json.JSONDecodeError, AttributeError):
            return text or message
