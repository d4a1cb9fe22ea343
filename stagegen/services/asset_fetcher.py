"""Download remote images and turn them into data URIs."""

import base64
from urllib.parse import quote

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException
from loguru import logger

from stagegen.config import settings
from stagegen.exceptions import AssetConversionError, AssetFetchError


def detect_mime_type(data: bytes) -> str:
    """Best-effort MIME detection from magic numbers."""
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return "image/webp"
    if len(data) > 12 and data[4:8] == b"ftyp":
        return "video/mp4"
    return "application/octet-stream"


class AssetFetcher:
    """Fetches images referenced by URL, falling back to the same-origin proxy."""

    def __init__(
        self,
        session: AsyncSession,
        local_origin: str | None = None,
        proxy_path: str | None = None,
    ):
        self.session = session
        # An empty string disables the proxy fallback
        self.local_origin = (
            settings.local_origin if local_origin is None else local_origin
        )
        self.proxy_path = proxy_path or settings.image_proxy_path

    def proxy_url_for(self, url: str) -> str:
        origin = (self.local_origin or "").rstrip("/")
        return f"{origin}{self.proxy_path}?url={quote(url, safe='')}"

    async def fetch(self, url: str) -> tuple[bytes, str]:
        """
        Download an image.

        Returns:
            Tuple of (content, mime_type)

        Raises:
            AssetFetchError: The direct download failed and the proxy either
                is not configured or failed too. The error is always the one
                from the direct download.
        """
        try:
            return await self._download(url, proxy=settings.proxy)
        except AssetFetchError as primary_error:
            if not self.local_origin:
                raise

            proxy_url = self.proxy_url_for(url)
            logger.warning(
                f"Direct image download failed ({primary_error}), retrying via {proxy_url}"
            )
            try:
                return await self._download(proxy_url)
            except AssetFetchError as proxy_error:
                logger.error(f"Proxy image download failed: {proxy_error}")
                raise primary_error

    async def to_data_url(self, url: str) -> str:
        """Download an image and encode it as a base64 data URI."""
        content, mime_type = await self.fetch(url)

        if not content:
            raise AssetConversionError("Image to base64 conversion failed: empty body", url)
        if not mime_type.startswith(("image/", "video/")):
            raise AssetConversionError(
                f"Image to base64 conversion failed: body is not an image ({mime_type})", url
            )
        try:
            encoded = base64.b64encode(content).decode("ascii")
        except (TypeError, ValueError) as e:
            raise AssetConversionError(f"Image to base64 conversion failed: {e}", url) from e

        logger.info(f"Converted remote image to data URI ({len(content)} bytes, {mime_type})")
        return f"data:{mime_type};base64,{encoded}"

    async def _download(self, url: str, proxy: str | None = None) -> tuple[bytes, str]:
        try:
            response = await self.session.get(
                url,
                timeout=settings.timeout,
                proxy=proxy,
            )
        except RequestException as e:
            raise AssetFetchError(f"Image download failed: {e}", url) from e

        if not 200 <= response.status_code < 300:
            raise AssetFetchError(
                f"Image download failed: HTTP {response.status_code}",
                url,
                response.status_code,
            )

        content = response.content
        content_type = (response.headers.get("content-type") or "").split(";")[0].strip()
        if not content_type.startswith(("image/", "video/")):
            content_type = detect_mime_type(content or b"")
        return content, content_type
