"""Exceptions raised by the media generation adapter."""


class MediaGenerationError(Exception):
    """Base class for every failure surfaced by a generation call."""

    retryable = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(MediaGenerationError):
    """No usable model configuration."""

    retryable = False


class ApiKeyError(ConfigurationError):
    """The model has no API key configured."""


class UpstreamHTTPError(MediaGenerationError):
    """The provider answered with a non-success status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code not in (400, 401, 403)


class UpstreamConnectionError(MediaGenerationError):
    """The connection failed before or while the response was read."""


class ResponseParseError(MediaGenerationError):
    """The response body is not something the parser understands."""

    retryable = False


class ExtractionError(MediaGenerationError):
    """The response was well formed but carried no image."""

    retryable = False


class AssetFetchError(MediaGenerationError):
    """A remote image could not be retrieved."""

    retryable = False

    def __init__(self, message: str, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class AssetConversionError(AssetFetchError):
    """A retrieved image could not be encoded as a data URI."""
