"""Services for the application."""

from .asset_fetcher import AssetFetcher
from .provider import MediaGenerationProvider
from .registry import ModelRegistry
from .response_parser import ResponseParser
from .retry import retry_operation
from .session import get_session, close_session

__all__ = [
    "AssetFetcher",
    "MediaGenerationProvider",
    "ModelRegistry",
    "ResponseParser",
    "retry_operation",
    "get_session",
    "close_session",
]
