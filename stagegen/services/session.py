"""Shared curl_cffi session used by the provider, the asset fetcher and the image proxy."""

from curl_cffi.requests import AsyncSession
from loguru import logger

from stagegen.config import settings


_session: AsyncSession | None = None


async def get_session() -> AsyncSession:
    """Return the shared session, opening it on first use."""
    global _session
    if _session is None:
        _session = AsyncSession(impersonate=settings.impersonate)
        logger.debug(f"Opened HTTP session (impersonate={settings.impersonate})")
    return _session


async def close_session() -> None:
    global _session
    if _session is not None:
        await _session.close()
        _session = None
        logger.debug("Closed HTTP session")
