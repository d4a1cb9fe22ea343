"""Same-origin image proxy used as the asset download fallback."""

import asyncio
import ipaddress
import socket
from urllib.parse import urljoin, urlparse

from curl_cffi.requests.exceptions import RequestException
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from loguru import logger

from stagegen.config import settings
from stagegen.services.session import get_session


router = APIRouter()

MAX_REDIRECT_HOPS = 5
REDIRECT_STATUSES = (301, 302, 303, 307, 308)
LOCAL_HOST_SUFFIXES = (".localhost", ".local", ".internal")


class ProxyTargetError(ValueError):
    """Raised when a URL must not be fetched by the proxy."""


async def resolve_addresses(hostname: str) -> set[str]:
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ProxyTargetError(f"Could not resolve hostname '{hostname}': {e}") from e
    return {info[4][0] for info in infos}


def is_public_address(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    if ip.version == 6 and ip.ipv4_mapped:
        ip = ip.ipv4_mapped
    return ip.is_global


def is_allowed_host(hostname: str, allowed_hosts: list[str]) -> bool:
    """An empty allowlist admits every public host."""
    if not allowed_hosts:
        return True
    return any(
        hostname == allowed or hostname.endswith("." + allowed)
        for allowed in (host.lower().strip(".") for host in allowed_hosts)
    )


async def validate_proxy_target(url: str) -> None:
    """
    Reject URLs that point at the proxy's own network.

    Raises:
        ProxyTargetError: Non-http(s) scheme, missing or local hostname, host
            outside `image_proxy_allowed_hosts`, or an address that is not
            publicly routable
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ProxyTargetError("Only http(s) URLs can be proxied")

    hostname = (parsed.hostname or "").lower().rstrip(".")
    if not hostname:
        raise ProxyTargetError("URL must have a hostname")
    if hostname == "localhost" or hostname.endswith(LOCAL_HOST_SUFFIXES):
        raise ProxyTargetError(f"Host {hostname} is not allowed")
    if not is_allowed_host(hostname, settings.image_proxy_allowed_hosts):
        raise ProxyTargetError(f"Host {hostname} is not in the proxy allowlist")

    try:
        addresses = {str(ipaddress.ip_address(hostname))}
    except ValueError:
        addresses = await resolve_addresses(hostname)

    for address in addresses:
        if not is_public_address(address):
            logger.warning(f"Image proxy blocked {url}: {hostname} resolves to {address}")
            raise ProxyTargetError(f"Host {hostname} resolves to a non-public address")


@router.get(
    settings.image_proxy_path,
    summary="Proxy an image",
    description="Fetch an image from a public remote URL and return its body unchanged.",
)
async def image_proxy(
    url: str = Query(..., description="Remote image URL"),
    session=Depends(get_session),
):
    current_url = url
    for _ in range(MAX_REDIRECT_HOPS + 1):
        try:
            await validate_proxy_target(current_url)
        except ProxyTargetError as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            upstream = await session.get(
                current_url,
                timeout=settings.timeout,
                proxy=settings.proxy,
                allow_redirects=False,
            )
        except RequestException as e:
            logger.error(f"Image proxy request failed for {current_url}: {e}")
            raise HTTPException(status_code=502, detail=f"Upstream request failed: {e}")

        location = upstream.headers.get("location")
        if upstream.status_code not in REDIRECT_STATUSES or not location:
            break
        current_url = urljoin(current_url, location)
        logger.debug(f"Image proxy following redirect to {current_url}")
    else:
        raise HTTPException(status_code=502, detail="Too many redirects")

    if not 200 <= upstream.status_code < 300:
        logger.warning(f"Image proxy upstream returned {upstream.status_code} for {current_url}")
        raise HTTPException(
            status_code=502, detail=f"Upstream returned HTTP {upstream.status_code}"
        )

    media_type = upstream.headers.get("content-type") or "application/octet-stream"
    return Response(content=upstream.content, media_type=media_type)
