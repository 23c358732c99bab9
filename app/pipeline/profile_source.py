from __future__ import annotations

import asyncio
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlparse

import httpx

from app.core.config import settings
from app.pipeline.errors import SourceUnavailableError
from app.pipeline.sanitizer import sanitize

logger = logging.getLogger(__name__)

LINK_MARKER = "LinkedIn Profile Link:"
LINKEDIN_PROFILE_URL_RE = re.compile(r"https://www\.linkedin\.com/in/[^\s]+")
BLOCKED_STATUS_CODES = {401, 403, 429, 999}
MAX_REDIRECTS = 5

FETCH_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}


class Provenance(str, Enum):
    TRUSTED = "trusted"
    UNTRUSTED_SCRAPED = "untrusted_scraped"


@dataclass(frozen=True)
class ProfileInput:
    text: str
    provenance: Provenance = Provenance.TRUSTED
    source_url: str | None = None


def find_profile_link(profile_text: str) -> str | None:
    """Return the LinkedIn profile URL when the text carries the link marker."""
    if LINK_MARKER not in profile_text:
        return None
    match = LINKEDIN_PROFILE_URL_RE.search(profile_text)
    return match.group(0) if match else None


def host_is_private_or_local(hostname: str) -> bool:
    host = (hostname or "").strip().lower()
    if host in {"localhost", "127.0.0.1", "::1"} or host.endswith(".local"):
        return True
    try:
        ip = ipaddress.ip_address(host)
        return bool(ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved)
    except ValueError:
        pass
    try:
        for _family, _socktype, _proto, _canon, sockaddr in socket.getaddrinfo(host, None):
            address = sockaddr[0] if sockaddr else ""
            if not address:
                continue
            try:
                resolved = ipaddress.ip_address(address)
            except ValueError:
                continue
            if resolved.is_private or resolved.is_loopback or resolved.is_link_local or resolved.is_reserved:
                return True
    except OSError:
        return False
    return False


async def _ensure_public_host(url: str) -> None:
    hostname = (urlparse(url).hostname or "").lower()
    if await asyncio.to_thread(host_is_private_or_local, hostname):
        raise SourceUnavailableError("Private or local URLs are not allowed for profile extraction.")


async def fetch_profile_page(url: str, *, transport: httpx.AsyncBaseTransport | None = None) -> str:
    """Fetch the public profile HTML; every failure becomes ``SourceUnavailableError``.

    Redirects are followed by hand so each hop passes the private-host check.
    """
    await _ensure_public_host(url)

    try:
        async with httpx.AsyncClient(
            timeout=settings.scrape_timeout_s,
            follow_redirects=False,
            headers=FETCH_HEADERS,
            transport=transport,
        ) as client:
            response = await client.get(url)
            for _ in range(MAX_REDIRECTS):
                next_request = response.next_request
                if next_request is None:
                    break
                await _ensure_public_host(str(next_request.url))
                response = await client.send(next_request)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.warning("profile_fetch_failed url=%r: %s", url, exc)
        raise SourceUnavailableError(f"Profile page could not be fetched: {exc}") from exc

    if response.is_redirect:
        logger.warning("profile_fetch_redirect_loop url=%s", url)
        raise SourceUnavailableError(f"Profile page redirected more than {MAX_REDIRECTS} times.")
    if response.status_code in BLOCKED_STATUS_CODES or response.status_code >= 500:
        logger.warning("profile_fetch_blocked url=%s status=%s", url, response.status_code)
        raise SourceUnavailableError(f"Profile page returned HTTP {response.status_code}.")
    return response.text or ""


async def resolve_profile_input(
    profile_text: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProfileInput:
    """Turn the request text into a ProfileInput, scraping and sanitizing linked profiles."""
    url = find_profile_link(profile_text)
    if url is None:
        return ProfileInput(text=profile_text, provenance=Provenance.TRUSTED)

    html = await fetch_profile_page(url, transport=transport)
    text = await asyncio.to_thread(sanitize, html)
    logger.info("profile_scraped url=%s chars=%s", url, len(text))
    return ProfileInput(text=text, provenance=Provenance.UNTRUSTED_SCRAPED, source_url=url)
