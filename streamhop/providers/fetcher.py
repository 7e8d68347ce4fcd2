"""
HTTP fetcher for the resolution pipeline. Wraps aiohttp with common defaults,
headers, a bounded timeout and strict status handling.

Every pipeline owns its own Fetcher; nothing here is shared between
concurrent resolutions.
"""
from __future__ import annotations
import aiohttp
import asyncio
import logging
from typing import Optional

from .errors import TransportError, UnexpectedStatus

log = logging.getLogger("streamhop.providers.fetcher")

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_TIMEOUT = 10


class Fetcher:
    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        user_agent: str = DEFAULT_UA,
    ):
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.verify_ssl = verify_ssl
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                connector=aiohttp.TCPConnector(ssl=self.verify_ssl),
            )
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "Fetcher":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # ── requests ──────────────────

    async def get(self, url: str, *, referer: Optional[str] = None) -> bytes:
        """GET `url` and return the raw body.

        Raises UnexpectedStatus on any non-2xx answer and TransportError on
        connection problems or timeout. Cancellation is not intercepted.
        """
        headers = {}
        if referer:
            headers["Referer"] = referer

        log.info("[fetcher] GET %s%s", url, f" (referer {referer})" if referer else "")
        session = await self._get_session()
        try:
            async with session.get(url, headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    raise UnexpectedStatus(url, resp.status)
                return await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(url, e) from e

    async def get_text(self, url: str, *, referer: Optional[str] = None) -> str:
        body = await self.get(url, referer=referer)
        return decode_body(body)


def decode_body(body: bytes) -> str:
    """Pages and playlists are treated as UTF-8; a BOM is dropped."""
    return body.decode("utf-8", errors="replace").lstrip("\ufeff")
