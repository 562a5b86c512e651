"""Session cookie cache with TTL expiry and single-flight refresh."""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List

import niquests

from app.core.config import get_settings
from app.core.exceptions import AuthUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """A raw ``Set-Cookie`` header value, replayed verbatim as ``Cookie``."""

    value: str
    issued_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.issued_at < self.ttl


def _set_cookie_headers(response: niquests.Response) -> List[str]:
    """Return every Set-Cookie value, unjoined."""
    raw_headers = getattr(response.raw, "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        return list(raw_headers.getlist("Set-Cookie"))
    value = response.headers.get("Set-Cookie")
    return [value] if value else []


class TokenCache:
    """Holds one credential and refreshes it at most once concurrently.

    Callers arriving while a refresh is in flight await the same task and
    observe the same outcome. No lock is held across the handshake.
    """

    def __init__(
        self,
        url: str,
        marker: str,
        ttl: float,
        session: niquests.AsyncSession | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 15,
        user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
        proxy: str | None = None,
    ):
        self.url = url
        self.marker = marker
        self.ttl = ttl
        self.session = session if session is not None else niquests.AsyncSession()
        if proxy:
            self.session.proxies = {"http": proxy, "https": proxy}
        self.clock = clock
        self.timeout = timeout
        self.user_agent = user_agent
        self._credential: Credential | None = None
        self._inflight: asyncio.Task[Credential] | None = None

    @property
    def credential(self) -> Credential | None:
        """The current credential if it is still fresh."""
        credential = self._credential
        if credential is not None and credential.is_fresh(self.clock()):
            return credential
        return None

    async def get_token(self) -> Credential:
        """Return a fresh credential, performing the handshake if needed.

        Raises:
            AuthUnavailableError: the handshake failed or returned no
                matching cookie.
        """
        credential = self.credential
        if credential is not None:
            logger.debug("Using cached session cookie")
            return credential

        if self._inflight is None:
            self._inflight = asyncio.create_task(self._refresh())
            self._inflight.add_done_callback(self._clear_inflight)
        # Shield so one cancelled caller does not cancel the shared refresh.
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Mark the exception retrieved even if every waiter went away.
            task.exception()

    async def _refresh(self) -> Credential:
        logger.info(f"Fetching fresh session cookie from {self.url}")
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        }
        try:
            response = await self.session.get(
                self.url, headers=headers, timeout=self.timeout
            )
        except Exception as e:
            logger.error(f"Error fetching session cookie: {e}")
            raise AuthUnavailableError("Failed to fetch session cookie", e) from e

        cookie_headers = _set_cookie_headers(response)
        logger.debug(f"Set-Cookie headers count: {len(cookie_headers)}")

        for cookie_header in cookie_headers:
            if self.marker in cookie_header:
                credential = Credential(
                    value=cookie_header, issued_at=self.clock(), ttl=self.ttl
                )
                self._credential = credential
                logger.info(
                    f"Stored session cookie header, length {len(cookie_header)}"
                )
                return credential

        logger.error(f"Could not find {self.marker!r} in any Set-Cookie header")
        raise AuthUnavailableError(f"No Set-Cookie header contains {self.marker!r}")

    def status(self) -> dict:
        """Report whether a fresh credential is currently held."""
        fresh = self.credential is not None
        return {
            "status": "success" if fresh else "failed",
            "hasCookie": fresh,
            "cached": fresh,
        }

    async def aclose(self) -> None:
        await self.session.close()


@lru_cache
def get_token_cache() -> TokenCache:
    """Process-wide token cache built from settings."""
    settings = get_settings()
    return TokenCache(
        url=settings.token_url,
        marker=settings.token_marker,
        ttl=settings.token_ttl,
        timeout=settings.provider_timeout,
        user_agent=settings.user_agent,
        proxy=settings.proxy,
    )
