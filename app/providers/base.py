"""Provider configuration rows and the shared HTTP client."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping
from urllib.parse import quote

import niquests
from aiolimiter import AsyncLimiter

from app.core.config import get_settings
from app.core.exceptions import (
    AuthUnavailableError,
    EmptyBodyError,
    FetchError,
    FetchTimeoutError,
    HttpStatusError,
    MalformedJsonError,
)
from app.services.token_cache import TokenCache

logger = logging.getLogger(__name__)

# Count-bearing season fields seen across providers, in priority order.
EPISODE_COUNT_FIELDS = (
    "ep_count",
    "total_episodes",
    "episode_count",
    "eps",
    "epCount",
    "episodes_count",
    "episode_count_total",
    "totalEpisodes",
    "count",
)


@dataclass(frozen=True)
class ProviderConfig:
    """Everything that differs between two mirror catalogs.

    Adding a provider means adding one of these to ``PROVIDER_CONFIGS``.
    """

    slug: str
    name: str
    key: str
    detail_url: str
    search_url: str
    episodes_url: str
    poster_template: str
    homepage_url: str | None = None
    id_param: str = "id"
    search_param: str = "s"
    season_param: str = "s"
    series_param: str = "series"
    referer: str | None = None
    # Endpoints ("detail", "search", "episodes", "homepage") sent with the cookie
    auth_endpoints: frozenset[str] = frozenset()
    extra_count_fields: tuple[str, ...] = ()
    language_fields: tuple[str, ...] = ("lang",)
    season_number_fields: tuple[str, ...] = ("num", "number")
    # HLS playlist for the stream proxy; providers without one cannot be proxied
    stream_url_template: str | None = None

    @property
    def episode_count_fields(self) -> tuple[str, ...]:
        return EPISODE_COUNT_FIELDS + self.extra_count_fields

    def poster_url(self, content_id: str) -> str:
        return self.poster_template.format(id=quote(str(content_id), safe=""))

    def stream_url(self, content_id: str) -> str | None:
        if not self.stream_url_template:
            return None
        return self.stream_url_template.format(id=quote(str(content_id), safe=""))


class ProviderClient:
    """Issues requests to one mirror catalog and returns decoded JSON.

    Raises a ``FetchError`` subclass for anything that is not a 2xx response
    carrying parseable JSON. Deciding whether parseable JSON means "absent"
    is left to the normalizer.
    """

    def __init__(self, config: ProviderConfig, token_cache: TokenCache | None = None):
        settings = get_settings()
        self._settings = settings
        self.config = config
        self.token_cache = token_cache
        # No automatic retries: transient failures are surfaced to the UI.
        self.session = niquests.AsyncSession(retries=0)
        if settings.proxy:
            self.session.proxies = {"http": settings.proxy, "https": settings.proxy}
        self.rate_limiter = AsyncLimiter(settings.rate_limit, 1.0)

    @property
    def name(self) -> str:
        """Return the unique slug of this provider."""
        return self.config.slug

    async def aclose(self) -> None:
        """Properly close the internal HTTP session."""
        if hasattr(self, "session") and self.session:
            await self.session.close()

    async def _headers(self, endpoint: str) -> dict[str, str]:
        headers = {
            "User-Agent": self._settings.user_agent,
            "Accept": "application/json",
            "Accept-Language": "en-US,en;q=0.9",
        }
        if self.config.referer:
            headers["Referer"] = self.config.referer
        if endpoint in self.config.auth_endpoints and self.token_cache is not None:
            try:
                credential = await self.token_cache.get_token()
                headers["Cookie"] = credential.value
            except AuthUnavailableError as e:
                logger.warning(
                    f"No session cookie for {self.name} {endpoint}, continuing anonymously: {e}"
                )
        return headers

    async def _get_json(
        self, endpoint: str, url: str, params: Mapping[str, str]
    ) -> Any:
        headers = await self._headers(endpoint)
        try:
            async with self.rate_limiter:
                response = await self.session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self._settings.provider_timeout,
                )
        except niquests.exceptions.Timeout as e:
            raise FetchTimeoutError(self.name, e) from e
        except niquests.exceptions.RequestException as e:
            raise FetchError(
                f"Request to {self.name} {endpoint} failed: {e}", self.name, e
            ) from e

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(self.name, response.status_code)

        text = response.text
        if not text or not text.strip():
            raise EmptyBodyError(self.name)

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"{self.name} {endpoint} parse error, body: {text[:300]!r}")
            raise MalformedJsonError(self.name, e) from e

    async def fetch_detail(self, content_id: str) -> Any:
        """Fetch the raw detail payload for a movie or series."""
        return await self._get_json(
            "detail", self.config.detail_url, {self.config.id_param: content_id}
        )

    async def search(self, query: str) -> Any:
        """Run a raw search against the provider."""
        return await self._get_json(
            "search", self.config.search_url, {self.config.search_param: query}
        )

    async def fetch_episodes(self, series_id: str, season_id: str) -> Any:
        """Fetch the raw episode list of one season."""
        params = {
            self.config.season_param: season_id,
            self.config.series_param: series_id,
        }
        return await self._get_json("episodes", self.config.episodes_url, params)

    async def fetch_homepage(self) -> Any:
        """Fetch the raw homepage listing used to build the poster cache."""
        if not self.config.homepage_url:
            raise FetchError(f"{self.name} has no homepage listing", self.name)
        return await self._get_json("homepage", self.config.homepage_url, {})
