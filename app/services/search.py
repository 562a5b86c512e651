"""Search service for aggregating results from providers."""

import asyncio
import logging
from typing import List, Sequence

from app.core.config import get_settings
from app.core.exceptions import NotFoundError, ValidationError
from app.models.media import AggregatedResult, SearchHit
from app.providers import ProviderRegistry
from app.providers.base import ProviderClient
from app.services.normalizer import normalize_search

logger = logging.getLogger(__name__)


def validate_query(query: str | None) -> str:
    if query is None or not query.strip():
        raise ValidationError("Missing or empty search query")
    return query


async def search_client(client: ProviderClient, query: str) -> List[SearchHit]:
    """Search one provider and normalize its hits. Errors propagate."""
    raw = await client.search(query)
    return normalize_search(client.config, raw)


def merge_hits(provider_results: Sequence[List[SearchHit]]) -> List[SearchHit]:
    """Concatenate per-provider hits, keeping the first of each (provider, id)."""
    seen: set[tuple[str, str]] = set()
    results: List[SearchHit] = []
    for result_list in provider_results:
        for hit in result_list:
            key = (hit.provider, hit.id)
            if key in seen:
                continue
            seen.add(key)
            results.append(hit)
    return results


class SearchAggregator:
    """Fans a query out to every provider and merges the hits.

    A failing or slow provider contributes an empty list; it never fails the
    aggregate. Hits are merged in provider order regardless of which
    provider answers first.
    """

    def __init__(
        self,
        providers: Sequence[ProviderClient] | None = None,
        timeout: float | None = None,
    ):
        self._providers = providers
        self._timeout = timeout

    @property
    def providers(self) -> List[ProviderClient]:
        if self._providers is not None:
            return list(self._providers)
        return ProviderRegistry.all()

    @property
    def timeout(self) -> float:
        if self._timeout is not None:
            return self._timeout
        return get_settings().provider_timeout

    async def search(self, query: str) -> AggregatedResult:
        query = validate_query(query)
        timeout = self.timeout

        async def fetch_from_provider(provider: ProviderClient) -> List[SearchHit]:
            try:
                return await asyncio.wait_for(
                    search_client(provider, query), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Timeout searching {provider.name} after {timeout}s"
                )
                return []
            except Exception as e:
                logger.error(f"Error searching {provider.name}: {e}", exc_info=e)
                return []

        provider_results = await asyncio.gather(
            *[fetch_from_provider(p) for p in self.providers]
        )

        results = merge_hits(provider_results)

        return AggregatedResult(query=query, results=results, count=len(results))

    async def search_provider(self, provider_name: str, query: str) -> AggregatedResult:
        """Search a single provider; unlike ``search``, failures surface."""
        query = validate_query(query)
        provider = next((p for p in self.providers if p.name == provider_name), None)
        if provider is None:
            raise NotFoundError(f"Unknown provider: {provider_name}")

        results = merge_hits([await search_client(provider, query)])
        return AggregatedResult(
            query=query, provider=provider.name, results=results, count=len(results)
        )
