"""API routes returning JSON for the browser UI."""

from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.exceptions import AuthUnavailableError
from app.models.media import AggregatedResult, ContentMetadata, EpisodeList
from app.models.posters import MarkSeenRequest
from app.providers import ProviderRegistry
from app.providers.catalog import AMAZON_PRIME
from app.services.content import get_content_details, get_episodes
from app.services.posters import get_poster_store, refresh_posters
from app.services.search import SearchAggregator
from app.services.stream import build_proxy_url
from app.services.token_cache import get_token_cache

router = APIRouter()

aggregator = SearchAggregator()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "catalogarr"}


@router.get("/providers")
async def list_providers():
    """List all registered providers."""
    return {"providers": ProviderRegistry.names()}


@router.get("/search", response_model=AggregatedResult, response_model_exclude_none=True)
async def api_search(q: str | None = Query(None, description="Search query")):
    """Search every provider at once.

    Providers that fail are left out; the response is still a success.
    """
    return await aggregator.search(q)


@router.get(
    "/search/{provider}",
    response_model=AggregatedResult,
    response_model_exclude_none=True,
)
async def api_search_provider(
    provider: str, q: str | None = Query(None, description="Search query")
):
    """Search a single provider."""
    return await aggregator.search_provider(provider, q)


@router.get("/episodes", response_model=EpisodeList)
async def api_episodes(
    series_id: str | None = Query(None, alias="seriesId"),
    season_id: str | None = Query(None, alias="seasonId"),
    service: str | None = Query(None),
):
    """List the episodes of a season."""
    episodes = await get_episodes(series_id, season_id, service)
    return EpisodeList(episodes=episodes)


# --- Session cookie ---


@router.get("/cookie")
async def fetch_cookie():
    """Obtain the session cookie, refreshing it if expired."""
    credential = await get_token_cache().get_token()
    return {"success": True, "tHash": credential.value}


@router.get("/cookie/status")
async def cookie_status():
    """Report whether a fresh session cookie is held."""
    token_cache = get_token_cache()
    try:
        await token_cache.get_token()
    except AuthUnavailableError:
        pass
    return token_cache.status()


# --- Poster cache ---


@router.get("/posters")
async def get_posters(service: str = Query(AMAZON_PRIME.slug)):
    """Return the cached poster listing."""
    provider = ProviderRegistry.require_poster_source(service)
    cache = await get_poster_store(provider.name).read()
    return {"success": True, **cache.model_dump(mode="json", by_alias=True)}


@router.post("/posters/refresh")
async def refresh_poster_cache(service: str = Query(AMAZON_PRIME.slug)):
    """Re-scrape the homepage and merge it into the poster cache."""
    provider = ProviderRegistry.require_poster_source(service)
    cache, new_count = await refresh_posters(provider, get_poster_store(provider.name))
    return {
        "success": True,
        **cache.model_dump(mode="json", by_alias=True),
        "newCount": new_count,
    }


@router.post("/posters/mark")
async def mark_posters_seen(
    request: MarkSeenRequest, service: str = Query(AMAZON_PRIME.slug)
):
    """Flag posters as seen."""
    provider = ProviderRegistry.require_poster_source(service)
    cache = await get_poster_store(provider.name).mark_seen(request.ids)
    items = [item.model_dump(mode="json", by_alias=True) for item in cache.items]
    return {"success": True, "items": items}


# --- Stream proxy ---


@router.get("/proxy")
async def stream_proxy(
    service: str | None = Query(None),
    id: str | None = Query(None),
    referer: str | None = Query(None),
):
    """Redirect to the stream proxy serving a title's HLS playlist."""
    settings = get_settings()
    url = await build_proxy_url(
        service,
        id,
        get_token_cache(),
        proxy_base=settings.stream_proxy_url,
        referer=referer or settings.stream_referer,
    )
    return RedirectResponse(url=url, status_code=302)


# Catch-all detail route; keep it last so fixed paths win.
@router.get("/{provider}", response_model=ContentMetadata, response_model_exclude_none=True)
async def api_details(provider: str, id: str | None = Query(None)):
    """Detail view of a movie or series, with seasons for series."""
    return await get_content_details(provider, id)
