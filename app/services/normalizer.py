"""Maps provider JSON into the shared content models.

Upstream payloads are loosely typed: language lists mix bare strings with
``{"l": ...}`` objects, and season records carry their episode count under
many different names, or not at all. Everything is coerced here and nothing
raw travels further.
"""

import asyncio
import html
import logging
import math
import re
from typing import Any, List, Optional

from app.core.exceptions import CatalogError, NotFoundError
from app.models.media import (
    Category,
    ContentMetadata,
    Episode,
    SearchHit,
    SeasonSummary,
)
from app.providers.base import ProviderClient, ProviderConfig

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*\+?(\d+)")


def unescape(value: Any) -> Optional[str]:
    """Return ``value`` as text with HTML entities decoded, or None if empty."""
    if value is None or value == "":
        return None
    return html.unescape(str(value))


def _text(value: Any, default: str) -> str:
    text = unescape(value)
    return text if text is not None else default


def infer_category(raw: dict) -> Category:
    """A payload is a series iff its season list is a non-empty array."""
    seasons = raw.get("season")
    if isinstance(seasons, list) and len(seasons) > 0:
        return Category.SERIES
    return Category.MOVIE


def parse_languages(raw: dict, fields: tuple[str, ...]) -> List[str]:
    """Extract languages in source order from the first populated field."""
    for field in fields:
        value = raw.get(field)
        if not value:
            continue
        if isinstance(value, str):
            entries = value.split(",")
        elif isinstance(value, list):
            entries = value
        else:
            continue

        languages = []
        for entry in entries:
            if isinstance(entry, dict):
                entry = entry.get("l")
            label = unescape(entry)
            if label and label.strip():
                languages.append(label.strip())
        return languages
    return []


def parse_positive_int(value: Any) -> int:
    """Leading-integer parse; anything not > 0 becomes 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value if value > 0 else 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        return int(value) if value >= 1 else 0

    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        # Digit strings past the interpreter's int conversion limit
        return 0


def count_from_fields(season: dict, fields: tuple[str, ...]) -> int:
    """Step 1 of the chain: first synonym field holding a positive integer."""
    for field in fields:
        count = parse_positive_int(season.get(field))
        if count > 0:
            return count
    return 0


def count_from_embedded(season: dict) -> int:
    """Step 2 of the chain: length of an embedded episodes list."""
    episodes = season.get("episodes")
    if isinstance(episodes, list):
        return len(episodes)
    return 0


async def count_from_live_fetch(
    client: ProviderClient, series_id: str, season_id: str
) -> int:
    """Step 3 of the chain: one round trip to the episodes endpoint."""
    try:
        raw = await client.fetch_episodes(series_id, season_id)
    except CatalogError as e:
        logger.debug(
            f"Episode count fetch failed for {client.name} {series_id}/{season_id}: {e}"
        )
        return 0
    if isinstance(raw, dict) and isinstance(raw.get("episodes"), list):
        return len(raw["episodes"])
    return 0


def season_id_for(season: dict, index: int) -> str:
    return str(season.get("id") or season.get("sid") or index + 1)


def season_number_for(season: dict, index: int, fields: tuple[str, ...]) -> str:
    for field in fields:
        if season.get(field):
            return str(season[field])
    return str(index + 1)


async def resolve_season(
    client: ProviderClient, series_id: str, season: Any, index: int
) -> SeasonSummary:
    """Build a SeasonSummary, stopping at the first count source that works."""
    if not isinstance(season, dict):
        season = {}
    season_id = season_id_for(season, index)

    episode_count = count_from_fields(season, client.config.episode_count_fields)
    if episode_count == 0:
        episode_count = count_from_embedded(season)
    if episode_count == 0:
        episode_count = await count_from_live_fetch(client, series_id, season_id)

    return SeasonSummary(
        id=season_id,
        number=season_number_for(season, index, client.config.season_number_fields),
        episode_count=episode_count,
    )


async def normalize_detail(
    client: ProviderClient, content_id: str, raw: Any
) -> ContentMetadata:
    """Normalize a detail payload, resolving season episode counts.

    Raises:
        NotFoundError: the payload parses but describes no content.
    """
    if not isinstance(raw, dict) or (not raw.get("title") and raw.get("status") != "y"):
        raise NotFoundError("Content not found")

    config = client.config
    category = infer_category(raw)

    seasons = None
    if category is Category.SERIES:
        seasons = list(
            await asyncio.gather(
                *[
                    resolve_season(client, content_id, season, index)
                    for index, season in enumerate(raw["season"])
                ]
            )
        )

    return ContentMetadata(
        provider=config.slug,
        provider_key=config.key,
        id=content_id,
        title=_text(raw.get("title"), "Unknown"),
        year=_text(raw.get("year"), "Unknown"),
        languages=parse_languages(raw, config.language_fields),
        category=category,
        genre=unescape(raw.get("genre")),
        cast=unescape(raw.get("short_cast") or raw.get("cast")),
        rating=unescape(raw.get("ua")),
        description=unescape(raw.get("desc")),
        match=unescape(raw.get("match")),
        runtime=unescape(raw.get("runtime")),
        quality=unescape(raw.get("hdsd")),
        creator=unescape(raw.get("creator")),
        director=unescape(raw.get("director")),
        content_warning=unescape(raw.get("m_reason")),
        poster_url=config.poster_url(content_id),
        seasons=seasons,
    )


def normalize_search(config: ProviderConfig, raw: Any) -> List[SearchHit]:
    """Map a ``searchResult`` list into SearchHits, upstream order kept."""
    if not isinstance(raw, dict):
        return []
    entries = raw.get("searchResult")
    if not isinstance(entries, list):
        return []

    hits = []
    for item in entries:
        if not isinstance(item, dict) or not item.get("id"):
            continue
        content_id = str(item["id"])
        hits.append(
            SearchHit(
                id=content_id,
                title=_text(item.get("t"), "Unknown"),
                provider=config.slug,
                provider_key=config.key,
                poster_url=config.poster_url(content_id),
                year=unescape(item.get("y")),
                duration_label=unescape(item.get("r")),
            )
        )
    return hits


def normalize_episodes(raw: Any) -> List[Episode]:
    """Map an episodes payload.

    Raises:
        NotFoundError: no ``episodes`` list in the payload.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("episodes"), list):
        raise NotFoundError("No episodes found")

    episodes = []
    for ep in raw["episodes"]:
        if not isinstance(ep, dict):
            continue
        episodes.append(
            Episode(
                id=str(ep.get("id") or ""),
                title=_text(ep.get("t"), "Unknown"),
                season_number=_text(ep.get("s"), "Unknown"),
                episode_number=_text(ep.get("ep"), "Unknown"),
                description=_text(ep.get("ep_desc"), "No description available"),
                duration_label=_text(ep.get("time"), "Unknown"),
                completed_flag=str(ep.get("complate") or "0"),
            )
        )
    return episodes
