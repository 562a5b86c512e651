"""Single-provider detail and episode lookups."""

import logging
from typing import List

from app.core.exceptions import ValidationError
from app.models.media import ContentMetadata, Episode
from app.providers import ProviderRegistry
from app.providers.catalog import NETFLIX
from app.services.normalizer import normalize_detail, normalize_episodes

logger = logging.getLogger(__name__)

DEFAULT_EPISODE_SERVICE = NETFLIX.slug


async def get_content_details(provider_name: str, content_id: str | None) -> ContentMetadata:
    """Fetch and normalize one title.

    Seasons are included for series, each with its resolved episode count.
    """
    if not content_id or not content_id.strip():
        raise ValidationError("Missing or invalid ID")
    provider = ProviderRegistry.require(provider_name)

    raw = await provider.fetch_detail(content_id)
    details = await normalize_detail(provider, content_id, raw)
    logger.info(
        f"Fetched {details.category.value} {content_id!r} from {provider.name}"
    )
    return details


async def get_episodes(
    series_id: str | None, season_id: str | None, service: str | None = None
) -> List[Episode]:
    """List the episodes of one season."""
    if not series_id or not series_id.strip():
        raise ValidationError("Missing or invalid seriesId")
    if not season_id or not season_id.strip():
        raise ValidationError("Missing or invalid seasonId")
    provider = ProviderRegistry.require(service or DEFAULT_EPISODE_SERVICE)

    logger.info(
        f"Fetching episodes for seriesId: {series_id}, seasonId: {season_id} from {provider.name}"
    )
    raw = await provider.fetch_episodes(series_id, season_id)
    return normalize_episodes(raw)
