"""Persisted poster cache with guarded read-merge-write."""

import asyncio
import logging
import os
import tempfile
import time
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, List, Sequence

from app.core.config import get_settings
from app.core.exceptions import StorageError
from app.models.posters import PosterCache, PosterCacheEntry, SliderItem
from app.providers.base import ProviderClient, ProviderConfig

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def merge_items(
    prior: Sequence[PosterCacheEntry], fresh: Iterable[PosterCacheEntry]
) -> tuple[List[PosterCacheEntry], int]:
    """Merge a fresh listing into the prior entries.

    Fresh entries come first, deduplicated by id (first occurrence wins),
    and are ``seen`` iff their id was already cached. Prior entries missing
    from the fresh listing follow, unchanged.

    Returns:
        Tuple of (merged entries, number of fresh entries not seen before)
    """
    prior_ids = {entry.id for entry in prior}
    merged: List[PosterCacheEntry] = []
    taken: set[str] = set()

    for item in fresh:
        if item.id in taken:
            continue
        taken.add(item.id)
        merged.append(item.model_copy(update={"seen": item.id in prior_ids}))

    new_count = sum(1 for entry in merged if not entry.seen)

    for entry in prior:
        if entry.id not in taken:
            taken.add(entry.id)
            merged.append(entry)

    return merged, new_count


class PosterCacheStore:
    """Owns one poster cache file.

    Every read-merge-write happens under ``_lock`` so concurrent refreshes
    and marks never interleave. Writes go to a temporary file that replaces
    the cache on commit. Storage failures are logged and never raised.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_sync(self) -> PosterCache:
        try:
            if not self.path.exists():
                return PosterCache()
            return PosterCache.model_validate_json(self.path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable poster cache {self.path}, starting empty: {e}")
            return PosterCache()

    def _write_sync(self, cache: PosterCache) -> None:
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(cache.model_dump_json(by_alias=True, indent=2))
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Failed to write poster cache {self.path}", e) from e

    async def _persist(self, cache: PosterCache) -> None:
        try:
            await asyncio.to_thread(self._write_sync, cache)
        except StorageError as e:
            logger.error(f"{e}: {e.original_exception}")

    async def read(self) -> PosterCache:
        """Return the current cache; empty if missing or corrupt."""
        async with self._lock:
            return await asyncio.to_thread(self._read_sync)

    async def refresh(
        self,
        fresh_items: Iterable[PosterCacheEntry],
        slider: List[SliderItem] | None = None,
    ) -> tuple[PosterCache, int]:
        """Merge a freshly scraped listing and persist it.

        Returns:
            Tuple of (merged cache, number of newly seen ids)
        """
        async with self._lock:
            prior = await asyncio.to_thread(self._read_sync)
            items, new_count = merge_items(prior.items, fresh_items)
            cache = PosterCache(
                slider=slider if slider is not None else prior.slider,
                items=items,
                last_updated=_now_ms(),
            )
            await self._persist(cache)

        logger.info(
            f"Poster cache {self.path.name} refreshed: {len(items)} items, {new_count} new"
        )
        return cache, new_count

    async def mark_seen(self, ids: Iterable[str]) -> PosterCache:
        """Force ``seen`` on the given ids; other entries keep their flag."""
        wanted = set(ids)
        async with self._lock:
            prior = await asyncio.to_thread(self._read_sync)
            items = [
                entry.model_copy(update={"seen": True}) if entry.id in wanted else entry
                for entry in prior.items
            ]
            cache = PosterCache(slider=prior.slider, items=items, last_updated=_now_ms())
            await self._persist(cache)
        return cache


def parse_homepage(
    config: ProviderConfig, raw: Any
) -> tuple[List[SliderItem], List[PosterCacheEntry]]:
    """Flatten a homepage payload into slider banners and poster entries.

    ``post`` groups carry their ids as one comma-separated string.
    """
    if not isinstance(raw, dict):
        return [], []

    slider = []
    if isinstance(raw.get("slider"), list):
        for s in raw["slider"]:
            if not isinstance(s, dict):
                continue
            slider.append(
                SliderItem(
                    id=str(s["id"]) if s.get("id") else None,
                    poster=s.get("img") or None,
                    desc=s.get("desc") or "",
                    ua=s.get("ua") or "",
                    namelogo=s.get("namelogo") or None,
                )
            )

    items = []
    if isinstance(raw.get("post"), list):
        for group in raw["post"]:
            if not isinstance(group, dict) or not group.get("ids"):
                continue
            category = group.get("cate") or ""
            for content_id in str(group["ids"]).split(","):
                content_id = content_id.strip()
                if not content_id:
                    continue
                items.append(
                    PosterCacheEntry(
                        id=content_id,
                        poster_url=config.poster_url(content_id),
                        category=category,
                    )
                )
    return slider, items


async def refresh_posters(
    client: ProviderClient, store: PosterCacheStore
) -> tuple[PosterCache, int]:
    """Scrape the provider homepage and merge it into the store."""
    raw = await client.fetch_homepage()
    slider, items = parse_homepage(client.config, raw)
    return await store.refresh(items, slider)


@lru_cache
def get_poster_store(provider_name: str) -> PosterCacheStore:
    """One store per provider, kept for the process lifetime."""
    settings = get_settings()
    return PosterCacheStore(settings.data_dir / f"{provider_name}-posters-cache.json")
