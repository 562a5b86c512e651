import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from app.core.exceptions import StorageError
from app.models.posters import PosterCache, PosterCacheEntry, SliderItem
from app.providers.catalog import AMAZON_PRIME
from app.services.posters import (
    PosterCacheStore,
    merge_items,
    parse_homepage,
    refresh_posters,
)


def entry(content_id, seen=False, category=None):
    return PosterCacheEntry(
        id=content_id,
        poster_url=AMAZON_PRIME.poster_url(content_id),
        category=category,
        seen=seen,
    )


def write_cache(path, cache):
    path.write_text(cache.model_dump_json(by_alias=True), encoding="utf-8")


@pytest.fixture
def store(tmp_path):
    return PosterCacheStore(tmp_path / "posters.json")


@pytest.mark.asyncio
async def test_missing_file_reads_as_empty(store):
    """Test a missing cache file reads as an empty cache."""
    cache = await store.read()

    assert cache == PosterCache()
    assert cache.last_updated == 0


@pytest.mark.asyncio
async def test_corrupt_file_reads_as_empty(store):
    """Test an unparseable cache file reads as an empty cache."""
    store.path.write_text("{not json", encoding="utf-8")

    cache = await store.read()

    assert cache.items == []


@pytest.mark.asyncio
async def test_duplicate_ids_collapse_to_one_entry(store):
    """Test repeated ids in one refresh are stored once."""
    cache, new_count = await store.refresh([entry("7"), entry("7")])

    assert [i.id for i in cache.items] == ["7"]
    assert new_count == 1


@pytest.mark.asyncio
async def test_refresh_preserves_seen_and_flags_new_ids(store):
    """Test refresh keeps seen flags and counts only new ids."""
    write_cache(store.path, PosterCache(items=[entry("3", seen=True)], last_updated=1))

    cache, new_count = await store.refresh([entry("3"), entry("9")])

    by_id = {i.id: i for i in cache.items}
    assert by_id["3"].seen is True
    assert by_id["9"].seen is False
    assert new_count == 1
    assert cache.last_updated > 1


@pytest.mark.asyncio
async def test_presence_alone_marks_seen(store):
    """Test an id already in the cache comes back seen."""
    write_cache(store.path, PosterCache(items=[entry("4", seen=False)]))

    cache, new_count = await store.refresh([entry("4")])

    assert cache.items[0].seen is True
    assert new_count == 0


@pytest.mark.asyncio
async def test_prior_entries_missing_from_refresh_are_kept(store):
    """Test entries absent from a refresh are retained after the fresh ones."""
    write_cache(store.path, PosterCache(items=[entry("1", seen=True), entry("2")]))

    cache, _ = await store.refresh([entry("5")])

    assert [(i.id, i.seen) for i in cache.items] == [("5", False), ("1", True), ("2", False)]


@pytest.mark.asyncio
async def test_refresh_persists_camel_case_json(store):
    """Test the cache file is written with camelCase keys."""
    await store.refresh([entry("1", category="Trending")], [SliderItem(id="1", poster="p")])

    on_disk = json.loads(store.path.read_text(encoding="utf-8"))
    assert on_disk["items"][0]["posterUrl"] == AMAZON_PRIME.poster_url("1")
    assert on_disk["items"][0]["category"] == "Trending"
    assert on_disk["slider"][0]["poster"] == "p"
    assert on_disk["lastUpdated"] > 0

    reread = await store.read()
    assert reread.items[0].id == "1"


@pytest.mark.asyncio
async def test_refresh_without_slider_keeps_previous_slider(store):
    """Test a refresh without slider items keeps the old slider."""
    write_cache(store.path, PosterCache(slider=[SliderItem(id="s1")]))

    cache, _ = await store.refresh([entry("1")])

    assert cache.slider[0].id == "s1"


@pytest.mark.asyncio
async def test_mark_seen_only_touches_listed_ids(store):
    """Test mark_seen flags only the listed ids."""
    write_cache(
        store.path,
        PosterCache(items=[entry("1"), entry("2", seen=True), entry("3")]),
    )

    cache = await store.mark_seen(["1", "404"])

    assert [(i.id, i.seen) for i in cache.items] == [("1", True), ("2", True), ("3", False)]
    reread = await store.read()
    assert [i.seen for i in reread.items] == [True, True, False]


@pytest.mark.asyncio
async def test_concurrent_refreshes_do_not_lose_entries(store):
    """Test concurrent refreshes are serialized without losing entries."""
    await asyncio.gather(*[store.refresh([entry(str(n))]) for n in range(10)])

    cache = await store.read()
    assert sorted(i.id for i in cache.items) == sorted(str(n) for n in range(10))


@pytest.mark.asyncio
async def test_write_failure_is_not_raised(store):
    """Test a failed write is logged and the merged cache still returned."""
    with patch.object(
        store, "_write_sync", side_effect=StorageError("disk full", OSError(28, "No space"))
    ):
        cache, new_count = await store.refresh([entry("1")])

    assert cache.items[0].id == "1"
    assert new_count == 1
    assert not store.path.exists()


def test_merge_items_is_pure():
    """Test merge_items leaves its inputs untouched."""
    prior = [entry("1", seen=True)]
    fresh = [entry("1"), entry("2"), entry("2")]

    merged, new_count = merge_items(prior, fresh)

    assert [(i.id, i.seen) for i in merged] == [("1", True), ("2", False)]
    assert new_count == 1
    assert fresh[0].seen is False


def test_parse_homepage_flattens_groups():
    """Test homepage groups are flattened into categorized entries."""
    raw = {
        "slider": [
            {"id": "10", "img": "https://img/10.jpg", "desc": "d", "ua": "A", "namelogo": None},
            "junk",
        ],
        "post": [
            {"cate": "Trending", "ids": "1, 2,,3"},
            {"cate": "Latest", "ids": "3,4"},
            {"cate": "Empty"},
        ],
    }

    slider, items = parse_homepage(AMAZON_PRIME, raw)

    assert [(s.id, s.poster, s.desc) for s in slider] == [("10", "https://img/10.jpg", "d")]
    assert [(i.id, i.category) for i in items] == [
        ("1", "Trending"),
        ("2", "Trending"),
        ("3", "Trending"),
        ("3", "Latest"),
        ("4", "Latest"),
    ]
    assert items[0].poster_url == AMAZON_PRIME.poster_url("1")


def test_parse_homepage_non_object_is_empty():
    """Test a non-object homepage payload yields nothing."""
    assert parse_homepage(AMAZON_PRIME, []) == ([], [])


@pytest.mark.asyncio
async def test_refresh_posters_scrapes_and_merges(store):
    """Test refresh_posters fetches the homepage and merges it."""
    write_cache(store.path, PosterCache(items=[entry("1", seen=True)]))
    client = SimpleNamespace(
        config=AMAZON_PRIME,
        fetch_homepage=AsyncMock(
            return_value={"slider": [], "post": [{"cate": "Top", "ids": "1,2,2"}]}
        ),
    )

    cache, new_count = await refresh_posters(client, store)

    assert [(i.id, i.seen) for i in cache.items] == [("1", True), ("2", False)]
    assert new_count == 1
