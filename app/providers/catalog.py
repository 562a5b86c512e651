"""Configuration rows for the supported mirror catalogs.

Order matters: aggregated search results are merged in this order.
"""

from app.providers.base import ProviderConfig

POSTER_PROXY = "https://wsrv.nl/?url=https://imgcdn.kim/{path}/{{id}}.jpg&w=500"

NETFLIX = ProviderConfig(
    slug="netflix",
    name="Netflix",
    key="A",
    detail_url="https://net20.cc/post.php",
    search_url="https://net20.cc/search.php",
    episodes_url="https://net51.cc/episodes.php",
    poster_template=POSTER_PROXY.format(path="poster/v"),
    referer="https://net51.cc/",
    auth_endpoints=frozenset({"episodes"}),
    extra_count_fields=("ep",),
    language_fields=("lang", "d_lang"),
    season_number_fields=("num", "number", "s"),
    stream_url_template="https://net51.cc/hls/{id}.m3u8",
)

AMAZON_PRIME = ProviderConfig(
    slug="amazon-prime",
    name="Amazon Prime",
    key="B",
    detail_url="https://net20.cc/pv/post.php",
    search_url="https://net20.cc/pv/search.php",
    episodes_url="https://net51.cc/pv/episodes.php",
    homepage_url="https://net51.cc/tv/pv/homepage.php",
    poster_template=POSTER_PROXY.format(path="pv/v"),
    referer="https://net51.cc/",
    auth_endpoints=frozenset({"detail", "episodes", "homepage"}),
)

JIO_HOTSTAR = ProviderConfig(
    slug="jio-hotstar",
    name="JioHotstar",
    key="C",
    detail_url="https://net20.cc/mobile/hs/post.php",
    search_url="https://net20.cc/mobile/hs/search.php",
    episodes_url="https://net51.cc/mobile/hs/episodes.php",
    poster_template=POSTER_PROXY.format(path="hs/v"),
    auth_endpoints=frozenset({"detail", "episodes"}),
)

PROVIDER_CONFIGS: tuple[ProviderConfig, ...] = (NETFLIX, AMAZON_PRIME, JIO_HOTSTAR)
