"""Redirect targets for playing a title through the stream proxy."""

import logging
from urllib.parse import quote

from app.core.exceptions import ValidationError
from app.providers import ProviderRegistry
from app.services.token_cache import Credential, TokenCache

logger = logging.getLogger(__name__)


def query_token(credential: Credential) -> str:
    """The leading ``name=value`` pair of the cookie header, for a query string."""
    return credential.value.split(";", 1)[0].strip()


async def build_proxy_url(
    service: str | None,
    content_id: str | None,
    token_cache: TokenCache,
    proxy_base: str,
    referer: str,
) -> str:
    """Build the stream-proxy URL for one title's HLS playlist.

    Raises:
        ValidationError: missing parameters, or a service without a stream.
        AuthUnavailableError: no session token could be obtained.
    """
    if not service or not content_id or not content_id.strip():
        raise ValidationError(
            "Missing service or id parameter. Usage: /api/proxy?service=netflix&id=70270776"
        )

    provider = ProviderRegistry.get(service)
    playlist = provider.config.stream_url(content_id) if provider else None
    if playlist is None:
        supported = ", ".join(
            p.name for p in ProviderRegistry.all() if p.config.stream_url_template
        )
        raise ValidationError(
            f"Unsupported service: {service}. Currently supported: {supported}"
        )

    credential = await token_cache.get_token()
    target = f"{playlist}?{query_token(credential)}"
    logger.info(f"Redirecting {service} {content_id!r} through the stream proxy")
    return (
        f"{proxy_base}?url={quote(target, safe=':/?=')}"
        f"&referer={quote(referer, safe='')}"
    )
