"""Configuration management for Catalogarr."""

from pathlib import Path
from pydantic import PositiveFloat, PositiveInt, SecretStr, field_validator
from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from urllib.parse import urlparse


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Provider settings
    provider_timeout: PositiveInt = 15  # Timeout for upstream calls in seconds
    rate_limit: PositiveFloat = 10  # Requests per second allowed per provider
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Session cookie handshake
    token_url: str = "https://net51.cc/tv/p.php"
    token_marker: str = "t_hash="
    token_ttl: PositiveInt = 3600  # seconds

    # Stream proxy the HLS redirect points at
    stream_proxy_url: str = "https://iosmirror.vflix.life/api/stream-proxy"
    stream_referer: str = "https://net51.cc"

    # Poster cache storage
    data_dir: Path = Path("data")

    # Network settings
    # Proxy configuration in the format http://host:port or socks5://host:port
    proxy: str | None = None

    @field_validator("proxy")
    @classmethod
    def validate_proxy(cls, v: str | None) -> str | None:
        if v is None:
            return v

        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https", "socks4", "socks5", "socks5h"):
            raise ValueError(
                "Proxy must be a valid URL with scheme http/https/socks4/socks5/socks5h"
            )
        if not parsed.netloc:
            raise ValueError("Proxy must have a host and port")
        return v

    # Basic auth (disabled unless both are set)
    auth_username: str | None = None
    auth_password: SecretStr | None = None

    # App settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
