from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MIRROR_GATEWAYS = [
    "https://gateway.pinata.cloud/ipfs",
    "https://ipfs.io/ipfs",
    "https://cloudflare-ipfs.com/ipfs",
    "https://dweb.link/ipfs",
]


class Settings(BaseSettings):
    app_name: str = "listing-metadata-resolver"
    environment: str = "dev"
    ipfs_gateway: str | None = None
    default_ipfs_gateway: str = "https://ipfs.io/ipfs"
    mirror_gateways: list[str] = list(DEFAULT_MIRROR_GATEWAYS)
    arweave_gateway: str = "https://arweave.net"
    request_timeout_ms: int = 5500
    cache_ttl_ms: int = 5 * 60 * 1000
    cache_max_entries: int = 1024
    primary_batch_size: int = 3
    user_agent: str = "listing-metadata-resolver/1.0"
    log_level: str = "INFO"
    otel_enabled: bool = True
    otel_service_name: str = "listing-metadata-resolver"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="MR_", extra="ignore")

    @property
    def primary_gateway(self) -> str:
        return self.ipfs_gateway or self.default_ipfs_gateway

    @property
    def gateway_bases(self) -> list[str]:
        return [self.primary_gateway, *self.mirror_gateways]


@lru_cache
def get_settings() -> Settings:
    return Settings()
