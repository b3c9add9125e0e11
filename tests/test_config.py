import pytest

from metadata_resolver.core.config import DEFAULT_MIRROR_GATEWAYS, Settings


def test_defaults_put_default_gateway_before_mirrors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MR_IPFS_GATEWAY", raising=False)
    settings = Settings()
    assert settings.primary_gateway == "https://ipfs.io/ipfs"
    assert settings.gateway_bases == ["https://ipfs.io/ipfs", *DEFAULT_MIRROR_GATEWAYS]
    assert settings.request_timeout_ms == 5500
    assert settings.cache_ttl_ms == 300_000
    assert settings.primary_batch_size == 3


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MR_IPFS_GATEWAY", "https://gw.example.org/ipfs")
    monkeypatch.setenv("MR_MIRROR_GATEWAYS", '["https://mirror.example.org/ipfs"]')
    monkeypatch.setenv("MR_REQUEST_TIMEOUT_MS", "4000")
    monkeypatch.setenv("MR_CACHE_TTL_MS", "60000")

    settings = Settings()
    assert settings.gateway_bases == ["https://gw.example.org/ipfs", "https://mirror.example.org/ipfs"]
    assert settings.request_timeout_ms == 4000
    assert settings.cache_ttl_ms == 60000
