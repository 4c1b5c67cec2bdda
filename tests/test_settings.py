import pytest

from richy.exchange.kraken_spot import PRODUCTION_BASE_URL, SANDBOX_BASE_URL
from richy.settings import Settings, normalize_host


def test_base_url_defaults_to_production() -> None:
    assert Settings(_env_file=None).base_url() == PRODUCTION_BASE_URL


def test_sandbox_overrides_host() -> None:
    settings = Settings(_env_file=None, KRAKEN_HOST="https://example.test", KRAKEN_SANDBOX=True)
    assert settings.base_url() == SANDBOX_BASE_URL


def test_host_is_normalized() -> None:
    settings = Settings(_env_file=None, KRAKEN_HOST="api.kraken.com/")
    assert settings.base_url() == "https://api.kraken.com"
    assert normalize_host(" http://localhost:8080/ ") == "http://localhost:8080"


def test_empty_host_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_host("  ")


def test_has_credentials_requires_both() -> None:
    assert Settings(_env_file=None, KRAKEN_API_KEY="k").has_credentials() is False
    assert Settings(_env_file=None, KRAKEN_API_KEY="k", KRAKEN_API_SECRET="a2V5").has_credentials()


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, KRAKEN_TIMEOUT_SECONDS=0)
