"""Tests for YAML config loading with env var resolution and overrides."""

import logging
import os

import pytest
from pydantic import ValidationError

from carrierkit.config import (
    CarrierConfig,
    CarrierKitConfig,
    LoggingConfig,
    configure_logging,
    load_config,
    resolve_env_vars,
)
from carrierkit.services.retry import RetryPolicy
from carrierkit.utils.logging_helpers import LoggingOptions


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run each test from an empty directory with no CARRIERKIT_ variables."""
    for key in list(os.environ):
        if key.startswith("CARRIERKIT_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


def write_config(tmp_path, text: str, name: str = "carrierkit.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestResolveEnvVars:

    def test_resolves(self, monkeypatch):
        monkeypatch.setenv("FOXPOST_URL", "https://webapi.foxpost.hu")
        assert resolve_env_vars("${FOXPOST_URL}/api") == "https://webapi.foxpost.hu/api"

    def test_missing_is_empty(self):
        assert resolve_env_vars("x${NOT_SET_ANYWHERE}y") == "xy"


class TestLoadConfig:
    """File discovery, validation and overrides."""

    def test_defaults_without_file(self):
        config = load_config()
        assert config == CarrierKitConfig()
        assert config.logging.level == "INFO"
        assert config.retry.max_attempts == 3

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_discovers_cwd_file(self, tmp_path):
        write_config(tmp_path, "retry:\n  max_attempts: 5\n")
        assert load_config().retry.max_attempts == 5

    def test_discovers_home_file(self, tmp_path):
        (tmp_path / ".carrierkit").mkdir()
        write_config(tmp_path / ".carrierkit", "http:\n  timeout_seconds: 5\n", name="config.yaml")
        assert load_config().http.timeout_seconds == 5

    def test_full_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MPL_TOKEN_URL", "https://core.api.posta.hu/oauth2/token")
        path = write_config(tmp_path, """
logging:
  level: debug
  max_array_items: 3
  log_raw_response: false
  silent_operations: [track]
auth_fallback:
  refresh_margin_seconds: 60
carriers:
  mpl:
    base_url: https://core.api.posta.hu/v2/mplapi
    test_base_url: https://sandbox.api.posta.hu/v2/mplapi
    token_url: ${MPL_TOKEN_URL}
""")
        config = load_config(path)
        assert config.logging.level == "DEBUG"
        assert config.auth_fallback.refresh_margin_seconds == 60
        mpl = config.carriers["mpl"]
        assert mpl.token_url == "https://core.api.posta.hu/oauth2/token"
        assert mpl.resolve_base_url(use_test_api=True) == "https://sandbox.api.posta.hu/v2/mplapi"
        assert config.logging.to_options() == LoggingOptions(
            max_array_items=3, log_raw_response=False, silent_operations=("track",),
        )

    def test_empty_file(self, tmp_path):
        assert load_config(write_config(tmp_path, "")) == CarrierKitConfig()

    def test_invalid_level(self, tmp_path):
        with pytest.raises(ValidationError):
            load_config(write_config(tmp_path, "logging:\n  level: LOUD\n"))


class TestEnvOverrides:

    def test_override_wins_over_file(self, tmp_path, monkeypatch):
        write_config(tmp_path, "retry:\n  max_attempts: 5\n")
        monkeypatch.setenv("CARRIERKIT_RETRY_MAX_ATTEMPTS", "7")
        assert load_config().retry.max_attempts == 7

    def test_multi_word_section(self, monkeypatch):
        monkeypatch.setenv("CARRIERKIT_AUTH_FALLBACK_REFRESH_MARGIN_SECONDS", "12.5")
        assert load_config().auth_fallback.refresh_margin_seconds == 12.5

    def test_bool_coercion(self, monkeypatch):
        monkeypatch.setenv("CARRIERKIT_LOGGING_LOG_METADATA", "true")
        assert load_config().logging.log_metadata is True

    def test_unknown_section_ignored(self, monkeypatch):
        monkeypatch.setenv("CARRIERKIT_NOPE_VALUE", "1")
        assert load_config() == CarrierKitConfig()


class TestHelpers:

    def test_retry_policy(self):
        assert CarrierKitConfig().retry.to_policy() == RetryPolicy()

    def test_token_url_falls_back_to_production(self):
        carrier = CarrierConfig(base_url="https://a", token_url="https://a/token")
        assert carrier.resolve_token_url(use_test_api=True) == "https://a/token"
        assert carrier.resolve_base_url(use_test_api=True) == "https://a"

    def test_configure_logging_sets_package_level(self):
        configure_logging(LoggingConfig(level="WARNING"))
        assert logging.getLogger("carrierkit").level == logging.WARNING
        logging.getLogger("carrierkit").setLevel(logging.NOTSET)
