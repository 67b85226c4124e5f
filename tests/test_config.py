# Copyright (c) 2025, HaiyangLi <quantocean.li at gmail dot com>
#
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the client configuration.
"""

import pytest
from pydantic import SecretStr, ValidationError

from tfe import config as config_module
from tfe.config import ClientConfig, Settings


@pytest.fixture
def clean_settings(monkeypatch):
    """Blank out whatever the environment provides."""
    monkeypatch.setattr(config_module.settings, "TFE_ADDRESS", None)
    monkeypatch.setattr(config_module.settings, "TFE_HOSTNAME", None)
    monkeypatch.setattr(config_module.settings, "TFE_TOKEN", None)
    return config_module.settings


def test_settings_read_environment(monkeypatch):
    """Test that settings are read from TFE_* variables."""
    # Arrange
    monkeypatch.setenv("TFE_ADDRESS", "https://tfe.internal")
    monkeypatch.setenv("TFE_TOKEN", "from-env")

    # Act
    settings = Settings(_env_file=None)

    # Assert
    assert settings.TFE_ADDRESS == "https://tfe.internal"
    assert settings.TFE_TOKEN.get_secret_value() == "from-env"


def test_defaults(clean_settings):
    """Test the defaults when only a token is given."""
    config = ClientConfig(token="t")

    assert config.address == "https://app.terraform.io"
    assert config.base_path == "/api/v2/"
    assert config.base_url == "https://app.terraform.io/api/v2/"
    assert config.max_retries == 30
    assert config.retry_wait_min == 0.1
    assert config.retry_wait_max == 0.4
    assert config.retry_server_errors is False
    assert config.headers == {"User-Agent": "tfe-python"}


def test_defaults_from_settings(clean_settings):
    """Test that the address and token fall back to the environment settings."""
    # Arrange
    clean_settings.TFE_HOSTNAME = "tfe.local"
    clean_settings.TFE_TOKEN = SecretStr("env-token")

    # Act
    config = ClientConfig()

    # Assert
    assert config.address == "https://tfe.local"
    assert config.token.get_secret_value() == "env-token"


def test_address_setting_wins_over_hostname(clean_settings):
    """Test that TFE_ADDRESS is preferred to TFE_HOSTNAME."""
    clean_settings.TFE_ADDRESS = "https://explicit.example.com"
    clean_settings.TFE_HOSTNAME = "ignored.example.com"

    assert ClientConfig(token="t").address == "https://explicit.example.com"


def test_blank_values_fall_back_to_defaults(clean_settings):
    """Test that blank strings do not override the defaults."""
    config = ClientConfig(address="", base_path="", token="t")

    assert config.address == "https://app.terraform.io"
    assert config.base_path == "/api/v2/"


def test_missing_token(clean_settings):
    """Test that a token is required."""
    with pytest.raises(ValidationError) as excinfo:
        ClientConfig(address="https://tfe.example.com")

    assert "missing API token" in str(excinfo.value)


def test_invalid_address(clean_settings):
    """Test that the address must be an http(s) URL."""
    with pytest.raises(ValidationError):
        ClientConfig(address="tfe.example.com", token="t")


def test_base_path_gets_trailing_slash(clean_settings):
    """Test that the base path always ends in a slash."""
    config = ClientConfig(address="https://tfe.example.com", base_path="/api/v3", token="t")

    assert config.base_path == "/api/v3/"
    assert config.base_url == "https://tfe.example.com/api/v3/"


def test_headers_merge_over_user_agent(clean_settings):
    """Test that caller headers are kept and may replace the user agent."""
    config = ClientConfig(token="t", headers={"user-agent": "custom/1.0", "X-Trace": "abc"})

    assert config.headers == {"user-agent": "custom/1.0", "X-Trace": "abc"}


def test_token_is_not_exposed(clean_settings):
    """Test that the token is masked in the config's representation."""
    config = ClientConfig(token="super-secret")

    assert "super-secret" not in repr(config)
