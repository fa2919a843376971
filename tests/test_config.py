"""Tests for settings loading."""

import pytest
from pydantic import ValidationError

from gems_risk_mcp.config import ServerSettings, load_settings


def test_defaults():
    settings = load_settings({})
    assert settings == ServerSettings()
    assert settings.api_base_url == "https://data360api.worldbank.org"
    assert settings.cache_ttl_seconds == 300
    assert settings.transport == "stdio"


def test_reads_prefixed_variables():
    settings = load_settings({
        "GEMS_CACHE_TTL_SECONDS": "120",
        "GEMS_REQUEST_TIMEOUT_SECONDS": "2.5",
        "GEMS_REFERENCE_PERIOD": "2023",
        "GEMS_TRANSPORT": "sse",
    })
    assert settings.cache_ttl_seconds == 120
    assert settings.request_timeout_seconds == 2.5
    assert settings.reference_period == "2023"
    assert settings.transport == "sse"


def test_ignores_unprefixed_variables():
    assert load_settings({"CACHE_TTL_SECONDS": "1"}).cache_ttl_seconds == 300


@pytest.mark.parametrize(
    "environ",
    [
        {"GEMS_CACHE_TTL_SECONDS": "0"},
        {"GEMS_REQUEST_TIMEOUT_SECONDS": "soon"},
        {"GEMS_REFERENCE_PERIOD": "last-year"},
        {"GEMS_TRANSPORT": "carrier-pigeon"},
    ],
)
def test_invalid_values_rejected(environ):
    with pytest.raises(ValidationError):
        load_settings(environ)
