from __future__ import annotations

import pytest

from bridge.errors import ValidationError
from config.settings import Settings, get_settings
from providers.infobip import InfobipProvider
from providers.registry import available_providers, build_provider, get_active_provider
from providers.telnyx import TelnyxProvider


def test_available_providers():
    assert available_providers() == ["infobip", "telnyx"]


def test_unknown_provider_is_a_validation_error():
    with pytest.raises(ValidationError) as excinfo:
        build_provider("twilio", Settings(_env_file=None))
    assert excinfo.value.status_code == 400


def test_build_provider_normalizes_name():
    settings = Settings(
        _env_file=None,
        telnyx_api_key="k",
        telnyx_connection_id="c",
        telnyx_number="+13125550123",
    )
    assert isinstance(build_provider(" Telnyx ", settings), TelnyxProvider)


def test_unconfigured_provider_fails_fast():
    with pytest.raises(ValidationError) as excinfo:
        build_provider("infobip", Settings(_env_file=None))
    assert excinfo.value.detail.startswith("Provider infobip is not configured")


def test_active_provider_follows_configuration(monkeypatch):
    monkeypatch.setenv("CALL_PROVIDER", "INFOBIP")
    monkeypatch.setenv("INFOBIP_BASE_URL", "https://abc.api.infobip.test")
    monkeypatch.setenv("INFOBIP_API_KEY", "SECRET")
    get_settings.cache_clear()
    get_active_provider.cache_clear()
    try:
        provider = get_active_provider()
        assert isinstance(provider, InfobipProvider)
        assert get_active_provider() is provider
    finally:
        get_settings.cache_clear()
        get_active_provider.cache_clear()
