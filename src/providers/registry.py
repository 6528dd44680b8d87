"""Registry returning configured call-provider implementations."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

from bridge.errors import ValidationError
from config.settings import Settings, get_settings
from providers.base import CallProvider
from providers.infobip import InfobipProvider
from providers.telnyx import TelnyxProvider

ProviderFactory = Callable[[Settings], CallProvider]

PROVIDERS: dict[str, ProviderFactory] = {
    TelnyxProvider.name: TelnyxProvider.from_settings,
    InfobipProvider.name: InfobipProvider.from_settings,
}


def available_providers() -> list[str]:
    return sorted(PROVIDERS)


def build_provider(name: str, settings: Settings | None = None) -> CallProvider:
    """Instantiate the provider registered under ``name``."""

    factory = PROVIDERS.get(name.strip().lower())
    if factory is None:
        raise ValidationError(f"Unknown provider: {name}")
    try:
        return factory(settings or get_settings())
    except ValueError as exc:
        raise ValidationError(f"Provider {name} is not configured: {exc}") from exc


@lru_cache(maxsize=1)
def get_active_provider() -> CallProvider:
    """Provider used for PSTN bridging, chosen once from configuration."""

    settings = get_settings()
    return build_provider(settings.call_provider, settings)
