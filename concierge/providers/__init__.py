"""
Data providers for the concierge handlers.

- StubProviders: in-memory demo inventory ("stub" data mode)
- HttpProviders: storefront support API over HTTP ("live" data mode)
"""
from typing import Optional

from concierge.core.config import ConciergeConfig, get_config
from concierge.providers.base import ConciergeProviders, ProviderError
from concierge.providers.http import HttpProviders
from concierge.providers.stub import StubProviders


def create_providers(config: Optional[ConciergeConfig] = None) -> ConciergeProviders:
    """Build the providers selected by ``config.data_mode``."""
    config = config or get_config()
    if config.data_mode == "live":
        return HttpProviders(config.api_base_url, timeout=config.api_timeout)
    return StubProviders()


__all__ = [
    "ConciergeProviders",
    "ProviderError",
    "HttpProviders",
    "StubProviders",
    "create_providers",
]
