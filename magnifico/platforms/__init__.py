"""Transport registry with lazy loading.

Usage:
    from magnifico.platforms import get_transport

    transport = get_transport(settings.provider)
    candidates = await transport.search(query)
"""

from __future__ import annotations

import importlib

from magnifico.core.config import ProviderConfig
from magnifico.platforms.base import PlacesTransport

__all__ = ["PlacesTransport", "available_transports", "get_transport"]

# Lazy registry: maps provider name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "google": ("magnifico.platforms.google.adapter", "GooglePlacesAdapter"),
}


def get_transport(config: ProviderConfig) -> PlacesTransport:
    """Instantiate the transport named by ``config.name``.

    Args:
        config: Provider settings; the API key is resolved from it.

    Returns:
        A PlacesTransport instance. A missing key is reported by the
        transport at search time as Misconfigured.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if config.name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown places provider '{config.name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[config.name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls(config.resolve_api_key(), config)  # type: ignore[no-any-return]


def available_transports() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
