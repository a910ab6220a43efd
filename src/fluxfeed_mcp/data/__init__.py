"""Data layer for upstream news, sentiment and price providers."""

from fluxfeed_mcp.data.http_client import (
    ClassifierUnavailableError,
    MalformedUpstreamPayloadError,
    ProviderEmptyError,
    ProviderError,
    ProviderResult,
    ProviderUnavailableError,
    ServerShuttingDownError,
    call_provider,
    first_usable,
    shutdown_executor,
)

__all__ = [
    "ClassifierUnavailableError",
    "MalformedUpstreamPayloadError",
    "ProviderEmptyError",
    "ProviderError",
    "ProviderResult",
    "ProviderUnavailableError",
    "ServerShuttingDownError",
    "call_provider",
    "first_usable",
    "shutdown_executor",
]
