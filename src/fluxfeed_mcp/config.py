"""Provider configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_OPENAI_MODEL = "gpt-5-mini"


def _optional(environ: Mapping[str, str], key: str) -> str | None:
    """Read an env var, treating empty/whitespace values as absent."""
    value = environ.get(key, "").strip()
    return value or None


@dataclass(frozen=True)
class ProviderConfig:
    """
    Read-only provider settings passed into every engine operation.

    A missing API key disables the provider it belongs to; callers then
    degrade to the fallback path instead of failing.
    """

    cryptonews_api_key: str | None = None
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    cryptonews_base_url: str = "https://cryptonews-api.com/api/v1"
    binance_base_url: str = "https://api.binance.com/api/v3"
    openai_base_url: str = "https://api.openai.com/v1"
    request_timeout: float = 8.0  # seconds
    classifier_timeout: float = 20.0  # seconds
    max_retries: int = 0

    @property
    def has_cryptonews(self) -> bool:
        return bool(self.cryptonews_api_key)

    @property
    def has_classifier(self) -> bool:
        return bool(self.openai_api_key)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProviderConfig":
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            ProviderConfig with keys, model, timeouts and retry limit
        """
        if environ is None:
            environ = os.environ

        return cls(
            cryptonews_api_key=_optional(environ, "CRYPTONEWS_API_KEY"),
            openai_api_key=_optional(environ, "OPENAI_API_KEY"),
            openai_model=_optional(environ, "OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            request_timeout=float(environ.get("FLUXFEED_HTTP_TIMEOUT", "8.0")),
            classifier_timeout=float(environ.get("FLUXFEED_CLASSIFIER_TIMEOUT", "20.0")),
            max_retries=max(0, int(environ.get("FLUXFEED_MAX_RETRIES", "0"))),
        )
