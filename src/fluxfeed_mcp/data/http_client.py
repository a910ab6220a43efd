"""Async HTTP plumbing for upstream providers with bounded concurrency and timeouts."""

import asyncio
import logging
import os
import random
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Generic, TypeVar
from urllib.parse import urlsplit

import requests

logger = logging.getLogger(__name__)

# Bounded concurrency for blocking provider calls
_max_workers = int(os.environ.get("HTTP_MAX_WORKERS", "8"))
_executor = ThreadPoolExecutor(max_workers=_max_workers)
_fetch_semaphore = asyncio.Semaphore(_max_workers)

# Backoff configuration (only used when a config enables retries)
_base_delay = 0.5  # seconds
_max_delay = 5.0  # seconds

# Shutdown coordination
shutdown_event = asyncio.Event()

T = TypeVar("T")

STATUS_OK = "ok"
STATUS_EMPTY = "empty"
STATUS_FAILED = "failed"


class ProviderError(Exception):
    """Base class for upstream provider problems."""

    pass


class ServerShuttingDownError(ProviderError):
    """Raised when server is shutting down."""

    pass


class ProviderUnavailableError(ProviderError):
    """Transport error, timeout or non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderEmptyError(ProviderError):
    """Well-formed response that carries no usable data."""

    pass


class ClassifierUnavailableError(ProviderError):
    """No classifier credentials, or the classifier call failed."""

    pass


class MalformedUpstreamPayloadError(ProviderError):
    """Response body had an unexpected shape."""

    pass


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Tagged outcome of one provider call: ok, empty, or failed."""

    status: str
    source: str
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, source: str, data: T) -> "ProviderResult[T]":
        return cls(status=STATUS_OK, source=source, data=data)

    @classmethod
    def empty(cls, source: str, reason: str | None = None) -> "ProviderResult[T]":
        return cls(status=STATUS_EMPTY, source=source, error=reason)

    @classmethod
    def failed(cls, source: str, reason: str) -> "ProviderResult[T]":
        return cls(status=STATUS_FAILED, source=source, error=reason)

    @property
    def is_ok(self) -> bool:
        return self.status == STATUS_OK


async def first_usable(
    *attempts: Callable[[], Awaitable[ProviderResult[T]]],
) -> ProviderResult[T]:
    """
    Run provider attempts in order and stop at the first ok result.

    Later attempts only start after earlier ones come back empty or failed.

    Args:
        attempts: Zero-argument callables returning a ProviderResult

    Returns:
        The first ok result, otherwise the last result seen
    """
    if not attempts:
        raise ValueError("first_usable() needs at least one attempt")

    result = await attempts[0]()
    for attempt in attempts[1:]:
        if result.is_ok:
            return result
        logger.info(f"{result.source}: {result.status} ({result.error}), trying next provider")
        result = await attempt()
    return result


async def call_provider(
    source: str,
    operation: Callable[[], Awaitable[T]],
    is_empty: Callable[[T], bool] | None = None,
) -> ProviderResult[T]:
    """
    Await a provider coroutine and fold its outcome into a ProviderResult.

    Args:
        source: Provider identifier used for tagging and logs
        operation: Zero-argument callable returning the provider coroutine
        is_empty: Optional predicate marking a successful payload as empty

    Returns:
        ProviderResult tagged ok, empty or failed
    """
    try:
        data = await operation()
    except ProviderEmptyError as e:
        logger.info(f"{source}: empty response ({e})")
        return ProviderResult.empty(source, str(e))
    except Exception as e:
        logger.warning(f"{source}: provider call failed: {type(e).__name__}: {e}")
        return ProviderResult.failed(source, f"{type(e).__name__}: {e}")

    if is_empty is not None and is_empty(data):
        return ProviderResult.empty(source, "no usable data")
    return ProviderResult.ok(source, data)


def _redact(url: str) -> str:
    """Drop the query string so tokens never reach the logs."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def _is_retryable_error(error: Exception) -> bool:
    """Only transport failures, 429 and 5xx are worth another attempt."""
    if not isinstance(error, ProviderUnavailableError):
        return False
    if error.status_code is None:
        return True
    return error.status_code == 429 or 500 <= error.status_code < 600


def _calculate_backoff(attempt: int) -> float:
    """Calculate delay with exponential backoff and jitter."""
    delay = _base_delay * (2**attempt)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return min(delay + jitter, _max_delay)


def _request_json(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None,
    headers: dict[str, str] | None,
    json_body: Any,
    timeout: float,
) -> Any:
    """Blocking request that maps every failure onto the provider taxonomy."""
    try:
        response = requests.request(
            method,
            url,
            params=params,
            headers=headers,
            json=json_body,
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ProviderUnavailableError(f"{type(e).__name__}: {e}") from e

    if not response.ok:
        raise ProviderUnavailableError(
            f"HTTP {response.status_code} from {_redact(url)}",
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise MalformedUpstreamPayloadError(f"Invalid JSON from {_redact(url)}") from e


async def run_blocking(
    operation_name: str,
    sync_func: Callable[[], T],
    timeout: float,
    max_retries: int = 0,
) -> T:
    """
    Run a blocking provider call on the shared executor.

    Each attempt is bounded by ``timeout``. Only retryable
    ProviderUnavailableError failures are retried, up to ``max_retries``.

    Raises:
        ServerShuttingDownError: If server is shutting down
        ProviderUnavailableError: On timeout or transport/status failure
        ProviderError: Any other provider-side failure from sync_func
    """
    for attempt in range(max_retries + 1):
        if shutdown_event.is_set():
            raise ServerShuttingDownError("Server is shutting down")

        try:
            async with _fetch_semaphore:
                loop = asyncio.get_running_loop()
                try:
                    return await asyncio.wait_for(
                        loop.run_in_executor(_executor, sync_func),
                        timeout=timeout,
                    )
                except asyncio.TimeoutError as e:
                    raise ProviderUnavailableError(
                        f"{operation_name}: timed out after {timeout}s"
                    ) from e
        except ProviderUnavailableError as e:
            if attempt >= max_retries or not _is_retryable_error(e):
                raise
            delay = _calculate_backoff(attempt)
            logger.info(
                f"{operation_name}: Attempt {attempt + 1} failed ({e}). "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)

    raise ProviderUnavailableError(f"{operation_name}: failed after {max_retries + 1} attempts")


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = 8.0,
    max_retries: int = 0,
) -> Any:
    """GET a JSON document with a bounded timeout."""

    def _fetch() -> Any:
        return _request_json(
            "GET", url, params=params, headers=headers, json_body=None, timeout=timeout
        )

    logger.debug(f"GET {_redact(url)}")
    # Executor-level bound sits slightly above the socket timeout
    return await run_blocking(f"GET {_redact(url)}", _fetch, timeout + 1.0, max_retries)


async def post_json(
    url: str,
    body: Any,
    *,
    headers: dict[str, str] | None = None,
    timeout: float = 20.0,
    max_retries: int = 0,
) -> Any:
    """POST a JSON body and decode the JSON response with a bounded timeout."""

    def _send() -> Any:
        return _request_json(
            "POST", url, params=None, headers=headers, json_body=body, timeout=timeout
        )

    logger.debug(f"POST {_redact(url)}")
    return await run_blocking(f"POST {_redact(url)}", _send, timeout + 1.0, max_retries)


async def shutdown_executor() -> None:
    """Cleanup on server shutdown."""
    shutdown_event.set()
    _executor.shutdown(wait=False, cancel_futures=True)
