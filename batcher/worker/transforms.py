"""
Transform registry and built-in transforms.

A transform receives one data element and returns its result, raising to
signal a failed attempt. Jobs may run an attempt more than once, so
transforms should be idempotent.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from typing import Any

import httpx

from batcher.exceptions import TransformError, UnknownTransformError
from batcher.types.job import Transform

logger = logging.getLogger(__name__)

# Transform registry
_transforms: dict[str, Transform] = {}


def register_transform(name: str) -> Callable[[Transform], Transform]:
    """
    Decorator to register a transform under a name.

    Args:
        name: The name jobs use to refer to the transform.

    Returns:
        Decorator function.

    Example:
        @register_transform("resize_image")
        async def resize_image(data: dict) -> dict:
            ...
    """
    def decorator(transform: Transform) -> Transform:
        _transforms[name] = transform
        logger.debug(f"Registered transform: {name}")
        return transform
    return decorator


def get_transform(name: str) -> Transform:
    """
    Get the transform registered under a name.

    Raises:
        UnknownTransformError: If nothing is registered under the name.
    """
    try:
        return _transforms[name]
    except KeyError:
        raise UnknownTransformError(name) from None


def list_transforms() -> list[str]:
    """List all registered transform names."""
    return sorted(_transforms)


def _field(data: Any, key: str, default: Any) -> Any:
    if isinstance(data, dict):
        return data.get(key, default)
    return default


# ============================================================================
# Built-in transforms
# ============================================================================


@register_transform("echo")
async def echo(data: Any) -> Any:
    """Return the element unchanged."""
    return data


@register_transform("sleep")
async def sleep(data: Any) -> Any:
    """
    Sleep, then return the element.

    Data may contain:
    - duration_seconds: How long to sleep (default 1)
    """
    await asyncio.sleep(float(_field(data, "duration_seconds", 1)))
    return data


@register_transform("fail")
async def fail(data: Any) -> Any:
    """Always fail - for exercising retry policy."""
    raise TransformError(f"Intentional failure for {data!r}")


@register_transform("random_failure")
async def random_failure(data: Any) -> Any:
    """
    Fail at random.

    Data may contain:
    - failure_rate: Probability of failure, 0.0 to 1.0 (default 0.5)
    """
    failure_rate = float(_field(data, "failure_rate", 0.5))
    if random.random() < failure_rate:
        raise TransformError(f"Random failure at rate {failure_rate}")
    return data


@register_transform("http_request")
async def http_request(data: Any) -> dict[str, Any]:
    """
    Make an HTTP request. Non-2xx responses fail the attempt.

    Data should contain:
    - url: The URL to request
    - method: HTTP method (default GET)
    - headers: Optional headers
    - body: Optional JSON body for POST, PUT and PATCH
    - timeout_seconds: Request timeout (default 30)
    """
    url = _field(data, "url", None)
    if not url:
        raise TransformError("Missing 'url' in data")

    method = str(_field(data, "method", "GET")).upper()
    headers = _field(data, "headers", None) or {}
    body = _field(data, "body", None)
    timeout = float(_field(data, "timeout_seconds", 30.0))

    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(
            method=method,
            url=url,
            headers=headers,
            json=body if method in ("POST", "PUT", "PATCH") else None,
        )

    if not response.is_success:
        raise TransformError(f"HTTP {response.status_code} from {method} {url}")

    return {
        "status_code": response.status_code,
        "body": response.text[:1000],  # Truncate response
    }
