"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session, applying the retry policy to seller API calls
and preparing request/response bodies for the API log.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Iterator, List, Sequence, TypeVar

import requests
from requests import Response
from tenacity import (after_log, retry, retry_if_exception_type,
                      stop_after_attempt, wait_exponential)

from .config import API_MAX_ATTEMPTS, LOG_MAX_BODY_CHARS


logger = logging.getLogger(__name__)

T = TypeVar("T")

_REDACT_KEYS = {"api-key", "authorization", "password", "token"}


def get_http_session(headers: Dict[str, str] | None = None) -> requests.Session:
    """Return a new HTTP session with JSON defaults.

    Extra headers (credentials) are merged on top of the defaults.  Caller
    is responsible for closing the session or letting it be garbage
    collected.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": "OzonSizeMonitor/1.0",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
    )
    if headers:
        session.headers.update(headers)
    return session


class HTTPError(Exception):
    """Raised when an HTTP request fails after retries."""


class RateLimitedError(HTTPError):
    """Raised when the server answers 429 Too Many Requests."""


def raise_for_status(resp: Response) -> None:
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e)) from e


def retryable_request(method: Callable[..., Response]) -> Callable[..., Response]:
    """Decorator factory to apply the rate-limit retry policy to HTTP calls.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Only 429 responses are retried, at most
    API_MAX_ATTEMPTS attempts with exponential back-off between 1 and 10
    seconds.  Everything else fails on the first attempt so the caller's
    fallback path takes over.
    """

    @retry(
        reraise=True,
        stop=stop_after_attempt(API_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RateLimitedError),
        after=after_log(logger, logging.WARNING),
    )
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        response = method(session, url, **kwargs)
        if response.status_code == 429:
            raise RateLimitedError(f"Server returned status 429 for {url}")
        raise_for_status(response)
        return response

    return wrapper


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    for i in range(0, len(items), size):
        yield list(items[i : i + size])


def redact(obj: Any) -> Any:
    """Return a copy of obj with credential-like keys masked, recursively."""
    if isinstance(obj, list):
        return [redact(v) for v in obj]
    if not isinstance(obj, dict):
        return obj
    out: Dict[str, Any] = {}
    for k, v in obj.items():
        if str(k).lower() in _REDACT_KEYS:
            out[k] = "[REDACTED]"
        else:
            out[k] = redact(v)
    return out


def truncate(body: Any, limit: int = LOG_MAX_BODY_CHARS) -> str | None:
    if body is None:
        return None
    s = body if isinstance(body, str) else json.dumps(body, ensure_ascii=False, default=str)
    if len(s) <= limit:
        return s
    return s[:limit] + f"… <truncated {len(s) - limit} chars>"


__all__ = [
    "get_http_session",
    "retryable_request",
    "raise_for_status",
    "chunked",
    "redact",
    "truncate",
    "HTTPError",
    "RateLimitedError",
]
