# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Retry with exponential backoff for fetch-style calls.

After every attempt the engine asks a retry predicate
``(attempt_index, transport_error, response) -> bool`` whether to go again and,
if so, a delay function with the same arguments how many milliseconds to wait.
The defaults retry transport errors and 5xx responses up to ``max_retries``
times, waiting ``initial_delay_ms * 2**attempt_index`` in between. HTTP error
statuses are never raised; a transport error is re-raised once the engine
stops retrying.
"""

from __future__ import annotations

import email.utils
import logging
import math
import re
import threading
import time
from collections.abc import Callable, Collection, Mapping
from datetime import datetime, timezone
from typing import Any, Union

import httpx

from ..config import load_http_settings
from ..errors import RequestCancelledError, TransportError
from .fetch import create_fetch
from .models import AttemptOutcome, HttpRequest, HttpResponse, RetryConfig

logger = logging.getLogger(__name__)

RetryPredicate = Callable[[int, Union[BaseException, None], Union[HttpResponse, None]], bool]
DelayFunction = Callable[[int, Union[BaseException, None], Union[HttpResponse, None]], float]
FetchFunction = Callable[..., HttpResponse]

RETRYABLE_EXCEPTIONS = (TransportError, httpx.TransportError)

_INTEGER_RE = re.compile(r"^-?\d+$")


def build_default_retry_config() -> RetryConfig:
    """Create a RetryConfig from environment-backed HttpSettings."""
    return RetryConfig.from_settings(load_http_settings())


def default_retry_on(max_retries: int) -> RetryPredicate:
    """Retry transport errors and 5xx responses while ``attempt_index < max_retries``."""

    def retry_on(attempt: int, error: BaseException | None, response: HttpResponse | None) -> bool:
        server_error = response is not None and 500 <= response.status <= 599
        if attempt < max_retries and (error is not None or server_error):
            reason = error if error is not None else f"{response.status} {response.reason}".strip()
            logger.debug("Retrying after attempt %d. failed: %s", attempt + 1, reason)
            return True
        return False

    return retry_on


def default_retry_delay(initial_delay_ms: float) -> DelayFunction:
    """Exponential backoff: ``initial_delay_ms``, then double it on every attempt."""

    def retry_delay(attempt: int, error: BaseException | None, response: HttpResponse | None) -> float:  # noqa: ARG001
        time_to_wait = initial_delay_ms * 2**attempt
        logger.debug("Request will be retried after %s ms", time_to_wait)
        return time_to_wait

    return retry_delay


def status_retry_on(statuses: Collection[int]) -> RetryPredicate:
    """Retry transport errors and any response whose status is in ``statuses``, at any attempt."""
    codes = frozenset(int(status) for status in statuses)

    def retry_on(attempt: int, error: BaseException | None, response: HttpResponse | None) -> bool:  # noqa: ARG001
        if error is not None:
            return True
        return response is not None and response.status in codes

    return retry_on


def parse_retry_after(value: str | None, now: datetime | None = None) -> float:
    """
    Convert a ``Retry-After`` header value into milliseconds.

    Accepts a positive integer number of seconds or an HTTP-date. Returns NaN
    when the value is missing, zero or negative, unparseable, or a date at or
    before ``now``; check with ``math.isnan`` before using the result.
    """
    if value is None:
        return math.nan
    raw = str(value).strip()
    if not raw:
        return math.nan

    if _INTEGER_RE.match(raw):
        seconds = int(raw)
        return seconds * 1000.0 if seconds > 0 else math.nan

    try:
        retry_at = email.utils.parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return math.nan
    if retry_at is None:
        return math.nan
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    delay_ms = (retry_at - current).total_seconds() * 1000.0
    return delay_ms if delay_ms > 0 else math.nan


def honor_retry_after(delay_fn: DelayFunction) -> DelayFunction:
    """Wrap ``delay_fn`` so a valid ``Retry-After`` response header takes precedence."""

    def retry_delay(attempt: int, error: BaseException | None, response: HttpResponse | None) -> float:
        if response is not None:
            wait_ms = parse_retry_after(response.headers.get("retry-after"))
            if not math.isnan(wait_ms):
                logger.debug("Honoring Retry-After, request will be retried after %s ms", wait_ms)
                return wait_ms
        return delay_fn(attempt, error, response)

    return retry_delay


def _resolve_retry_on(retry_on: RetryPredicate | Collection[int] | None, cfg: RetryConfig) -> RetryPredicate:
    if retry_on is None:
        return default_retry_on(cfg.max_retries)
    if callable(retry_on):
        return retry_on
    if isinstance(retry_on, (str, bytes, Mapping)):
        raise TypeError("retry_on must be a callable or a collection of status codes")
    return status_retry_on(retry_on)


def _resolve_retry_delay(retry_delay: DelayFunction | float | None, cfg: RetryConfig) -> DelayFunction:
    if retry_delay is None:
        return default_retry_delay(cfg.initial_delay_ms)
    if callable(retry_delay):
        return retry_delay
    constant = float(retry_delay)
    return lambda attempt, error, response: constant  # noqa: ARG005


def _wait(delay_ms: float, cancel_event: threading.Event | None) -> bool:
    """Sleep for ``delay_ms``; return False if the cancel event fired."""
    seconds = max(0.0, delay_ms) / 1000.0
    if cancel_event is not None:
        return not cancel_event.wait(seconds)
    if seconds:
        time.sleep(seconds)
    return True


def _surface(outcome: AttemptOutcome | None, request: HttpRequest) -> HttpResponse:
    if outcome is None:
        raise RequestCancelledError(request.url, sdk_details={"url": request.url})
    if outcome.transport_error is not None:
        raise outcome.transport_error
    response = outcome.response
    if outcome.attempt_index:
        response.meta["retry_count"] = outcome.attempt_index
    return response


def retrying_fetch(
    url: str | HttpRequest,
    request_options: Mapping[str, Any] | None = None,
    retry_config: RetryConfig | Mapping[str, Any] | None = None,
    retry_on: RetryPredicate | Collection[int] | None = None,
    retry_delay: DelayFunction | float | None = None,
    *,
    fetch: FetchFunction | None = None,
) -> HttpResponse:
    """
    Fetch ``url``, retrying according to ``retry_on`` with ``retry_delay`` between attempts.

    ``retry_on`` may be a predicate or a collection of status codes; a custom
    predicate is responsible for bounding the number of retries itself, while
    the status collection form still stops after ``max_retries`` retries.
    ``retry_delay`` may be a delay function or a constant number of
    milliseconds. ``max_retries == 0`` disables retrying entirely.

    A ``cancel_event`` request option stops the sequence as soon as it is set:
    the last response is returned, the last transport error re-raised, or
    RequestCancelledError raised if nothing was sent yet.
    """
    cfg = RetryConfig.from_value(retry_config) if retry_config is not None else build_default_retry_config()
    should_retry = _resolve_retry_on(retry_on, cfg)
    next_delay = _resolve_retry_delay(retry_delay, cfg)
    fallback_delay = default_retry_delay(cfg.initial_delay_ms)
    engine_bounded = retry_on is not None and not callable(retry_on)
    fetch_fn = fetch or create_fetch(cfg.proxy)
    request = HttpRequest.build(url, request_options)

    last: AttemptOutcome | None = None
    attempt = 0
    while True:
        if request.is_cancelled():
            logger.debug("retrying_fetch: %s cancelled before attempt %d", request.url, attempt + 1)
            break

        try:
            last = AttemptOutcome(attempt, response=fetch_fn(request))
        except RETRYABLE_EXCEPTIONS as exc:
            last = AttemptOutcome(attempt, transport_error=exc)
        logger.debug("retrying_fetch: attempt %d for %s: %s", attempt + 1, request.url, last.describe())

        if cfg.max_retries == 0 or (engine_bounded and attempt >= cfg.max_retries):
            break
        if not should_retry(attempt, last.transport_error, last.response):
            break

        delay_ms = next_delay(attempt, last.transport_error, last.response)
        if delay_ms is None or math.isnan(delay_ms) or delay_ms < 0:
            delay_ms = fallback_delay(attempt, last.transport_error, last.response)
        if not _wait(delay_ms, request.cancel_event):
            logger.debug("retrying_fetch: %s cancelled during backoff", request.url)
            break
        attempt += 1

    return _surface(last, request)


class HttpExponentialBackoff:
    """
    Fetch with retries and exponential backoff.

    Defaults to 3 retries with an initial delay of 100ms (100, 200, 400, ...).
    """

    def __init__(self, fetch: FetchFunction | None = None):
        self._fetch = fetch

    def exponential_backoff(
        self,
        url: str | HttpRequest,
        request_options: Mapping[str, Any] | None = None,
        retry_options: RetryConfig | Mapping[str, Any] | None = None,
        retry_on: RetryPredicate | Collection[int] | None = None,
        retry_delay: DelayFunction | float | None = None,
    ) -> HttpResponse:
        """Fetch ``url`` with retries; see ``retrying_fetch`` for the arguments."""
        return retrying_fetch(
            url,
            request_options,
            retry_options if retry_options is not None else {},
            retry_on,
            retry_delay,
            fetch=self._fetch,
        )


__all__ = [
    "DelayFunction",
    "HttpExponentialBackoff",
    "RetryPredicate",
    "build_default_retry_config",
    "default_retry_delay",
    "default_retry_on",
    "honor_retry_after",
    "parse_retry_after",
    "retrying_fetch",
    "status_retry_on",
]
