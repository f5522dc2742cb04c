"""HTTP utilities for provider adapters.

This module provides request pacing, retry with exponential backoff,
credential injection and redaction for adapter implementations.
"""

import time
import random
import threading
import requests
from typing import Dict, Any, Optional

from market_data_provider.utils.exceptions import TransportError
from market_data_provider.utils.logging import get_logger, log_api_call, redact_params, redact_text

logger = get_logger(__name__)

# Failures worth another attempt. HTTP error statuses are not in this list.
TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)


class RateLimiter:
    """Thread-safe token bucket used to pace outbound requests.

    With the default burst size of 1 the bucket holds a single token that
    refills every ``min_interval`` seconds, so consecutive requests are at
    least ``min_interval`` apart. The lock is held while waiting, which keeps
    concurrent callers in arrival order under the same ceiling.
    """

    def __init__(self, min_interval: float = 1.1, burst_size: int = 1):
        """Initialize rate limiter.

        Args:
            min_interval: Seconds needed to refill one token
            burst_size: Maximum number of tokens held at once
        """
        if burst_size < 1:
            raise ValueError("burst_size must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")

        self.min_interval = min_interval
        self.burst_size = burst_size
        self.tokens = float(burst_size)
        self.last_update = time.monotonic()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Take a token, blocking until one is available.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            now = time.monotonic()

            if self.min_interval > 0:
                elapsed = max(0.0, now - self.last_update)
                self.tokens = min(self.burst_size, self.tokens + elapsed / self.min_interval)
            else:
                self.tokens = self.burst_size
            self.last_update = now

            wait_time = 0.0
            if self.tokens < 1:
                wait_time = (1 - self.tokens) * self.min_interval
                logger.debug(f"Rate limiting: waiting {wait_time:.2f} seconds")
                time.sleep(wait_time)
                self.tokens = 1.0
                self.last_update = now + wait_time

            self.tokens -= 1
            return wait_time


class HTTPClient:
    """HTTP client with pacing, retry logic and credential injection."""

    def __init__(
        self,
        base_url: str,
        headers: Dict[str, str] = None,
        timeout: int = 30,
        rate_limiter: RateLimiter = None,
        max_retries: int = 2,
        retry_interval: float = 1.1,
        backoff_factor: float = 2.0,
        interval_randomness: float = 0.5,
        default_params: Dict[str, Any] = None,
        session: requests.Session = None
    ):
        """Initialize HTTP client.

        Args:
            base_url: Base URL for requests
            headers: Default headers for requests
            timeout: Request timeout in seconds
            rate_limiter: Rate limiter shared by every attempt
            max_retries: Retries after the first attempt for transient failures
            retry_interval: Base wait before the first retry, in seconds
            backoff_factor: Multiplier applied to the wait for each further retry
            interval_randomness: Upper bound of the jitter, as a fraction of the wait
            default_params: Query parameters sent with every request (e.g. the API key)
            session: Session to use instead of a new ``requests.Session``
        """
        self.base_url = base_url or ""
        self.headers = headers or {}
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.backoff_factor = backoff_factor
        self.interval_randomness = interval_randomness
        self.default_params = dict(default_params or {})
        self.session = session or requests.Session()
        self.session.headers.update(self.headers)

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        if endpoint.startswith('http'):
            return endpoint
        return f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    def _backoff_time(self, attempt: int) -> float:
        """Wait before retry number ``attempt + 1``, jitter included."""
        wait_time = self.retry_interval * (self.backoff_factor ** attempt)
        return wait_time + random.uniform(0, wait_time * self.interval_randomness)

    def _handle_response(self, response: requests.Response, url: str) -> Dict[str, Any]:
        """Check the status and decode the JSON body.

        Raises:
            TransportError: On HTTP error status or an undecodable body
        """
        if response.status_code >= 400:
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason}",
                url=url,
                status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(f"Failed to parse JSON response: {str(e)}", url=url) from e

        if not isinstance(body, dict):
            raise TransportError(
                f"Unexpected response body type: {type(body).__name__}",
                url=url
            )

        return body

    def get(
        self,
        endpoint: str,
        params: Dict[str, Any] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """Make GET request with pacing and retry logic.

        Args:
            endpoint: API endpoint
            params: Query parameters
            **kwargs: Additional arguments for requests

        Returns:
            Decoded response body

        Raises:
            TransportError: If the request fails
        """
        return self._request('GET', endpoint, params=params, **kwargs)

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> Dict[str, Any]:
        url = self._build_url(endpoint)
        query = {**self.default_params, **(params or {})}
        total_attempts = self.max_retries + 1
        last_exception = None

        for attempt in range(total_attempts):
            self.rate_limiter.acquire()
            logger.debug(f"{method} {url} params={redact_params(query)} (attempt {attempt + 1}/{total_attempts})")

            start_time = time.monotonic()
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    params=query,
                    timeout=self.timeout,
                    **kwargs
                )
            except TRANSIENT_EXCEPTIONS as e:
                last_exception = e
                if attempt < self.max_retries:
                    wait_time = self._backoff_time(attempt)
                    logger.warning(f"Request failed (attempt {attempt + 1}/{total_attempts}): "
                                   f"{redact_text(str(e))}. Retrying in {wait_time:.2f} seconds...")
                    time.sleep(wait_time)
                    continue
                logger.error(f"All {total_attempts} attempts failed: {redact_text(str(e))}")
                break
            except requests.RequestException as e:
                raise TransportError(f"Request failed: {redact_text(str(e))}", url=url) from e

            log_api_call(
                logger,
                api_name=self.base_url,
                endpoint=endpoint,
                parameters=query,
                response_time=time.monotonic() - start_time,
                status_code=response.status_code
            )
            return self._handle_response(response, url)

        raise TransportError(
            f"Failed to retrieve data after {total_attempts} attempts: {redact_text(str(last_exception))}",
            url=url,
            retry_count=self.max_retries
        ) from last_exception


def normalize_symbol(symbol: str) -> str:
    """Normalize a ticker symbol or currency code.

    Args:
        symbol: Symbol to normalize

    Returns:
        Upper-cased symbol without surrounding whitespace
    """
    if not symbol:
        return symbol

    return symbol.upper().strip()
