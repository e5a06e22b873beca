"""HTTP client utilities with retry and connection pooling.

Purpose: one place for the remote store's HTTP behaviour.

Pattern: requests.Session with tenacity retries and connection pooling.
- urllib3 retries 429/5xx responses for idempotent methods
- tenacity retries connection failures (and timeouts, except on POST,
  where a timed-out insert may already have been written)
- every request carries a timeout
"""
import logging

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from barbershop.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

RETRY_ON_IDEMPOTENT = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)
RETRY_ON_POST = (requests.exceptions.ConnectionError,)


def _with_retry(call, retry_on, max_retries: int, backoff_factor: float, timeout: float):
    @retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=backoff_factor, max=8),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def call_with_retry(*args, **kwargs):
        kwargs.setdefault("timeout", timeout)
        response = call(*args, **kwargs)
        response.raise_for_status()
        return response

    return call_with_retry


def create_http_session(
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    timeout: float = 15,
    headers: dict = None
) -> requests.Session:
    """
    Create HTTP session with retry and connection pooling.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        backoff_factor: Backoff multiplier; delays 1s, 2s, 4s at 1.0
        timeout: Default request timeout in seconds (default: 15)
        headers: Headers sent with every request

    Returns:
        requests.Session whose get/post/patch/delete retry and raise
        HTTPError on 4xx/5xx
    """
    session = requests.Session()
    if headers:
        session.headers.update(headers)

    retry_strategy = Retry(
        total=max_retries,
        connect=0,
        read=0,
        backoff_factor=backoff_factor,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "PATCH", "DELETE"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(
        max_retries=retry_strategy,
        pool_connections=10,
        pool_maxsize=10,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.get = _with_retry(session.get, RETRY_ON_IDEMPOTENT, max_retries, backoff_factor, timeout)
    session.patch = _with_retry(session.patch, RETRY_ON_IDEMPOTENT, max_retries, backoff_factor, timeout)
    session.delete = _with_retry(session.delete, RETRY_ON_IDEMPOTENT, max_retries, backoff_factor, timeout)
    session.post = _with_retry(session.post, RETRY_ON_POST, max_retries, backoff_factor, timeout)

    return session


def call_with_protection(
    breaker: CircuitBreaker,
    session: requests.Session,
    method: str,
    url: str,
    **kwargs
):
    """
    Make an HTTP call with circuit breaker protection.

    Raises:
        CircuitBreakerOpen: If circuit is open
        requests.exceptions.*: If request fails
        ValueError: Unsupported method
    """
    handlers = {
        "GET": session.get,
        "POST": session.post,
        "PATCH": session.patch,
        "DELETE": session.delete,
    }
    handler = handlers.get(method.upper())
    if handler is None:
        raise ValueError(f"Unsupported HTTP method: {method}")

    return breaker.call(handler, url, **kwargs)
