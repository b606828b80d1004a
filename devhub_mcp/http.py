"""
Shared HTTP plumbing for the service clients.

Contains the httpx client factory, the tenacity retry policy for transient
transport failures, and the mapping of non-2xx responses to ApiError.
"""

import httpx
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from .config import http_settings

logger = structlog.get_logger(__name__)


def default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=http_settings.connect_timeout,
        read=http_settings.read_timeout,
        write=20.0,
        pool=10.0,
    )


def default_limits() -> httpx.Limits:
    return httpx.Limits(max_connections=100, max_keepalive_connections=20)


class HttpClientFactory:
    """Creates shared httpx clients with sane defaults.

    Keep one client per service client instance; do not create per-request.
    """

    @staticmethod
    def client(
        base_url: str | None = None,
        headers: dict | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        verify: bool | str = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url or "",
            headers=headers,
            auth=auth,
            verify=verify,
            transport=transport,
            timeout=default_timeout(),
            limits=default_limits(),
            follow_redirects=True,
        )


TransientHttpError = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


def transient_retry():
    """Retry idempotent calls on timeouts and dropped connections only."""
    return retry(
        reraise=True,
        stop=stop_after_attempt(max(1, http_settings.retry_attempts)),
        wait=wait_exponential_jitter(initial=0.5, max=10.0),
        retry=retry_if_exception_type(TransientHttpError),
    )


class ApiError(Exception):
    """Non-2xx response from an external API."""

    def __init__(self, service: str, status_code: int, reason: str, body: str):
        self.service = service
        self.status_code = status_code
        self.reason = reason
        self.body = body
        super().__init__(f"{service} API error: {status_code} {reason}\n{body}")


def raise_for_api_error(response: httpx.Response, service: str) -> None:
    """Raise ApiError carrying the response body when the status is not 2xx."""
    if response.is_success:
        return
    logger.warning(
        "http_request_failed",
        service=service,
        method=response.request.method,
        url=str(response.request.url),
        status_code=response.status_code,
    )
    raise ApiError(service, response.status_code, response.reason_phrase, response.text)
