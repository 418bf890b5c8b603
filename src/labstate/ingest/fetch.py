"""HTTP fetching with retries for remote repository APIs."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from labstate import __version__

logger = structlog.get_logger()

USER_AGENT = f"LabState/{__version__} (portfolio lab-state pipeline)"


@dataclass(frozen=True)
class FetchResult:
    """Result of fetching a JSON document."""

    final_url: str
    status_code: int
    data: Any = None
    next_url: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300


def _is_retryable_http_status(status_code: int) -> bool:
    return status_code in {408, 425, 429, 500, 502, 503, 504}


def _should_retry(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return _is_retryable_http_status(exc.response.status_code)
    return False


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(min=2, max=30),
    retry=retry_if_exception(_should_retry),
    reraise=True,
)
def _fetch_json_with_retry(
    url: str,
    *,
    params: dict[str, Any] | None,
    headers: dict[str, str],
    timeout_seconds: float,
    transport: httpx.BaseTransport | None,
) -> FetchResult:
    with httpx.Client(
        timeout=timeout_seconds,
        follow_redirects=True,
        headers=headers,
        transport=transport,
    ) as client:
        response = client.get(url, params=params)

        if response.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"HTTP {response.status_code}",
                request=response.request,
                response=response,
            )
        if response.status_code >= 300:
            return FetchResult(
                final_url=str(response.url),
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError as exc:
            return FetchResult(
                final_url=str(response.url),
                status_code=response.status_code,
                error=f"Invalid JSON: {exc}",
            )

        next_link = response.links.get("next", {}).get("url")
        return FetchResult(
            final_url=str(response.url),
            status_code=response.status_code,
            data=data,
            next_url=next_link,
        )


def fetch_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout_seconds: float = 10.0,
    transport: httpx.BaseTransport | None = None,
) -> FetchResult:
    """Fetch a JSON document; HTTP and network failures come back as ``error``.

    Transient statuses are retried before giving up. The request never
    outlives ``timeout_seconds`` per attempt.
    """
    request_headers = {"User-Agent": USER_AGENT, **(headers or {})}
    try:
        return _fetch_json_with_retry(
            url,
            params=params,
            headers=request_headers,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )
    except httpx.HTTPStatusError as e:
        status_code = e.response.status_code
        logger.warning("HTTP error", url=url, status=status_code)
        return FetchResult(
            final_url=str(e.response.url),
            status_code=status_code,
            error=f"HTTP {status_code}",
        )
    except httpx.RequestError as e:
        logger.error("Request error", url=url, error=str(e))
        return FetchResult(
            final_url=url,
            status_code=0,
            error=str(e),
        )
