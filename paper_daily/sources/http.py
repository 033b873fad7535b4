"""Shared HTTP plumbing for source adapters."""

from http import HTTPStatus

import httpx

from paper_daily.sources.errors import RateLimitedError, SourceError, SourceErrorClass


DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "paper-daily/0.1"


def build_http_client(timeout: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.Client:
    """Create the default client used when none is injected."""
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def _retry_after(headers: httpx.Headers) -> int | None:
    value = headers.get("Retry-After")
    if value is None or not value.strip().isdigit():
        return None
    return int(value.strip())


def get_checked(
    client: httpx.Client,
    url: str,
    source: str,
    params: dict[str, str | int] | None = None,
) -> httpx.Response:
    """GET a URL, mapping failures to source errors.

    Args:
        client: HTTP client.
        url: Target URL.
        source: Source name for error reporting.
        params: Optional query parameters.

    Returns:
        Successful response.

    Raises:
        RateLimitedError: On HTTP 429.
        SourceError: On network failures and other non-2xx statuses.
    """
    try:
        response = client.get(url, params=params)
    except httpx.HTTPError as e:
        msg = f"Request to {url} failed: {e}"
        raise SourceError(SourceErrorClass.FETCH, msg, source=source) from e

    if response.status_code == HTTPStatus.TOO_MANY_REQUESTS:
        raise RateLimitedError(
            f"{source} returned 429 Too Many Requests",
            source=source,
            retry_after=_retry_after(response.headers),
        )
    if not response.is_success:
        msg = f"{source} returned HTTP {response.status_code}"
        raise SourceError(
            SourceErrorClass.FETCH,
            msg,
            source=source,
            status_code=response.status_code,
        )
    return response
