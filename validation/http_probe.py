"""Header-only HTTP probe used to read an image's Content-Type."""

import logging
from typing import Optional
from urllib.parse import urlsplit

import httpx

from models.errors import ContentTypeProbeError, ProbeFaultKind

logger = logging.getLogger(__name__)


def is_http_url(url: str) -> bool:
    """Check whether a URL is a syntactically valid http(s) URL."""
    try:
        parts = urlsplit(url)
    except (ValueError, TypeError, AttributeError):
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


def parse_content_type(header_value: Optional[str]) -> Optional[str]:
    """Strip parameters from a Content-Type header value.

    >>> parse_content_type("image/webp; charset=binary")
    'image/webp'
    """
    if not header_value:
        return None
    mime_type = header_value.split(";", 1)[0].strip().lower()
    return mime_type or None


class ContentTypeProbe:
    """Issues a single HEAD request and reports the Content-Type header."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, follow_redirects: bool = True):
        """
        Initialize the probe.

        Args:
            client: Shared async client; a short-lived client is created per request when omitted
            follow_redirects: Whether redirects are followed before reading headers
        """
        self._client = client
        self.follow_redirects = follow_redirects

    async def fetch_content_type(self, url: str, timeout_seconds: float) -> Optional[str]:
        """
        Fetch the Content-Type of a resource.

        Args:
            url: http(s) URL to probe
            timeout_seconds: Deadline for the whole request

        Returns:
            Optional[str]: Parameter-free MIME type, or None when the header is missing

        Raises:
            ContentTypeProbeError: On timeout, transport failure or non-2xx status
        """
        try:
            if self._client is not None:
                response = await self._head(self._client, url, timeout_seconds)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._head(client, url, timeout_seconds)
        except httpx.TimeoutException as e:
            raise ContentTypeProbeError(
                f"Request timed out after {timeout_seconds:.1f}s", ProbeFaultKind.TIMEOUT, url=url
            ) from e
        except httpx.HTTPError as e:
            raise ContentTypeProbeError(f"Network request failed: {e}", ProbeFaultKind.NETWORK, url=url) from e

        if not response.is_success:
            raise ContentTypeProbeError(
                f"HTTP {response.status_code} while probing image",
                ProbeFaultKind.HTTP_STATUS,
                status_code=response.status_code,
                url=url,
            )

        content_type = parse_content_type(response.headers.get("content-type"))
        logger.debug(f"Probed {url}: content-type={content_type}")
        return content_type

    async def _head(self, client: httpx.AsyncClient, url: str, timeout_seconds: float) -> httpx.Response:
        return await client.head(url, timeout=timeout_seconds, follow_redirects=self.follow_redirects)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
