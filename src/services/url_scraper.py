"""Link preview service: fetch a page and extract title, description and image."""
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; Linkshelf/1.0; +link-preview)'
DEFAULT_TIMEOUT = 10.0
MAX_REDIRECTS = 5


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


class InvalidPreviewUrlError(ValueError):
    """Raised when the requested URL cannot be previewed at all."""

    pass


def normalize_url(raw: str) -> str:
    """
    Trim the URL and default the scheme to https.

    Raises:
        InvalidPreviewUrlError: If the result is not an http(s) URL with a host.
    """
    url = raw.strip()
    if not url:
        raise InvalidPreviewUrlError("URL is required")
    if '://' not in url:
        url = f'https://{url}'
    try:
        parsed = urlparse(url)
        parsed.port  # raises on an out-of-range or non-numeric port
    except ValueError as e:
        raise InvalidPreviewUrlError(f"Invalid URL: {raw}") from e
    if parsed.scheme not in ('http', 'https') or not parsed.hostname or ' ' in url:
        raise InvalidPreviewUrlError(f"Invalid URL: {raw}")
    return url


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Unparseable addresses count as private.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname and checks every address it maps to, so a public
    name pointing at an internal IP is rejected too.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host does not resolve.
    """
    parsed = urlparse(url)
    hostname = parsed.hostname
    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")
    parsed.port  # ValueError for a port outside 0-65535

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    for _, _, _, _, sockaddr in addrinfo:
        if is_private_ip(sockaddr[0]):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {sockaddr[0]}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw content before extraction)."""

    content: str | bytes | None  # str for HTML, bytes for PDF
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None

    @property
    def is_pdf(self) -> bool:
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())


@dataclass
class ExtractedMetadata:
    """Title, description and image found in a document."""

    title: str | None
    description: str | None
    image: str | None = None


@dataclass
class LinkPreview:
    """Preview for a URL, ready to prefill a bookmark form."""

    url: str
    final_url: str
    title: str | None
    description: str | None
    image: str | None
    error: str | None = None


def _failed(url: str, error: str, status_code: int | None = None) -> FetchResult:
    return FetchResult(
        content=None, final_url=url, status_code=status_code, content_type=None, error=error,
    )


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch an HTML page or PDF, returning error info on failure instead of raising.

    Redirects are followed by hand so that every hop is checked against the
    private-network guard before it is requested.
    """
    current = url
    try:
        async with httpx.AsyncClient(
            follow_redirects=False,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            for _ in range(MAX_REDIRECTS + 1):
                try:
                    validate_url_not_private(current)
                except SSRFBlockedError as e:
                    logger.warning("Blocked link preview fetch: %s", e)
                    return _failed(current, str(e))
                except ValueError as e:
                    return _failed(current, str(e))

                response = await client.get(current)
                if response.is_redirect and 'location' in response.headers:
                    current = urljoin(str(response.url), response.headers['location'])
                    continue
                break
            else:
                return _failed(current, "Too many redirects")
    except httpx.TimeoutException:
        return _failed(current, "Request timed out")
    except httpx.InvalidURL as e:
        return _failed(current, f"Invalid URL: {e}")
    except httpx.RequestError as e:
        return _failed(current, f"Request failed: {e}")

    final_url = str(response.url)
    content_type = response.headers.get('content-type', '')
    if not response.is_success:
        return _failed(final_url, f"HTTP {response.status_code}", response.status_code)

    if 'application/pdf' in content_type.lower():
        content: str | bytes = response.content
    elif 'html' in content_type.lower():
        content = response.text
    else:
        return FetchResult(
            content=None,
            final_url=final_url,
            status_code=response.status_code,
            content_type=content_type,
            error=f"Unsupported content type: {content_type}",
        )
    return FetchResult(
        content=content,
        final_url=final_url,
        status_code=response.status_code,
        content_type=content_type,
        error=None,
    )


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        value = tag['content'].strip()
        return value or None
    return None


def extract_html_metadata(html: str, base_url: str) -> ExtractedMetadata:
    """
    Extract title, description and preview image from HTML.

    Pure function with no I/O.

    Title: <title>, og:title, twitter:title.
    Description: meta description, og:description, twitter:description.
    Image: og:image, twitter:image, then the page icon. Relative image URLs
    are resolved against base_url.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = None
    title_tag = soup.find('title')
    if title_tag and title_tag.string:
        title = title_tag.string.strip() or None
    title = (
        title
        or _meta_content(soup, property='og:title')
        or _meta_content(soup, name='twitter:title')
    )

    description = (
        _meta_content(soup, name='description')
        or _meta_content(soup, property='og:description')
        or _meta_content(soup, name='twitter:description')
    )

    image = _meta_content(soup, property='og:image') or _meta_content(soup, name='twitter:image')
    if not image:
        # rel is multi-valued, so this also matches rel="shortcut icon"
        icon = soup.find('link', rel='icon')
        if icon and icon.get('href'):
            image = icon['href'].strip() or None
    if image:
        image = urljoin(base_url, image)

    return ExtractedMetadata(title=title, description=description, image=image)


def extract_pdf_metadata(pdf_bytes: bytes) -> ExtractedMetadata:
    """
    Extract title (/Title) and description (/Subject) from PDF metadata.

    PDF metadata is often missing or auto-generated junk; expect None values.
    """
    try:
        meta = PdfReader(BytesIO(pdf_bytes)).metadata
    except (PyPdfError, ValueError, OSError):
        logger.debug("Could not read PDF metadata", exc_info=True)
        return ExtractedMetadata(title=None, description=None)

    title = meta.title if meta and meta.title else None
    description = meta.subject if meta and meta.subject else None
    return ExtractedMetadata(title=title, description=description)


async def get_link_preview(raw_url: str, timeout: float = DEFAULT_TIMEOUT) -> LinkPreview:  # noqa: ASYNC109
    """
    Build a link preview for a URL.

    Fetch failures are reported in the error field rather than raised. A
    fetched page without a title falls back to the URL's hostname.

    Raises:
        InvalidPreviewUrlError: If the URL is malformed.
    """
    url = normalize_url(raw_url)
    hostname = urlparse(url).hostname
    result = await fetch_url(url, timeout)

    if result.error:
        return LinkPreview(
            url=url,
            final_url=result.final_url,
            title=None,
            description=None,
            image=None,
            error=result.error,
        )

    if result.is_pdf:
        metadata = extract_pdf_metadata(result.content)
    else:
        metadata = extract_html_metadata(result.content, result.final_url)

    return LinkPreview(
        url=url,
        final_url=result.final_url,
        title=metadata.title or urlparse(result.final_url).hostname or hostname,
        description=metadata.description,
        image=metadata.image,
    )
