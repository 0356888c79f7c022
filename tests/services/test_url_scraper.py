"""
Tests for the link preview service.

Tests cover:
- normalize_url: scheme defaulting and rejection of malformed input
- is_private_ip / validate_url_not_private: SSRF guard
- fetch_url: HTTP fetching against respx-mocked responses (redirects, errors, content types)
- extract_html_metadata / extract_pdf_metadata: pure extraction functions
- get_link_preview: end to end with hostname fallback
"""
import ipaddress
import socket
from collections.abc import Generator
from io import BytesIO

import httpx
import pytest
import respx
from pypdf import PdfWriter

from services import url_scraper
from services.url_scraper import (
    MAX_REDIRECTS,
    InvalidPreviewUrlError,
    SSRFBlockedError,
    extract_html_metadata,
    extract_pdf_metadata,
    fetch_url,
    get_link_preview,
    is_private_ip,
    normalize_url,
    validate_url_not_private,
)

PUBLIC_IP = "93.184.216.34"


def _fake_getaddrinfo(host: str, *args: object, **kwargs: object) -> list[tuple]:
    """Resolve IP literals to themselves and every name to a public address."""
    try:
        ip = str(ipaddress.ip_address(host))
    except ValueError:
        ip = PUBLIC_IP
    return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", (ip, 0))]


@pytest.fixture(autouse=True)
def fake_dns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(url_scraper.socket, "getaddrinfo", _fake_getaddrinfo)


@pytest.fixture
def mock_site() -> Generator[respx.MockRouter]:
    """Mock responses from https://example.com."""
    with respx.mock(base_url="https://example.com") as respx_mock:
        yield respx_mock


def _html(body: str) -> httpx.Response:
    return httpx.Response(200, html=body)


def _pdf_bytes(title: str | None = None, subject: str | None = None) -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    metadata = {}
    if title:
        metadata["/Title"] = title
    if subject:
        metadata["/Subject"] = subject
    if metadata:
        writer.add_metadata(metadata)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestNormalizeUrl:
    def test__normalize_url__adds_https(self) -> None:
        assert normalize_url("  example.com/page ") == "https://example.com/page"

    def test__normalize_url__keeps_http(self) -> None:
        assert normalize_url("http://example.com") == "http://example.com"

    @pytest.mark.parametrize("raw", ["", "   ", "ftp://example.com", "https://", "bad url"])
    def test__normalize_url__rejects(self, raw: str) -> None:
        with pytest.raises(InvalidPreviewUrlError):
            normalize_url(raw)

    @pytest.mark.parametrize(
        "raw",
        ["http://[::1", "https://93.184.216.34:99999/", "https://example.com:port/"],
    )
    def test__normalize_url__rejects_unparseable_host_or_port(self, raw: str) -> None:
        with pytest.raises(InvalidPreviewUrlError, match="Invalid URL"):
            normalize_url(raw)

    async def test__get_link_preview__out_of_range_port_is_invalid(self) -> None:
        """Rejected before any connection is attempted."""
        with respx.mock(assert_all_called=False) as respx_mock:
            with pytest.raises(InvalidPreviewUrlError):
                await get_link_preview("https://93.184.216.34:99999/")
            assert respx_mock.calls.call_count == 0


class TestSSRFGuard:
    @pytest.mark.parametrize("ip", ["10.0.0.1", "127.0.0.1", "169.254.169.254", "::1", "fd00::1"])
    def test__is_private_ip__private(self, ip: str) -> None:
        assert is_private_ip(ip) is True

    def test__is_private_ip__public_and_garbage(self) -> None:
        assert is_private_ip(PUBLIC_IP) is False
        assert is_private_ip("not-an-ip") is True

    def test__validate_url_not_private__blocks_localhost_and_private(self) -> None:
        with pytest.raises(SSRFBlockedError, match="localhost"):
            validate_url_not_private("http://localhost:8000/admin")
        with pytest.raises(SSRFBlockedError, match="192.168.1.1"):
            validate_url_not_private("http://192.168.1.1/")

    def test__validate_url_not_private__public_allowed(self) -> None:
        validate_url_not_private("https://example.com/")

    def test__validate_url_not_private__name_resolving_to_private(
        self, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A public-looking name that resolves internally is still blocked."""
        monkeypatch.setattr(
            url_scraper.socket,
            "getaddrinfo",
            lambda *a, **k: [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.1.2.3", 0))],
        )
        with pytest.raises(SSRFBlockedError):
            validate_url_not_private("https://internal.example.com/")


class TestFetchUrl:
    async def test__fetch_url__html_success(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/page").mock(return_value=_html("<title>Hi</title>"))

        result = await fetch_url("https://example.com/page")

        assert result.error is None
        assert result.content == "<title>Hi</title>"
        assert result.final_url == "https://example.com/page"
        assert result.status_code == 200
        assert result.is_pdf is False

    async def test__fetch_url__follows_redirects(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/old").mock(
            return_value=httpx.Response(301, headers={"location": "/new"}),
        )
        mock_site.get("/new").mock(return_value=_html("<title>New</title>"))

        result = await fetch_url("https://example.com/old")

        assert result.error is None
        assert result.final_url == "https://example.com/new"

    async def test__fetch_url__redirect_to_private_blocked(
        self, mock_site: respx.MockRouter,
    ) -> None:
        """Each redirect hop is re-checked before it is requested."""
        mock_site.get("/sneaky").mock(
            return_value=httpx.Response(302, headers={"location": "http://10.0.0.5/secrets"}),
        )

        result = await fetch_url("https://example.com/sneaky")

        assert result.content is None
        assert "Blocked request" in result.error
        assert result.final_url == "http://10.0.0.5/secrets"

    async def test__fetch_url__redirect_to_invalid_port(
        self, mock_site: respx.MockRouter,
    ) -> None:
        mock_site.get("/moved").mock(
            return_value=httpx.Response(302, headers={"location": "https://example.com:99999/next"}),
        )

        result = await fetch_url("https://example.com/moved")

        assert result.content is None
        assert result.error is not None
        assert result.final_url == "https://example.com:99999/next"

    async def test__fetch_url__invalid_url_from_client(
        self, mock_site: respx.MockRouter,
    ) -> None:
        mock_site.get("/odd").mock(side_effect=httpx.InvalidURL("Invalid port"))

        result = await fetch_url("https://example.com/odd")

        assert result.error == "Invalid URL: Invalid port"
        assert result.content is None

    async def test__fetch_url__too_many_redirects(self, mock_site: respx.MockRouter) -> None:
        route = mock_site.get("/loop").mock(
            return_value=httpx.Response(302, headers={"location": "/loop"}),
        )

        result = await fetch_url("https://example.com/loop")

        assert result.error == "Too many redirects"
        assert route.call_count == MAX_REDIRECTS + 1

    async def test__fetch_url__private_target_never_requested(self) -> None:
        with respx.mock(assert_all_called=False) as respx_mock:
            result = await fetch_url("http://127.0.0.1:6379/")
            assert respx_mock.calls.call_count == 0
        assert "Blocked request" in result.error

    async def test__fetch_url__http_error(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/missing").mock(return_value=httpx.Response(404))

        result = await fetch_url("https://example.com/missing")

        assert result.error == "HTTP 404"
        assert result.status_code == 404

    async def test__fetch_url__timeout(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/slow").mock(side_effect=httpx.ConnectTimeout("timed out"))

        result = await fetch_url("https://example.com/slow")

        assert result.error == "Request timed out"
        assert result.content is None

    async def test__fetch_url__connection_error(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/down").mock(side_effect=httpx.ConnectError("refused"))

        result = await fetch_url("https://example.com/down")

        assert result.error.startswith("Request failed")

    async def test__fetch_url__unsupported_content_type(
        self, mock_site: respx.MockRouter,
    ) -> None:
        mock_site.get("/logo.png").mock(
            return_value=httpx.Response(200, headers={"content-type": "image/png"}, content=b"x"),
        )

        result = await fetch_url("https://example.com/logo.png")

        assert result.content is None
        assert result.error == "Unsupported content type: image/png"

    async def test__fetch_url__pdf(self, mock_site: respx.MockRouter) -> None:
        pdf = _pdf_bytes(title="Paper")
        mock_site.get("/paper.pdf").mock(
            return_value=httpx.Response(
                200, headers={"content-type": "application/pdf"}, content=pdf,
            ),
        )

        result = await fetch_url("https://example.com/paper.pdf")

        assert result.is_pdf is True
        assert result.content == pdf


class TestExtractHtmlMetadata:
    def test__title_tag_and_meta_description(self) -> None:
        html = """
        <html><head>
            <title>  Example Title  </title>
            <meta name="description" content="Plain description">
            <meta property="og:description" content="OG description">
        </head></html>
        """
        metadata = extract_html_metadata(html, "https://example.com/")
        assert metadata.title == "Example Title"
        assert metadata.description == "Plain description"
        assert metadata.image is None

    def test__falls_back_to_open_graph_and_twitter(self) -> None:
        html = """
        <html><head>
            <meta property="og:title" content="OG Title">
            <meta name="twitter:description" content="Tweet-sized">
            <meta name="twitter:image" content="/img/card.png">
        </head></html>
        """
        metadata = extract_html_metadata(html, "https://example.com/posts/1")
        assert metadata.title == "OG Title"
        assert metadata.description == "Tweet-sized"
        assert metadata.image == "https://example.com/img/card.png"

    def test__og_image_preferred_over_icon(self) -> None:
        html = """
        <html><head>
            <link rel="icon" href="/favicon.ico">
            <meta property="og:image" content="https://cdn.example.com/og.png">
        </head></html>
        """
        metadata = extract_html_metadata(html, "https://example.com/")
        assert metadata.image == "https://cdn.example.com/og.png"

    def test__icon_fallback_made_absolute(self) -> None:
        html = '<html><head><link rel="shortcut icon" href="favicon.ico"></head></html>'
        metadata = extract_html_metadata(html, "https://example.com/blog/")
        assert metadata.image == "https://example.com/blog/favicon.ico"

    def test__empty_document(self) -> None:
        metadata = extract_html_metadata("", "https://example.com/")
        assert metadata.title is None
        assert metadata.description is None
        assert metadata.image is None


class TestExtractPdfMetadata:
    def test__reads_title_and_subject(self) -> None:
        metadata = extract_pdf_metadata(_pdf_bytes(title="Annual Report", subject="Numbers"))
        assert metadata.title == "Annual Report"
        assert metadata.description == "Numbers"

    def test__missing_metadata(self) -> None:
        metadata = extract_pdf_metadata(_pdf_bytes())
        assert metadata.title is None
        assert metadata.description is None

    def test__corrupt_pdf(self) -> None:
        metadata = extract_pdf_metadata(b"definitely not a pdf")
        assert metadata.title is None
        assert metadata.description is None


class TestGetLinkPreview:
    async def test__get_link_preview__full(self, mock_site: respx.MockRouter) -> None:
        mock_site.get("/article").mock(return_value=_html(
            '<title>Article</title><meta name="description" content="Body">'
            '<meta property="og:image" content="/hero.jpg">',
        ))

        preview = await get_link_preview("example.com/article")

        assert preview.url == "https://example.com/article"
        assert preview.title == "Article"
        assert preview.description == "Body"
        assert preview.image == "https://example.com/hero.jpg"
        assert preview.error is None

    async def test__get_link_preview__hostname_fallback(
        self, mock_site: respx.MockRouter,
    ) -> None:
        mock_site.get("/untitled").mock(return_value=_html("<p>no head</p>"))

        preview = await get_link_preview("https://example.com/untitled")

        assert preview.title == "example.com"

    async def test__get_link_preview__fetch_error_reported(
        self, mock_site: respx.MockRouter,
    ) -> None:
        mock_site.get("/gone").mock(return_value=httpx.Response(410))

        preview = await get_link_preview("https://example.com/gone")

        assert preview.error == "HTTP 410"
        assert preview.title is None
        assert preview.description is None

    async def test__get_link_preview__invalid_url(self) -> None:
        with pytest.raises(InvalidPreviewUrlError):
            await get_link_preview("not a url")
