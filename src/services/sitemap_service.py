"""Sitemap and robots.txt generation from the bookmark, user and tag tables."""
from dataclasses import dataclass
from datetime import datetime
from urllib.parse import quote

from lxml import etree
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from models.user import User

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

SITEMAP_KINDS = ("pages", "bookmarks", "users", "tags")

# Public pages of the web app: (path, changefreq, priority)
STATIC_PAGES: list[tuple[str, str, str]] = [
    ("/", "daily", "1.0"),
    ("/about", "monthly", "0.5"),
    ("/pricing", "monthly", "0.5"),
    ("/faq", "monthly", "0.4"),
    ("/privacy", "yearly", "0.3"),
    ("/terms", "yearly", "0.3"),
]

ROBOTS_DISALLOW = ("/api/", "/admin/", "/auth/", "/settings/")


@dataclass(frozen=True)
class SitemapEntry:
    """One <url> element."""

    loc: str
    lastmod: datetime | None
    changefreq: str
    priority: str


def _w3c_datetime(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def render_urlset(entries: list[SitemapEntry]) -> bytes:
    """Serialize entries as a <urlset> document."""
    urlset = etree.Element("urlset", nsmap={None: SITEMAP_NS})
    for entry in entries:
        url = etree.SubElement(urlset, "url")
        etree.SubElement(url, "loc").text = entry.loc
        if entry.lastmod is not None:
            etree.SubElement(url, "lastmod").text = _w3c_datetime(entry.lastmod)
        etree.SubElement(url, "changefreq").text = entry.changefreq
        etree.SubElement(url, "priority").text = entry.priority
    return etree.tostring(urlset, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def render_sitemap_index(base_url: str, lastmod: datetime) -> bytes:
    """Serialize the <sitemapindex> pointing at each per-kind sitemap."""
    index = etree.Element("sitemapindex", nsmap={None: SITEMAP_NS})
    for kind in SITEMAP_KINDS:
        sitemap = etree.SubElement(index, "sitemap")
        etree.SubElement(sitemap, "loc").text = f"{base_url}/sitemaps/{kind}.xml"
        etree.SubElement(sitemap, "lastmod").text = _w3c_datetime(lastmod)
    return etree.tostring(index, xml_declaration=True, encoding="UTF-8", pretty_print=True)


def render_robots_txt(base_url: str) -> str:
    """robots.txt allowing the public site and pointing crawlers at the sitemap."""
    lines = ["User-agent: *", "Allow: /"]
    lines += [f"Disallow: {path}" for path in ROBOTS_DISALLOW]
    lines += ["", f"Sitemap: {base_url}/sitemap.xml", ""]
    return "\n".join(lines)


def page_entries(base_url: str) -> list[SitemapEntry]:
    """Static marketing and info pages."""
    return [
        SitemapEntry(loc=f"{base_url}{path}", lastmod=None, changefreq=freq, priority=priority)
        for path, freq, priority in STATIC_PAGES
    ]


async def bookmark_entries(db: AsyncSession, base_url: str) -> list[SitemapEntry]:
    """Public bookmarks, most recently updated first."""
    result = await db.execute(
        select(Bookmark.id, Bookmark.updated_at)
        .where(Bookmark.is_public.is_(True))
        .order_by(Bookmark.updated_at.desc()),
    )
    return [
        SitemapEntry(
            loc=f"{base_url}/bookmark/{bookmark_id}",
            lastmod=updated_at,
            changefreq="weekly",
            priority="0.8",
        )
        for bookmark_id, updated_at in result
    ]


async def user_entries(db: AsyncSession, base_url: str) -> list[SitemapEntry]:
    """Profiles of approved users."""
    result = await db.execute(
        select(User.username, User.updated_at)
        .where(User.is_approved.is_(True))
        .order_by(User.username),
    )
    return [
        SitemapEntry(
            loc=f"{base_url}/users/{quote(username)}",
            lastmod=updated_at,
            changefreq="weekly",
            priority="0.7",
        )
        for username, updated_at in result
    ]


async def tag_entries(db: AsyncSession, base_url: str) -> list[SitemapEntry]:
    """Tags with at least one public bookmark; lastmod is the newest such bookmark."""
    result = await db.execute(
        select(Tag.name, func.max(Bookmark.updated_at))
        .join(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .join(Bookmark, bookmark_tags.c.bookmark_id == Bookmark.id)
        .where(Bookmark.is_public.is_(True))
        .group_by(Tag.id, Tag.name)
        .order_by(Tag.name),
    )
    return [
        SitemapEntry(
            loc=f"{base_url}/tags/{quote(name, safe='')}",
            lastmod=lastmod,
            changefreq="daily",
            priority="0.6",
        )
        for name, lastmod in result
    ]


async def build_sitemap(db: AsyncSession, kind: str, base_url: str) -> bytes:
    """
    Render the sitemap for one kind of page.

    Raises:
        KeyError: If kind is not one of SITEMAP_KINDS.
    """
    if kind == "pages":
        return render_urlset(page_entries(base_url))
    builders = {
        "bookmarks": bookmark_entries,
        "users": user_entries,
        "tags": tag_entries,
    }
    entries = await builders[kind](db, base_url)
    return render_urlset(entries)
