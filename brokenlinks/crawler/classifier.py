"""Per-page link extraction and classification.

Everything here is pure and runs inside a single worker: parse the document,
collect addressable fragments, and turn anchors into `LinkReference`s split
into crawl and check candidates.
"""

from __future__ import annotations

from dataclasses import dataclass
import posixpath
from typing import Callable
from urllib.parse import urldefrag, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from .constants import (
    ARCHIVE_URL_PATTERNS,
    CONTENT_BLOCK_SELECTORS,
    LINK_TEXT_MAX_CHARS,
    NO_LINK_TEXT,
    NO_TITLE,
    RESOURCE_EXTENSIONS,
    SKIP_URL_PATTERNS,
)
from .types import LinkReference, LinkType, PageLinks
from .url import host_from_url, is_same_site, normalize_url, resolve_href, url_fragment


@dataclass(frozen=True, slots=True)
class LinkPolicy:
    """Crawl-wide switches that shape link extraction."""

    check_external_links: bool = False
    crawl_subdomains: bool = False
    filter_content_area: bool = False


def parse_document(body: str | bytes) -> BeautifulSoup:
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    return BeautifulSoup(body, "lxml")


def extract_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(" ", strip=True)
    heading = soup.find("h1")
    if heading:
        text = heading.get_text(" ", strip=True)
        if text:
            return text
    return NO_TITLE


def extract_fragment_ids(soup: BeautifulSoup) -> frozenset[str]:
    """Collect every identifier a `#fragment` can address: ids and `<a name>`."""

    root = soup.body or soup
    anchors: set[str] = set()
    for element in root.find_all("a", attrs={"name": True}):
        name = element.get("name")
        if name:
            anchors.add(str(name))
    for element in root.find_all(attrs={"id": True}):
        element_id = element.get("id")
        if element_id:
            anchors.add(str(element_id))
    return frozenset(anchors)


def is_resource_url(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    extension = posixpath.splitext(path)[1].lower()
    return extension in RESOURCE_EXTENSIONS


def is_skip_url(url: str) -> bool:
    """Return True for low-value URLs that are never crawled for links."""

    return any(pattern.search(url) for pattern in SKIP_URL_PATTERNS)


def is_archive_url(url: str) -> bool:
    """Return True for tag/category/author/date listings."""

    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    return any(pattern.search(path) for pattern in ARCHIVE_URL_PATTERNS)


def classify_link_type(url: str, base_url: str, *, include_subdomains: bool = False) -> LinkType:
    """Derive link type with precedence resource > external > internal.

    Accepts raw, un-normalized URLs; anything without a host is `unknown`.
    """

    if is_resource_url(url):
        return LinkType.RESOURCE
    if not host_from_url(url):
        return LinkType.UNKNOWN
    if is_same_site(url, base_url, include_subdomains=include_subdomains):
        return LinkType.INTERNAL
    return LinkType.EXTERNAL


def content_area_filter(soup: BeautifulSoup) -> Callable[[Tag], bool]:
    """Build a predicate telling whether an anchor sits outside boilerplate blocks."""

    blocked: set[int] = set()
    for selector in CONTENT_BLOCK_SELECTORS:
        for container in soup.select(selector):
            for anchor in container.find_all("a"):
                blocked.add(id(anchor))

    def is_in_content_area(anchor: Tag) -> bool:
        return id(anchor) not in blocked

    return is_in_content_area


def _link_text(anchor: Tag) -> tuple[str, bool]:
    image = anchor.find("img")
    text = anchor.get_text(" ", strip=True)
    if not text and image is not None:
        text = str(image.get("alt") or "").strip()
    if not text:
        text = NO_LINK_TEXT
    return text[:LINK_TEXT_MAX_CHARS], image is not None


def _document_base(soup: BeautifulSoup, page_url: str) -> str:
    base_tag = soup.find("base", href=True)
    if base_tag is None:
        return page_url
    return resolve_href(page_url, str(base_tag["href"])) or page_url


def extract_links(
    soup: BeautifulSoup,
    *,
    page_url: str,
    base_url: str,
    policy: LinkPolicy | None = None,
) -> PageLinks:
    """Extract outbound links of one page in document order."""

    policy = policy or LinkPolicy()
    resolve_base = _document_base(soup, page_url)
    in_content = content_area_filter(soup) if policy.filter_content_area else None

    result = PageLinks()
    seen_targets: set[str] = set()
    seen_crawl: set[str] = set()
    seen_check: set[str] = set()

    for anchor in soup.find_all("a", href=True):
        if in_content is not None and not in_content(anchor):
            continue

        href = str(anchor.get("href"))
        absolute = resolve_href(resolve_base, href)
        if absolute is None:
            continue

        normalized = normalize_url(absolute)
        target_key = normalize_url(absolute, keep_fragment=True)
        if normalized is None or target_key is None:
            continue
        if target_key in seen_targets:
            continue

        link_type = classify_link_type(
            normalized,
            base_url,
            include_subdomains=policy.crawl_subdomains,
        )
        if link_type == LinkType.EXTERNAL and not policy.check_external_links:
            continue

        seen_targets.add(target_key)
        text, is_image = _link_text(anchor)
        result.links.append(
            LinkReference(
                href=href,
                url=absolute,
                normalized_url=normalized,
                text=text,
                link_type=link_type,
                is_image=is_image,
                fragment=url_fragment(absolute),
            )
        )

        fetch_url = urldefrag(absolute).url
        if normalized not in seen_check:
            seen_check.add(normalized)
            result.check_candidates.append(fetch_url)

        if (
            link_type == LinkType.INTERNAL
            and normalized not in seen_crawl
            and not is_skip_url(normalized)
        ):
            seen_crawl.add(normalized)
            result.crawl_candidates.append(fetch_url)

    return result


__all__ = [
    "LinkPolicy",
    "classify_link_type",
    "content_area_filter",
    "extract_fragment_ids",
    "extract_links",
    "extract_title",
    "is_archive_url",
    "is_resource_url",
    "is_skip_url",
    "parse_document",
]
