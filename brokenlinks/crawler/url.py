"""URL canonicalization and site-scope helpers."""

from __future__ import annotations

from functools import lru_cache
import posixpath
import re
from urllib.parse import urljoin, urlsplit

import tldextract

from .constants import (
    ALLOWED_SCHEMES,
    SKIP_HREF_PREFIXES,
    TRACKING_QUERY_PARAM_PREFIXES,
    TRACKING_QUERY_PARAMS,
)


# Offline extractor: uses the public suffix snapshot bundled with tldextract.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())


def _strip_www(host: str) -> str:
    host = host.strip().lower().strip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def host_from_url(url: str) -> str:
    """Extract normalized host (lowercase, no `www.`) from URL."""

    try:
        parsed = urlsplit(url)
        host = parsed.hostname or ""
    except ValueError:
        return ""
    return _strip_www(host)


@lru_cache(maxsize=1024)
def registrable_domain(host: str) -> str:
    """Return the registrable root of a host (`blog.example.co.uk` -> `example.co.uk`).

    Hosts without a public suffix (e.g. `localhost`, IPs) are returned unchanged.
    """

    host = _strip_www(host)
    if not host:
        return ""
    extracted = _EXTRACT(host)
    if not extracted.domain or not extracted.suffix:
        return host
    return f"{extracted.domain}.{extracted.suffix}"


def is_same_site(url: str, base_url: str, *, include_subdomains: bool = False) -> bool:
    """Return True when URL lies on the base host (or its registrable root)."""

    host = host_from_url(url)
    base_host = host_from_url(base_url)
    if not host or not base_host:
        return False
    if host == base_host:
        return True
    if not include_subdomains:
        return False
    return registrable_domain(host) == registrable_domain(base_host)


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url) -> str:  # urllib.parse.SplitResult
    host = _strip_www(parsed_url.hostname or "")
    if not host:
        return ""

    # Userinfo is kept verbatim.
    userinfo, at, _ = parsed_url.netloc.rpartition("@")
    if at:
        userinfo += "@"

    try:
        port = parsed_url.port
    except ValueError:
        return ""

    if ":" in host:
        host = f"[{host}]"

    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _normalize_path(path: str) -> str:
    if not path:
        return ""

    collapsed = re.sub(r"/{2,}", "/", path)
    normalized = posixpath.normpath(collapsed)
    if normalized in {".", "/", "//"}:
        return ""
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    return normalized.rstrip("/")


def is_tracking_query_key(key: str) -> bool:
    normalized = key.strip().lower()
    if not normalized:
        return False
    if normalized in TRACKING_QUERY_PARAMS:
        return True
    return any(normalized.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _normalize_query(query: str) -> str:
    if not query:
        return ""

    # Raw `key=value` pieces are kept verbatim so canonicalization stays idempotent.
    pieces = [piece for piece in query.split("&") if piece]
    kept = [piece for piece in pieces if not is_tracking_query_key(piece.split("=", 1)[0])]
    return "&".join(sorted(kept))


def normalize_url(url: str | None, *, keep_fragment: bool = False) -> str | None:
    """Canonicalize an absolute URL into its dedup/lookup identity.

    Returns `None` for empty, unparsable or non-HTTP(S) URLs.
    """

    if not url:
        return None

    raw = url.strip()
    if not raw:
        return None

    try:
        parsed = urlsplit(raw)
    except ValueError:
        return None

    scheme = parsed.scheme.lower()
    if scheme not in ALLOWED_SCHEMES or not parsed.netloc:
        return None

    netloc = _normalize_netloc(parsed)
    if not netloc:
        return None

    path = _normalize_path(parsed.path)
    query = _normalize_query(parsed.query)

    canonical = f"{scheme}://{netloc}{path}"
    if query:
        canonical += f"?{query}"
    if keep_fragment and parsed.fragment:
        canonical += f"#{parsed.fragment}"
    return canonical


def url_fragment(url: str) -> str:
    """Return the fragment identifier of URL (empty string when absent)."""

    try:
        return urlsplit(url).fragment
    except ValueError:
        return ""


def resolve_href(page_url: str, href: str | None) -> str | None:
    """Resolve an anchor href against the page URL.

    Fragment-only and non-navigational hrefs (`javascript:`, `mailto:`, ...)
    yield `None`, as do hrefs that cannot be parsed.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        absolute = urljoin(page_url, candidate)
        parsed = urlsplit(absolute)
    except ValueError:
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        return None
    return absolute


__all__ = [
    "host_from_url",
    "is_same_site",
    "is_tracking_query_key",
    "normalize_url",
    "registrable_domain",
    "resolve_href",
    "url_fragment",
]
