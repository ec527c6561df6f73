"""Defaults and classification tables shared by the crawler modules."""

from __future__ import annotations

import re


DEFAULT_MAX_PAGES = 100
DEFAULT_MAX_DEPTH = 5
DEFAULT_CONCURRENCY = 3

DEFAULT_CRAWL_SUBDOMAINS = False
DEFAULT_CHECK_EXTERNAL_LINKS = False
DEFAULT_FILTER_CONTENT_AREA = False
DEFAULT_SAVE_ONLY_BROKEN_LINKS = False

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_RETRIES = 1
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_RATE_LIMIT_SECONDS = 0.2
DEFAULT_MAX_BODY_BYTES = 5 * 1024 * 1024
DEFAULT_RESPECT_ROBOTS = False

DEFAULT_USER_AGENT = "brokenlinks/0.1 (+https://pypi.org/project/brokenlinks/)"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

DEFAULT_SMTP_PORT = 587

JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")

LINK_TEXT_MAX_CHARS = 100
NO_LINK_TEXT = "[no text]"
NO_TITLE = "No title"

ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "blob:")

TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "msclkid",
        "ref",
        "source",
        "mc_cid",
        "mc_eid",
        "_ga",
        "_gl",
        "share",
        "replytocom",
    }
)

RESOURCE_EXTENSIONS = frozenset(
    {
        # documents
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
        ".rtf", ".txt", ".csv",
        # archives
        ".zip", ".rar", ".7z", ".tar", ".gz", ".tgz", ".bz2",
        # audio / video
        ".mp3", ".wav", ".ogg", ".m4a", ".mp4", ".avi", ".mov", ".wmv", ".webm", ".mkv",
        # images
        ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp", ".bmp", ".ico", ".tif", ".tiff",
        # stylesheets / scripts
        ".css", ".js", ".mjs", ".json", ".xml",
        # fonts
        ".woff", ".woff2", ".ttf", ".otf", ".eot",
        # binaries
        ".exe", ".dmg", ".apk", ".iso",
    }
)

# Crawl-enqueue exclusions. Matching URLs can still be checked for liveness.
SKIP_URL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"/page/\d+/?$",
        r"[?&](page|paged|p)=\d+",
        r"/(tag|category|author)/[^/]+/page/\d+",
        r"/feed/?$",
        r"/(rss|atom)(\.xml)?/?$",
        r"/comments/feed",
        r"/wp-admin(/|$)",
        r"/wp-json(/|$)",
        r"/wp-login\.php",
        r"/xmlrpc\.php",
        r"/admin(/|$)",
        r"/api/",
        r"/attachment/",
        r"[?&]attachment_id=",
        r"[?&]print=",
        r"/print/?$",
        r"/share(/|\?|$)",
        r"[?&]share=",
        r"/sharer?(\.php)?",
    )
)

# Archive listings are crawlable but do not consume depth budget.
ARCHIVE_URL_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"/tags?/[^/]+/?$",
        r"/categor(y|ies)/[^/]+/?$",
        r"/author/[^/]+/?$",
        r"^/(19|20)\d{2}(/(0[1-9]|1[0-2])(/\d{2})?)?/?$",
        r"/archives?/?$",
    )
)

# Anchors inside any of these containers are boilerplate when content-area
# filtering is enabled.
CONTENT_BLOCK_SELECTORS: tuple[str, ...] = (
    "nav",
    "header",
    "footer",
    "aside",
    "[role=navigation]",
    "[role=banner]",
    "[role=contentinfo]",
    "[role=complementary]",
    ".nav",
    ".navbar",
    ".navigation",
    ".menu",
    ".header",
    ".footer",
    ".sidebar",
    ".widget",
    ".breadcrumb",
    ".breadcrumbs",
    ".pagination",
    ".pager",
    ".comments",
    "#comments",
    ".comment-list",
    ".share",
    ".sharing",
    ".social-share",
    ".ad",
    ".ads",
    ".advert",
    ".advertisement",
    "#sidebar",
    "#header",
    "#footer",
    "#menu",
)

STATUS_OK = 200
STATUS_REDIRECTION = 300
STATUS_NOT_MODIFIED = 304
STATUS_CLIENT_ERROR = 400
STATUS_SERVER_ERROR = 500

TIMEOUT_SIGNATURES = ("timeout", "timed out")
DNS_FAILURE_SIGNATURES = (
    "enotfound",
    "getaddrinfo",
    "name or service not known",
    "nodename nor servname",
    "nameresolutionerror",
    "failed to resolve",
    "temporary failure in name resolution",
    "econnrefused",
    "connection refused",
)
CONNECTION_RESET_SIGNATURES = (
    "econnreset",
    "connection reset",
    "connectionreseterror",
)

# HTML report row colors.
REPORT_COLOR_OK = "#ffffff"
REPORT_COLOR_BROKEN = "#ffcccc"
REPORT_COLOR_INVALID_FRAGMENT = "#fff3b0"
REPORT_COLOR_UNCRAWLED = "#e8e8e8"
