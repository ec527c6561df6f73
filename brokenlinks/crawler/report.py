"""HTML renderings of a resolved crawl report."""

from __future__ import annotations

from html import escape

from .constants import (
    REPORT_COLOR_BROKEN,
    REPORT_COLOR_INVALID_FRAGMENT,
    REPORT_COLOR_OK,
    REPORT_COLOR_UNCRAWLED,
)
from .types import CrawlReport, LinkEdge


_REPORT_STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 20px;
            background: #f5f5f5;
        }
        table {
            width: 100%;
            border-collapse: collapse;
            background: white;
            box-shadow: 0 1px 3px rgba(0,0,0,0.1);
        }
        th, td {
            text-align: left;
            padding: 12px;
            border-bottom: 1px solid #eee;
        }
        th {
            background: #333;
            color: white;
        }
        a {
            color: #0066cc;
            text-decoration: none;
        }
        a:hover {
            text-decoration: underline;
        }"""

_EMAIL_CELL = "padding:8px;border:1px solid #ddd;"


def _link(url: str) -> str:
    quoted = escape(url, quote=True)
    return f'<a href="{quoted}" target="_blank">{escape(url)}</a>'


def describe_edge(edge: LinkEdge) -> tuple[str, str]:
    """Return the (row color, description) pair for one edge."""

    if not edge.crawled:
        return REPORT_COLOR_UNCRAWLED, "Page not crawled"
    if edge.is_broken:
        if edge.error:
            return REPORT_COLOR_BROKEN, f"Error: {edge.error}"
        return REPORT_COLOR_BROKEN, f"Invalid HTTP status ({edge.status})"
    if not edge.fragment_valid:
        return REPORT_COLOR_INVALID_FRAGMENT, "URL fragment not found"
    return REPORT_COLOR_OK, edge.status


def render_html_report(report: CrawlReport, base_url: str, *, broken_only: bool = False) -> str:
    """Render the full link table, one row per (source page, link) edge."""

    rows: list[str] = []
    for page in report.pages:
        for edge in page.edges:
            if broken_only and not edge.is_broken:
                continue
            color, description = describe_edge(edge)
            rows.append(
                f"""
        <tr style="background-color: {color}">
            <td>{_link(page.url)}</td>
            <td>{_link(edge.url)}</td>
            <td>{edge.status_code or ''}</td>
            <td>{escape(description)}</td>
        </tr>"""
            )

    summary = report.summary()
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Broken link report for {escape(base_url)}</title>
    <style>{_REPORT_STYLE}
    </style>
</head>
<body>
    <h1>Broken Link Report</h1>
    <p>Base URL: {_link(base_url)}</p>
    <p>Pages: {summary['pages']} &middot; Links: {summary['links']} &middot;
       Broken: {summary['broken']} &middot; Not crawled: {summary['uncrawled']} &middot;
       Missing fragments: {summary['invalid_fragments']}</p>
    <table>
        <tr>
            <th>From</th>
            <th>To</th>
            <th>HTTP&nbsp;Status</th>
            <th>Description</th>
        </tr>{''.join(rows)}
    </table>
</body>
</html>
"""


def render_email_report(report: CrawlReport, base_url: str) -> str:
    """Render the compact broken-links-only table sent by email."""

    broken = report.broken_edges
    rows = "".join(
        f"""
        <tr>
            <td style="{_EMAIL_CELL}">{escape(edge.source_url)}</td>
            <td style="{_EMAIL_CELL}color:#dc2626;">{escape(edge.url)}</td>
            <td style="{_EMAIL_CELL}">{edge.status_code or 'N/A'}</td>
            <td style="{_EMAIL_CELL}">{escape(edge.error or edge.status)}</td>
        </tr>"""
        for edge in broken
    )
    plural = "" if len(broken) == 1 else "s"

    return f"""<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: Arial, sans-serif; padding: 20px; }}
        h1 {{ color: #1a1a2e; }}
        table {{ border-collapse: collapse; width: 100%; margin-top: 20px; }}
        th {{ background: #1a1a2e; color: white; padding: 12px 8px; text-align: left; }}
        .summary {{ background: #fee2e2; padding: 15px; border-radius: 8px; margin: 20px 0; }}
    </style>
</head>
<body>
    <h1>Broken Link Report</h1>
    <p>Website: {_link(base_url)}</p>
    <div class="summary">
        <strong>Found {len(broken)} broken link{plural}</strong>
    </div>
    <table>
        <tr>
            <th>Source Page</th>
            <th>Broken Link</th>
            <th>HTTP Status</th>
            <th>Error</th>
        </tr>{rows}
    </table>
</body>
</html>
"""


__all__ = ["describe_edge", "render_email_report", "render_html_report"]
