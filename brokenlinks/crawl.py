"""CLI entrypoint for broken-link crawls."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from brokenlinks.crawler import CrawlConfig, Pipeline, load_config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a website and report broken links.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config.",
    )
    parser.add_argument(
        "--base_url",
        type=str,
        default=None,
        help="Website to check. Overrides the config base_url if provided.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("brokenlinks_output"),
        help="Root output directory for reports/datasets/manifests/logs.",
    )

    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument("--concurrency", type=int, default=None)

    parser.add_argument(
        "--crawl_subdomains",
        action="store_true",
        help="Treat subdomains of the base site's registrable domain as internal.",
    )
    parser.add_argument(
        "--check_external_links",
        action="store_true",
        help="Also fetch external links to verify they resolve.",
    )
    parser.add_argument(
        "--filter_content_area",
        action="store_true",
        help="Ignore links inside navigation, header, footer and sidebar blocks.",
    )
    parser.add_argument(
        "--save_only_broken_links",
        action="store_true",
        help="Write only broken pages to the dataset, as compact rows.",
    )
    parser.add_argument(
        "--notify",
        action="append",
        default=[],
        metavar="EMAIL",
        help="Email address to notify when broken links are found (repeatable).",
    )

    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--retries", type=int, default=None)
    parser.add_argument("--retry_backoff_seconds", type=float, default=None)
    parser.add_argument("--rate_limit_seconds", type=float, default=None)

    parser.add_argument("--user_agent", type=str, default=None)
    parser.add_argument(
        "--respect_robots",
        dest="respect_robots",
        action="store_true",
        default=None,
        help="Respect robots.txt (default comes from config).",
    )
    parser.add_argument(
        "--no_respect_robots",
        dest="respect_robots",
        action="store_false",
        help="Ignore robots.txt.",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        config = load_config(args.config)
        payload = config.to_dict()
        # Secrets are not part of to_dict(); carry them over explicitly.
        payload["notification"]["smtp_password"] = config.notification.smtp_password
    else:
        payload = {}

    if args.base_url:
        payload["base_url"] = args.base_url

    if not payload.get("base_url"):
        raise ValueError("No base URL provided. Use --config or --base_url.")

    if args.max_pages is not None:
        payload["max_pages"] = args.max_pages
    if args.max_depth is not None:
        payload["max_depth"] = args.max_depth
    if args.concurrency is not None:
        payload["concurrency"] = args.concurrency

    for flag in (
        "crawl_subdomains",
        "check_external_links",
        "filter_content_area",
        "save_only_broken_links",
    ):
        if getattr(args, flag):
            payload[flag] = True

    if args.notify:
        notification = dict(payload.get("notification") or {})
        notification["emails"] = list(args.notify)
        payload["notification"] = notification

    if args.timeout_seconds is not None:
        payload["timeout_seconds"] = args.timeout_seconds
    if args.retries is not None:
        payload["retries"] = args.retries
    if args.retry_backoff_seconds is not None:
        payload["retry_backoff_seconds"] = args.retry_backoff_seconds
    if args.rate_limit_seconds is not None:
        payload["rate_limit_seconds"] = args.rate_limit_seconds

    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent
    if args.respect_robots is not None:
        payload["respect_robots"] = args.respect_robots

    return CrawlConfig.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG; keep crawler logs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(result: dict[str, Any], *, print_stats_json: bool) -> None:
    paths = result.get("paths", {})
    stats = result.get("stats", {})
    report = stats.get("report", {})

    print("\n=== Crawl Complete ===")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"report: {paths.get('report_html')}")
    print(f"results: {paths.get('report_json')}")
    print(f"broken_links: {paths.get('broken_links')}")
    print(f"dataset: {paths.get('dataset')}")
    print(f"errors: {paths.get('errors')}")
    print(f"stats: {paths.get('crawl_stats')}")

    print("\n--- Report ---")
    for key in ["pages", "links", "broken", "uncrawled", "invalid_fragments"]:
        if key in report:
            print(f"{key}: {report[key]}")
    for severity, count in sorted(report.get("broken_by_severity", {}).items()):
        print(f"broken[{severity}]: {count}")

    print("\n--- Core Stats ---")
    for key in [
        "frontier_enqueued",
        "frontier_skipped_visited",
        "frontier_skipped_depth",
        "frontier_skipped_budget",
        "fetched_ok",
        "fetched_error",
        "pages_extracted",
        "extraction_errors",
        "links_discovered",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        config = build_config(args)
    except Exception as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    logging.info(
        "Starting crawl: base_url=%s, output_dir=%s, max_pages=%d, max_depth=%d",
        config.base_url,
        args.output_dir,
        config.max_pages,
        config.max_depth,
    )

    try:
        pipeline = Pipeline(config, output_dir=args.output_dir)
        result = pipeline.run()
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1

    print_summary(result, print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
