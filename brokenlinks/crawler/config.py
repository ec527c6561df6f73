"""Typed crawler configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .classifier import LinkPolicy
from .constants import (
    DEFAULT_CHECK_EXTERNAL_LINKS,
    DEFAULT_CONCURRENCY,
    DEFAULT_CRAWL_SUBDOMAINS,
    DEFAULT_FILTER_CONTENT_AREA,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    DEFAULT_RATE_LIMIT_SECONDS,
    DEFAULT_RESPECT_ROBOTS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_SAVE_ONLY_BROKEN_LINKS,
    DEFAULT_SMTP_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict, JSONValue
from .url import normalize_url


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    raise ValueError(f"Invalid list for '{key}': {value!r}")


@dataclass(slots=True)
class NotificationConfig:
    """Email destinations and SMTP transport settings."""

    emails: list[str] = field(default_factory=list)
    smtp_host: str | None = None
    smtp_port: int = DEFAULT_SMTP_PORT
    smtp_username: str | None = None
    smtp_password: str | None = field(default=None, repr=False)
    smtp_starttls: bool = True
    from_address: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.emails) and bool(self.smtp_host)

    def to_json(self) -> JSONDict:
        # The password is never written to manifests.
        return {
            "emails": list(self.emails),
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_username": self.smtp_username,
            "smtp_starttls": self.smtp_starttls,
            "from_address": self.from_address,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "NotificationConfig":
        payload = payload or {}
        smtp_port = _as_int(payload.get("smtp_port", DEFAULT_SMTP_PORT), "smtp_port")
        return cls(
            emails=_as_str_list(payload.get("emails"), "emails"),
            smtp_host=None if payload.get("smtp_host") is None else str(payload["smtp_host"]),
            smtp_port=DEFAULT_SMTP_PORT if smtp_port is None else smtp_port,
            smtp_username=(
                None if payload.get("smtp_username") is None else str(payload["smtp_username"])
            ),
            smtp_password=(
                None if payload.get("smtp_password") is None else str(payload["smtp_password"])
            ),
            smtp_starttls=_as_bool(payload.get("smtp_starttls", True), "smtp_starttls"),
            from_address=(
                None if payload.get("from_address") is None else str(payload["from_address"])
            ),
        )


@dataclass(slots=True)
class CrawlConfig:
    """Top-level configuration consumed by pipeline/frontier/fetcher."""

    base_url: str

    max_pages: int = DEFAULT_MAX_PAGES
    max_depth: int = DEFAULT_MAX_DEPTH
    concurrency: int = DEFAULT_CONCURRENCY

    crawl_subdomains: bool = DEFAULT_CRAWL_SUBDOMAINS
    check_external_links: bool = DEFAULT_CHECK_EXTERNAL_LINKS
    filter_content_area: bool = DEFAULT_FILTER_CONTENT_AREA
    save_only_broken_links: bool = DEFAULT_SAVE_ONLY_BROKEN_LINKS

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    respect_robots: bool = DEFAULT_RESPECT_ROBOTS

    notification: NotificationConfig = field(default_factory=NotificationConfig)
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.base_url = (self.base_url or "").strip()
        if normalize_url(self.base_url) is None:
            raise ValueError(f"Invalid base URL: {self.base_url!r}")

        if self.max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if self.max_pages <= 0:
            raise ValueError("max_pages must be > 0")
        if self.concurrency <= 0:
            raise ValueError("concurrency must be > 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be >= 0")
        if self.rate_limit_seconds < 0:
            raise ValueError("rate_limit_seconds must be >= 0")
        if self.max_body_bytes <= 0:
            raise ValueError("max_body_bytes must be > 0")

        if isinstance(self.notification, Mapping):
            self.notification = NotificationConfig.from_dict(self.notification)

    @property
    def normalized_base_url(self) -> str:
        return normalize_url(self.base_url) or self.base_url

    @property
    def link_policy(self) -> LinkPolicy:
        return LinkPolicy(
            check_external_links=self.check_external_links,
            crawl_subdomains=self.crawl_subdomains,
            filter_content_area=self.filter_content_area,
        )

    def headers(self) -> dict[str, str]:
        """Return request headers with the configured user agent."""

        merged: dict[str, str] = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "base_url": self.base_url,
            "max_pages": self.max_pages,
            "max_depth": self.max_depth,
            "concurrency": self.concurrency,
            "crawl_subdomains": self.crawl_subdomains,
            "check_external_links": self.check_external_links,
            "filter_content_area": self.filter_content_area,
            "save_only_broken_links": self.save_only_broken_links,
            "timeout_seconds": self.timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "rate_limit_seconds": self.rate_limit_seconds,
            "max_body_bytes": self.max_body_bytes,
            "user_agent": self.user_agent,
            "default_headers": self.default_headers,
            "respect_robots": self.respect_robots,
            "notification": self.notification.to_json(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CrawlConfig":
        """Build config from a parsed dictionary."""

        if not payload.get("base_url"):
            raise ValueError("Config missing required key: 'base_url'")

        notification_payload = dict(payload.get("notification") or {})
        # Flat `notification_emails` is accepted alongside the nested block.
        if payload.get("notification_emails") and not notification_payload.get("emails"):
            notification_payload["emails"] = payload["notification_emails"]

        return cls(
            base_url=str(payload["base_url"]),
            max_pages=int(payload.get("max_pages", DEFAULT_MAX_PAGES)),
            max_depth=int(payload.get("max_depth", DEFAULT_MAX_DEPTH)),
            concurrency=int(payload.get("concurrency", DEFAULT_CONCURRENCY)),
            crawl_subdomains=_as_bool(
                payload.get("crawl_subdomains", DEFAULT_CRAWL_SUBDOMAINS),
                "crawl_subdomains",
            ),
            check_external_links=_as_bool(
                payload.get("check_external_links", DEFAULT_CHECK_EXTERNAL_LINKS),
                "check_external_links",
            ),
            filter_content_area=_as_bool(
                payload.get("filter_content_area", DEFAULT_FILTER_CONTENT_AREA),
                "filter_content_area",
            ),
            save_only_broken_links=_as_bool(
                payload.get("save_only_broken_links", DEFAULT_SAVE_ONLY_BROKEN_LINKS),
                "save_only_broken_links",
            ),
            timeout_seconds=float(payload.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS)),
            retries=int(payload.get("retries", DEFAULT_RETRIES)),
            retry_backoff_seconds=float(
                payload.get("retry_backoff_seconds", DEFAULT_RETRY_BACKOFF_SECONDS)
            ),
            rate_limit_seconds=float(
                payload.get("rate_limit_seconds", DEFAULT_RATE_LIMIT_SECONDS)
            ),
            max_body_bytes=int(payload.get("max_body_bytes", DEFAULT_MAX_BODY_BYTES)),
            user_agent=str(payload.get("user_agent", DEFAULT_USER_AGENT)),
            default_headers={
                str(k): str(v)
                for k, v in dict(payload.get("default_headers", DEFAULT_HTTP_HEADERS)).items()
            },
            respect_robots=_as_bool(
                payload.get("respect_robots", DEFAULT_RESPECT_ROBOTS),
                "respect_robots",
            ),
            notification=NotificationConfig.from_dict(notification_payload),
            metadata=dict(payload.get("metadata", {})),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> CrawlConfig:
    """Load CrawlConfig from JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlConfig.from_dict(payload)


def save_config(config: CrawlConfig, path: str | Path) -> None:
    """Save CrawlConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlConfig",
    "NotificationConfig",
    "load_config",
    "save_config",
]
