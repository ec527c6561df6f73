"""Tests for brokenlinks.crawler.notification."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from brokenlinks.crawler.config import NotificationConfig
from brokenlinks.crawler.notification import EmailNotifier, notification_subject, notify_if_needed
from brokenlinks.crawler.types import CrawlReport, LinkEdge, LinkType, ResultPage


def _report(broken: bool) -> CrawlReport:
    edge = LinkEdge(
        source_url="https://example.com",
        url="https://example.com/dead",
        normalized_url="https://example.com/dead",
        text="dead",
        link_type=LinkType.INTERNAL,
        status_code=404 if broken else 200,
        error=None,
        fragment="",
        fragment_valid=True,
        crawled=True,
        status="Not Found" if broken else "OK",
        is_broken=broken,
    )
    return CrawlReport(base_url="https://example.com", pages=[ResultPage("https://example.com", "Home", [edge])])


def _settings(**overrides) -> NotificationConfig:
    params = dict(
        emails=["ops@example.com"],
        smtp_host="smtp.example.com",
        smtp_port=2525,
        smtp_username="bot",
        smtp_password="secret",
        from_address="bot@example.com",
    )
    params.update(overrides)
    return NotificationConfig(**params)


def test_subject():
    assert notification_subject("https://example.com/") == "Broken links notification for https://example.com/"


def test_send_uses_smtp():
    with patch("brokenlinks.crawler.notification.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server

        EmailNotifier(_settings()).send(_report(True), "https://example.com/", ["ops@example.com", "dev@example.com"])

    smtp_cls.assert_called_once_with("smtp.example.com", 2525)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("bot", "secret")
    sender, recipients, payload = server.sendmail.call_args.args
    assert sender == "bot@example.com"
    assert recipients == ["ops@example.com", "dev@example.com"]
    assert "Broken links notification for https://example.com/" in payload


def test_send_without_tls_or_login():
    with patch("brokenlinks.crawler.notification.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        smtp_cls.return_value.__enter__.return_value = server

        EmailNotifier(_settings(smtp_starttls=False, smtp_username=None, smtp_password=None)).send(
            _report(True), "https://example.com/", ["ops@example.com"]
        )

    server.starttls.assert_not_called()
    server.login.assert_not_called()
    server.sendmail.assert_called_once()


def test_send_requires_host():
    with pytest.raises(ValueError):
        EmailNotifier(_settings(smtp_host=None)).send(_report(True), "https://example.com/", ["a@b.c"])


def test_message_has_text_and_html_parts():
    message = EmailNotifier(_settings()).build_message(_report(True), "https://example.com/", ["a@b.c"])
    subtypes = [part.get_content_subtype() for part in message.get_payload()]
    assert subtypes == ["plain", "html"]


class TestNotifyIfNeeded:
    def test_sends_when_broken_and_emails(self):
        notifier = MagicMock()
        assert notify_if_needed(notifier, _report(True), "https://example.com/", ["a@b.c"])
        notifier.send.assert_called_once()

    def test_skips_without_broken_links(self):
        notifier = MagicMock()
        assert not notify_if_needed(notifier, _report(False), "https://example.com/", ["a@b.c"])
        notifier.send.assert_not_called()

    def test_skips_without_emails(self):
        notifier = MagicMock()
        assert not notify_if_needed(notifier, _report(True), "https://example.com/", [])
        notifier.send.assert_not_called()

    def test_skips_without_notifier(self):
        assert not notify_if_needed(None, _report(True), "https://example.com/", ["a@b.c"])
