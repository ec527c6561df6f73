"""Email notification of broken links over SMTP."""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
from typing import Protocol, Sequence

from .config import NotificationConfig
from .report import render_email_report
from .types import CrawlReport

LOGGER = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, report: CrawlReport, base_url: str, emails: Sequence[str]) -> None: ...


def notification_subject(base_url: str) -> str:
    return f"Broken links notification for {base_url}"


def _plain_text_body(report: CrawlReport, base_url: str) -> str:
    broken = report.broken_edges
    lines = [
        f"Broken links report for {base_url}",
        "",
        f"Pages checked: {len(report.pages)}",
        f"Broken links found: {len(broken)}",
        "",
    ]
    for index, edge in enumerate(broken, 1):
        lines.append(f"{index}. {edge.url}")
        lines.append(f"   Status: {edge.status_code or 'N/A'} - {edge.error or edge.status}")
        lines.append(f"   Found on: {edge.source_url}")
    return "\n".join(lines) + "\n"


class EmailNotifier:
    """Send the broken-link summary as a multipart (text + HTML) email."""

    def __init__(self, settings: NotificationConfig) -> None:
        self.settings = settings

    def build_message(
        self,
        report: CrawlReport,
        base_url: str,
        emails: Sequence[str],
    ) -> MIMEMultipart:
        sender = self.settings.from_address or self.settings.smtp_username or "brokenlinks@localhost"

        message = MIMEMultipart("alternative")
        message["From"] = sender
        message["To"] = ", ".join(emails)
        message["Subject"] = notification_subject(base_url)
        message.attach(MIMEText(_plain_text_body(report, base_url), "plain", "utf-8"))
        message.attach(MIMEText(render_email_report(report, base_url), "html", "utf-8"))
        return message

    def send(self, report: CrawlReport, base_url: str, emails: Sequence[str]) -> None:
        """Deliver one message to every address; SMTP errors propagate."""

        if not self.settings.smtp_host:
            raise ValueError("Email notification requires 'smtp_host'")

        message = self.build_message(report, base_url, emails)
        LOGGER.info("Sending email notification to %s", ", ".join(emails))

        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port) as server:
            if self.settings.smtp_starttls:
                server.starttls()
            if self.settings.smtp_username and self.settings.smtp_password:
                server.login(self.settings.smtp_username, self.settings.smtp_password)
            server.sendmail(message["From"], list(emails), message.as_string())

        LOGGER.info("Notification sent successfully")


def notify_if_needed(
    notifier: Notifier | None,
    report: CrawlReport,
    base_url: str,
    emails: Sequence[str],
) -> bool:
    """Send a notification only when there are both broken links and recipients."""

    if notifier is None or not emails:
        return False
    if not report.broken_edges:
        LOGGER.info("No broken links found; skipping notification")
        return False

    notifier.send(report, base_url, emails)
    return True


__all__ = [
    "EmailNotifier",
    "Notifier",
    "notification_subject",
    "notify_if_needed",
]
