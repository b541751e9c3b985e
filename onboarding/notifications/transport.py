"""
Mail transports used by the offer notification dispatcher.

- SendGridTransport: SendGrid v3 HTTP API over requests
- LoggingTransport: development placeholder, logs instead of sending

A transport never raises for delivery problems; it reports them in a
SendResult and says whether retrying can help.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import requests

import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    body: str


@dataclass(frozen=True)
class SendResult:
    success: bool
    transient: bool = False
    detail: str = ""


class EmailTransport(Protocol):
    def send(self, message: EmailMessage, timeout: float) -> SendResult:
        ...


class SendGridTransport:
    """Sends email through the SendGrid v3 mail/send endpoint."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = config.SENDGRID_API_URL,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.session = session or requests.Session()

    def _payload(self, message: EmailMessage) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.sender},
            "subject": message.subject,
            "content": [{"type": "text/plain", "value": message.body}],
        }

    def send(self, message: EmailMessage, timeout: float) -> SendResult:
        try:
            response = self.session.post(
                self.api_url,
                json=self._payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=timeout,
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("SendGrid unreachable for %s: %s", message.to, e)
            return SendResult(success=False, transient=True, detail=f"transport unavailable: {e}")
        except requests.exceptions.RequestException as e:
            logger.error("SendGrid request failed for %s: %s", message.to, e)
            return SendResult(success=False, transient=False, detail=f"request failed: {e}")

        if response.status_code in (200, 202):
            return SendResult(success=True, detail=f"accepted ({response.status_code})")

        detail = f"SendGrid returned {response.status_code}: {response.text[:500]}"
        transient = response.status_code == 429 or response.status_code >= 500
        logger.warning("Email to %s not accepted: %s", message.to, detail)
        return SendResult(success=False, transient=transient, detail=detail)


@dataclass
class LoggingTransport:
    """Placeholder transport: logs the message and reports success."""

    sent: List[EmailMessage] = field(default_factory=list)

    def send(self, message: EmailMessage, timeout: float) -> SendResult:
        logger.info(
            "Email Notification Sent (Placeholder): to=%s subject=%r body=%r",
            message.to, message.subject, message.body[:100],
        )
        self.sent.append(message)
        return SendResult(success=True, detail="logged")


def build_transport() -> EmailTransport:
    """SendGrid when an API key is configured, the logging placeholder otherwise."""
    if config.SENDGRID_API_KEY:
        return SendGridTransport(api_key=config.SENDGRID_API_KEY, sender=config.MAIL_FROM)
    logger.warning("SENDGRID_API_KEY not set; offer notifications will only be logged")
    return LoggingTransport()
