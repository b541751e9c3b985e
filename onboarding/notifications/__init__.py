"""Offer notification templates, mail transports and the dispatcher."""

from onboarding.notifications.dispatcher import OfferNotificationDispatcher
from onboarding.notifications.templates import NotificationTemplates
from onboarding.notifications.transport import (
    EmailMessage,
    EmailTransport,
    LoggingTransport,
    SendGridTransport,
    SendResult,
    build_transport,
)

__all__ = [
    "EmailMessage",
    "EmailTransport",
    "LoggingTransport",
    "NotificationTemplates",
    "OfferNotificationDispatcher",
    "SendGridTransport",
    "SendResult",
    "build_transport",
]
