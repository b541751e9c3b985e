"""
Notification templates for candidate communications.
"""

from __future__ import annotations

from onboarding.notifications.transport import EmailMessage


class NotificationTemplates:
    """Fixed templates for workflow notifications."""

    OFFER_EXTENDED_SUBJECT = "Congratulations! You have a Job Offer 🎉"

    @staticmethod
    def offer_extended_body(candidate_name: str) -> str:
        """Offer-extended notification body."""
        name = candidate_name.strip() or "Candidate"
        return f"""Dear {name},

You have been selected. Please login to view your offer letter.

Next Steps:
1. Review and accept your offer letter
2. Upload your onboarding documents
3. Complete your personal, bank and education details

Regards,
Team
"""

    @classmethod
    def offer_extended(cls, recipient: str, candidate_name: str) -> EmailMessage:
        return EmailMessage(
            to=recipient,
            subject=cls.OFFER_EXTENDED_SUBJECT,
            body=cls.offer_extended_body(candidate_name),
        )
