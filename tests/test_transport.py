from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from onboarding.notifications.templates import NotificationTemplates
from onboarding.notifications.transport import EmailMessage, LoggingTransport, SendGridTransport


@dataclass
class FakeResponse:
    status_code: int
    text: str = ""


@dataclass
class FakeSession:
    response: Optional[FakeResponse] = None
    error: Optional[Exception] = None
    calls: List[dict[str, Any]] = field(default_factory=list)

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


MESSAGE = EmailMessage(to="asha.rao@example.com", subject="Hello", body="Body")


def _transport(session: FakeSession) -> SendGridTransport:
    return SendGridTransport(api_key="SG.test", sender="careers@example.com", api_url="https://mail.test/send", session=session)


def test_accepted_request_succeeds() -> None:
    session = FakeSession(response=FakeResponse(202))

    result = _transport(session).send(MESSAGE, timeout=7.5)

    assert result.success is True
    call = session.calls[0]
    assert call["url"] == "https://mail.test/send"
    assert call["timeout"] == 7.5
    assert call["headers"]["Authorization"] == "Bearer SG.test"
    assert call["json"]["personalizations"][0]["to"] == [{"email": "asha.rao@example.com"}]
    assert call["json"]["from"] == {"email": "careers@example.com"}


def test_timeout_is_transient() -> None:
    session = FakeSession(error=requests.exceptions.Timeout("read timed out"))

    result = _transport(session).send(MESSAGE, timeout=1)

    assert (result.success, result.transient) == (False, True)


def test_connection_error_is_transient() -> None:
    session = FakeSession(error=requests.exceptions.ConnectionError("refused"))

    assert _transport(session).send(MESSAGE, timeout=1).transient is True


def test_server_error_and_throttling_are_transient() -> None:
    for status in (429, 500, 503):
        result = _transport(FakeSession(response=FakeResponse(status, "busy"))).send(MESSAGE, timeout=1)
        assert (result.success, result.transient) == (False, True)


def test_client_error_is_permanent() -> None:
    result = _transport(FakeSession(response=FakeResponse(400, "invalid email"))).send(MESSAGE, timeout=1)

    assert (result.success, result.transient) == (False, False)
    assert "400" in result.detail


def test_logging_transport_records_messages() -> None:
    transport = LoggingTransport()

    assert transport.send(MESSAGE, timeout=1).success is True
    assert transport.sent == [MESSAGE]


def test_offer_template() -> None:
    message = NotificationTemplates.offer_extended("asha.rao@example.com", "Asha Rao")

    assert message.to == "asha.rao@example.com"
    assert message.subject == "Congratulations! You have a Job Offer 🎉"
    assert message.body.startswith("Dear Asha Rao,")
    assert "You have been selected. Please login to view your offer letter." in message.body
    assert message.body.rstrip().endswith("Regards,\nTeam")


def test_offer_template_without_name() -> None:
    assert NotificationTemplates.offer_extended_body("  ").startswith("Dear Candidate,")
