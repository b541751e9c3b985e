"""
Tests for the FastAPI layer: routing, payload shapes and error-to-HTTP mapping.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_workflow, http_status_for
from onboarding.notifications.transport import SendResult
from onboarding.results import ErrorKind, WorkflowError


@pytest.fixture
def client(workflow):
    app.dependency_overrides[get_workflow] = lambda: workflow
    yield TestClient(app)
    app.dependency_overrides.clear()


def _offer(client: TestClient, candidate_id: int):
    client.post(f"/api/candidates/{candidate_id}/status", json={"status": "INTERVIEWED"})
    return client.post(f"/api/candidates/{candidate_id}/status", json={"status": "OFFER_EXTENDED"})


def test_root(client) -> None:
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == "Candidate Onboarding API"


def test_list_and_count(client, make_candidate) -> None:
    make_candidate()
    make_candidate(first_name="Daniel", last_name="Okafor", email="daniel@example.com")

    assert client.get("/api/candidates/count").json() == 2
    names = [c["first_name"] for c in client.get("/api/candidates/all").json()]
    assert names == ["Asha", "Daniel"]
    assert client.get("/api/candidates/onboarded").json() == []


def test_status_update_sends_offer(client, transport, make_candidate) -> None:
    candidate = make_candidate()

    response = _offer(client, candidate.id)

    assert response.status_code == 200
    body = response.json()
    assert body["candidate"]["status"] == "OFFER_EXTENDED"
    assert body["notification_sent"] is True
    assert len(transport.sent) == 1


def test_status_update_reports_failed_notification(client, transport, make_candidate) -> None:
    candidate = make_candidate()
    client.post(f"/api/candidates/{candidate.id}/status", json={"status": "INTERVIEWED"})
    transport.results = [SendResult(success=False, transient=False, detail="rejected")]

    response = client.post(f"/api/candidates/{candidate.id}/status", json={"status": "OFFER_EXTENDED"})

    assert response.status_code == 200
    body = response.json()
    assert body["candidate"]["status"] == "OFFER_EXTENDED"
    assert body["notification_sent"] is False
    assert body["notification_error"]


@pytest.mark.parametrize(
    "candidate_id, status, code, kind",
    [
        (99, "INTERVIEWED", 404, "NotFound"),
        (None, "bogus", 400, "InvalidEnumValue"),
        (None, "ONBOARDED", 400, "IllegalTransition"),
    ],
)
def test_status_update_errors(client, make_candidate, candidate_id, status, code, kind) -> None:
    target = candidate_id or make_candidate().id

    response = client.post(f"/api/candidates/{target}/status", json={"status": status})

    assert response.status_code == code
    assert response.json()["detail"]["error"] == kind


def test_onboarding_flow(client, make_candidate) -> None:
    candidate = make_candidate()

    not_eligible = client.put(f"/api/candidates/{candidate.id}/onboard-status", json={"onboardingstatus": "IN_PROGRESS"})
    assert not_eligible.status_code == 400
    assert not_eligible.json()["detail"]["error"] == "OnboardingNotEligible"

    _offer(client, candidate.id)
    assert client.put(
        f"/api/candidates/{candidate.id}/onboard-status", json={"onboardingstatus": "in_progress"}
    ).status_code == 200

    blocked = client.put(f"/api/candidates/{candidate.id}/onboard-status", json={"onboardingstatus": "COMPLETED"})
    assert blocked.json()["detail"]["error"] == "DocumentsNotVerified"

    uploaded = client.post(
        f"/api/candidates/{candidate.id}/upload-document",
        files={"file": ("passport.pdf", b"%PDF-1.7", "application/pdf")},
    )
    assert uploaded.status_code == 200
    document = uploaded.json()["document"]
    assert document["file_verified"] is False

    verified = client.put(f"/api/candidates/{document['id']}/verify-document")
    assert verified.json()["document"]["file_verified"] is True

    completed = client.put(f"/api/candidates/{candidate.id}/onboard-status", json={"onboardingstatus": "COMPLETED"})
    assert completed.status_code == 200
    assert completed.json()["candidate"]["onboarding_status"] == "COMPLETED"

    documents = client.get(f"/api/candidates/{candidate.id}/documents").json()
    assert [d["document_type"] for d in documents] == ["passport.pdf"]


def test_verify_unknown_document(client) -> None:
    response = client.put("/api/candidates/777/verify-document")

    assert response.status_code == 404


def test_info_updates(client, make_candidate) -> None:
    candidate = make_candidate()

    personal = client.put(
        f"/api/candidates/{candidate.id}/personal-info",
        json={"firstName": "Asha", "lastName": "Menon", "email": "asha.menon@example.com", "phoneNo": "555-0199"},
    )
    bank = client.put(
        f"/api/candidates/{candidate.id}/bank-info",
        json={"bankName": "State Bank", "accountNumber": "001122", "ifscCode": "SBIN0000001"},
    )
    education = client.put(
        f"/api/candidates/{candidate.id}/educational-info",
        json={"highestDegree": "B.Tech", "university": "IIT Madras", "yearOfGraduation": 2021},
    )

    assert personal.json()["candidate"]["last_name"] == "Menon"
    assert bank.json()["ifsc_code"] == "SBIN0000001"
    assert education.json()["passing_year"] == 2021

    missing = client.put(
        "/api/candidates/4040/bank-info",
        json={"bankName": "State Bank", "accountNumber": "001122", "ifscCode": "SBIN0000001"},
    )
    assert missing.status_code == 404


def test_send_offer_notification(client, transport, make_candidate) -> None:
    candidate = make_candidate()

    no_offer = client.post(f"/api/candidates/send/{candidate.id}")
    assert no_offer.status_code == 400
    assert no_offer.json()["detail"]["error"] == "NoOfferEpisode"

    _offer(client, candidate.id)
    resent = client.post(f"/api/candidates/send/{candidate.id}")

    assert resent.status_code == 200
    assert resent.json()["already_sent"] is True
    assert len(transport.sent) == 1


def test_dispatch_errors_map_to_gateway_codes() -> None:
    assert http_status_for(WorkflowError.dispatch_error("down", transient=True)) == 503
    assert http_status_for(WorkflowError.dispatch_error("bounced", transient=False)) == 502
    assert http_status_for(WorkflowError.concurrent_modification(1)) == 409
    assert http_status_for(WorkflowError(ErrorKind.NOT_FOUND, "x")) == 404


def test_unhandled_error_is_audited_in_workflow_store(workflow, activity_logger, monkeypatch) -> None:
    def broken_count() -> int:
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(workflow, "count", broken_count)
    app.dependency_overrides[get_workflow] = lambda: workflow
    try:
        response = TestClient(app, raise_server_exceptions=False).get("/api/candidates/count")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["error"] == "InternalError"
    logs = activity_logger.get_audit_logs(event_type="API_Error")
    assert len(logs) == 1
    assert logs[0].event_metadata["error_message"] == "database unavailable"
    assert logs[0].event_metadata["error_details"] == {"path": "/api/candidates/count"}
