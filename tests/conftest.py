from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List

import pytest
from sqlalchemy.orm import sessionmaker

from database.db_manager import drop_db, init_db, make_engine
from onboarding.lifecycle import LifecycleStateMachine
from onboarding.models import CandidateRecord, Status
from onboarding.notifications.dispatcher import OfferNotificationDispatcher
from onboarding.notifications.transport import EmailMessage, SendResult
from onboarding.repository import CandidateRepository, DocumentRepository, NotificationRepository
from onboarding.storage import InMemoryBlobStore
from onboarding.verification import DocumentVerificationGate
from onboarding.workflow import OnboardingWorkflow
from utils.activity_logger import ActivityLogger


@dataclass
class FakeTransport:
    """Records every message; replies with queued results, then success."""

    results: List[SendResult] = field(default_factory=list)
    sent: List[EmailMessage] = field(default_factory=list)
    timeouts: List[float] = field(default_factory=list)

    def send(self, message: EmailMessage, timeout: float) -> SendResult:
        self.sent.append(message)
        self.timeouts.append(timeout)
        if self.results:
            return self.results.pop(0)
        return SendResult(success=True, detail="ok")


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    drop_db(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def candidates(session_factory) -> CandidateRepository:
    return CandidateRepository(session_factory)


@pytest.fixture
def documents(session_factory) -> DocumentRepository:
    return DocumentRepository(session_factory)


@pytest.fixture
def notifications(session_factory) -> NotificationRepository:
    return NotificationRepository(session_factory)


@pytest.fixture
def activity_logger(session_factory) -> ActivityLogger:
    return ActivityLogger(session_factory)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def gate(documents, candidates, blob_store) -> DocumentVerificationGate:
    return DocumentVerificationGate(documents, candidates, blob_store)


@pytest.fixture
def lifecycle(candidates, gate) -> LifecycleStateMachine:
    return LifecycleStateMachine(candidates, gate)


@pytest.fixture
def dispatcher(candidates, notifications, transport, activity_logger) -> OfferNotificationDispatcher:
    return OfferNotificationDispatcher(
        candidates,
        notifications,
        transport,
        activity_logger=activity_logger,
        timeout=5.0,
        max_attempts=3,
    )


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def workflow(lifecycle, gate, dispatcher, candidates, activity_logger, sleeps) -> OnboardingWorkflow:
    return OnboardingWorkflow(
        lifecycle,
        gate,
        dispatcher,
        candidates,
        activity_logger,
        max_retries=3,
        notification_attempts=3,
        retry_backoff_seconds=0.25,
        sleep=sleeps.append,
    )


@pytest.fixture
def make_candidate(candidates) -> Callable[..., CandidateRecord]:
    def _make(first_name: str = "Asha", last_name: str = "Rao", email: str = "asha.rao@example.com") -> CandidateRecord:
        return candidates.add(first_name=first_name, last_name=last_name, email=email, phone_no="555-0100")

    return _make


@pytest.fixture
def make_offered_candidate(make_candidate, lifecycle) -> Callable[..., CandidateRecord]:
    """Candidate moved through the ladder to OFFER_EXTENDED (without notification)."""

    def _make(**kwargs) -> CandidateRecord:
        candidate = make_candidate(**kwargs)
        lifecycle.transition_status(candidate.id, Status.INTERVIEWED)
        return lifecycle.transition_status(candidate.id, Status.OFFER_EXTENDED).value.candidate

    return _make
