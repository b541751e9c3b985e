"""
Workflow Facade: the single entry point used by the API layer.

Composes the lifecycle state machine, the document verification gate and the
offer notification dispatcher. Free-text enum names are parsed here before
the record store is touched, lost optimistic-concurrency races are retried
with a fresh read, and entering OFFER_EXTENDED triggers the offer
notification exactly once per transition.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

import config
from database.db_manager import SessionLocal
from onboarding.lifecycle import LifecycleStateMachine
from onboarding.models import (
    Ack,
    BankInfoRecord,
    BankInfoUpdate,
    CandidateRecord,
    DocumentRecord,
    EducationRecord,
    EducationUpdate,
    PersonalInfoUpdate,
    Status,
    TransitionOutcome,
    parse_onboarding_status,
    parse_status,
)
from onboarding.notifications.dispatcher import OfferNotificationDispatcher
from onboarding.notifications.transport import EmailTransport, build_transport
from onboarding.repository import CandidateRepository, DocumentRepository, NotificationRepository
from onboarding.results import Err, ErrorKind, Ok, Result, WorkflowError
from onboarding.storage import BlobStore, LocalBlobStore
from onboarding.verification import DocumentVerificationGate
from utils.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusUpdate:
    """Outcome of update_status; notification is set only when an offer was just extended."""

    candidate: CandidateRecord
    changed: bool
    notification: Optional[Result[Ack]] = None


class OnboardingWorkflow:
    def __init__(
        self,
        lifecycle: LifecycleStateMachine,
        gate: DocumentVerificationGate,
        dispatcher: OfferNotificationDispatcher,
        candidates: CandidateRepository,
        activity_logger: ActivityLogger,
        max_retries: int = config.TRANSITION_MAX_RETRIES,
        notification_attempts: int = config.NOTIFICATION_MAX_ATTEMPTS,
        retry_backoff_seconds: float = config.NOTIFICATION_RETRY_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.lifecycle = lifecycle
        self.gate = gate
        self.dispatcher = dispatcher
        self._candidates = candidates
        self._activity_logger = activity_logger
        self._max_retries = max_retries
        self._notification_attempts = notification_attempts
        self._retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    @property
    def activity_logger(self) -> ActivityLogger:
        return self._activity_logger

    # --- reads --------------------------------------------------------------

    def list_candidates(self) -> list[CandidateRecord]:
        candidates = self.lifecycle.list_candidates()
        logger.info("Found %d candidates", len(candidates))
        return candidates

    def list_onboarded(self) -> list[CandidateRecord]:
        candidates = self.lifecycle.list_by_status(Status.ONBOARDED)
        logger.info("Found %d onboarded candidates", len(candidates))
        return candidates

    def count(self) -> int:
        return self.lifecycle.count()

    def get_candidate(self, candidate_id: int) -> Result[CandidateRecord]:
        return self.lifecycle.get_candidate(candidate_id)

    # --- state transitions ----------------------------------------------------

    def update_status(self, candidate_id: int, status_name: str) -> Result[StatusUpdate]:
        parsed = parse_status(status_name)
        if not parsed.ok:
            return parsed
        target = parsed.value

        result = self._with_retries(candidate_id, lambda: self.lifecycle.transition_status(candidate_id, target))
        if not result.ok:
            return result

        outcome: TransitionOutcome = result.value
        if outcome.changed:
            self._activity_logger.log_transition(
                candidate_id, "status", outcome.previous_state, target.value
            )

        notification = None
        if outcome.notify_offer:
            notification = self._dispatch_with_backoff(candidate_id)
            if not notification.ok:
                logger.warning(
                    "Status of candidate %s is OFFER_EXTENDED but the offer notification failed: %s",
                    candidate_id, notification.error.message,
                )
        return Ok(StatusUpdate(candidate=outcome.candidate, changed=outcome.changed, notification=notification))

    def update_onboarding_status(self, candidate_id: int, onboarding_status_name: str) -> Result[CandidateRecord]:
        parsed = parse_onboarding_status(onboarding_status_name)
        if not parsed.ok:
            return parsed
        target = parsed.value

        result = self._with_retries(
            candidate_id, lambda: self.lifecycle.transition_onboarding_status(candidate_id, target)
        )
        if not result.ok:
            return result

        outcome: TransitionOutcome = result.value
        if outcome.changed:
            self._activity_logger.log_transition(
                candidate_id, "onboarding_status", outcome.previous_state, target.value
            )
        return Ok(outcome.candidate)

    def update_personal_info(self, candidate_id: int, update_request: PersonalInfoUpdate) -> Result[CandidateRecord]:
        return self._with_retries(candidate_id, lambda: self.lifecycle.update_personal_info(candidate_id, update_request))

    def update_bank_info(self, candidate_id: int, update_request: BankInfoUpdate) -> Result[BankInfoRecord]:
        if self._candidates.get(candidate_id) is None:
            logger.warning("Candidate with ID %s not found for bank info update", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))
        record = self._candidates.upsert_bank_info(candidate_id, update_request)
        logger.info("Bank info updated successfully for candidate ID %s", candidate_id)
        return Ok(record)

    def update_educational_info(self, candidate_id: int, update_request: EducationUpdate) -> Result[EducationRecord]:
        if self._candidates.get(candidate_id) is None:
            logger.warning("Candidate with ID %s not found for educational info update", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))
        record = self._candidates.upsert_education(candidate_id, update_request)
        logger.info("Educational info updated successfully for candidate ID %s", candidate_id)
        return Ok(record)

    # --- documents --------------------------------------------------------------

    def upload_document(self, candidate_id: int, filename: str, content: bytes) -> Result[DocumentRecord]:
        return self.gate.upload_document(candidate_id, filename, content)

    def list_documents(self, candidate_id: int) -> Result[list[DocumentRecord]]:
        return self.gate.list_documents(candidate_id)

    def verify_document(self, document_id: int) -> Result[DocumentRecord]:
        result = self.gate.verify(document_id)
        if result.ok:
            self._activity_logger.log_verification(result.value.candidate_id, document_id)
        return result

    # --- notifications --------------------------------------------------------

    def send_offer_notification(self, candidate_id: int) -> Result[Ack]:
        return self.dispatcher.dispatch_offer_notification(candidate_id)

    # --- retry policies -------------------------------------------------------

    def _with_retries(self, candidate_id: int, operation: Callable[[], Result]) -> Result:
        """Re-run a read-validate-write cycle while it loses optimistic-concurrency races."""
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            result = operation()
            if result.ok or result.error.kind != ErrorKind.CONCURRENT_MODIFICATION:
                return result
            logger.warning("Concurrent modification of candidate %s (attempt %d/%d)", candidate_id, attempt, attempts)
        return result

    def _dispatch_with_backoff(self, candidate_id: int) -> Result[Ack]:
        delay = self._retry_backoff_seconds
        attempts = max(self._notification_attempts, 1)
        for attempt in range(1, attempts + 1):
            result = self.dispatcher.dispatch_offer_notification(candidate_id)
            if result.ok or not result.error.transient or attempt == attempts:
                return result
            self._sleep(delay)
            delay *= 2
        return result


def build_workflow(
    session_factory: sessionmaker = SessionLocal,
    transport: Optional[EmailTransport] = None,
    blob_store: Optional[BlobStore] = None,
    **options,
) -> OnboardingWorkflow:
    """Wire an OnboardingWorkflow from config defaults; collaborators may be overridden."""
    candidates = CandidateRepository(session_factory)
    documents = DocumentRepository(session_factory)
    notifications = NotificationRepository(session_factory)
    activity_logger = ActivityLogger(session_factory)

    gate = DocumentVerificationGate(documents, candidates, blob_store or LocalBlobStore(config.UPLOAD_DIR))
    lifecycle = LifecycleStateMachine(candidates, gate)
    dispatcher = OfferNotificationDispatcher(
        candidates,
        notifications,
        transport or build_transport(),
        activity_logger=activity_logger,
        max_attempts=options.get("notification_attempts", config.NOTIFICATION_MAX_ATTEMPTS),
    )
    return OnboardingWorkflow(lifecycle, gate, dispatcher, candidates, activity_logger, **options)
