"""
Lifecycle State Machine for candidate Status and OnboardingStatus.

Rules:
- Status moves one step at a time along APPLIED -> INTERVIEWED -> OFFER_EXTENDED -> ONBOARDED.
- REJECTED is reachable from any non-terminal status; REJECTED and ONBOARDED are terminal.
- OnboardingStatus moves forward along NOT_STARTED -> IN_PROGRESS -> COMPLETED,
  only once Status is OFFER_EXTENDED or later, and reaches COMPLETED only when
  every uploaded document is verified. IN_PROGRESS may be skipped on the way
  to COMPLETED; nothing else skips or moves backwards.
- Requesting the current state is a successful no-op.

Each operation re-reads the record, validates, and writes back conditioned on
the version it read. A lost race surfaces as ConcurrentModification.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from database.db_manager import utcnow
from onboarding.models import (
    ONBOARDING_ELIGIBLE_STATUSES,
    ONBOARDING_LADDER,
    STATUS_LADDER,
    TERMINAL_STATUSES,
    CandidateRecord,
    OnboardingStatus,
    PersonalInfoUpdate,
    Status,
    TransitionOutcome,
)
from onboarding.repository import CandidateRepository
from onboarding.results import Err, ErrorKind, Ok, Result, WorkflowError
from onboarding.verification import DocumentVerificationGate

logger = logging.getLogger(__name__)


def _is_next_step(ladder: Sequence, current, target) -> bool:
    if current not in ladder or target not in ladder:
        return False
    return ladder.index(target) == ladder.index(current) + 1


def status_transition_error(current: Status, target: Status) -> Optional[WorkflowError]:
    """Return the reason current -> target is illegal, or None when it is allowed."""
    if current in TERMINAL_STATUSES:
        return WorkflowError(
            ErrorKind.ILLEGAL_TRANSITION,
            f"Status {current.value} is terminal; cannot move to {target.value}",
        )
    if target == Status.REJECTED or _is_next_step(STATUS_LADDER, current, target):
        return None
    return WorkflowError(
        ErrorKind.ILLEGAL_TRANSITION,
        f"Cannot move status from {current.value} to {target.value}",
    )


def onboarding_transition_error(current: OnboardingStatus, target: OnboardingStatus) -> Optional[WorkflowError]:
    """
    Return the reason current -> target is illegal, or None when it is allowed.

    COMPLETED may be reached directly from NOT_STARTED. The document gate is
    checked before this rule, so a COMPLETED target here is already verified.
    """
    if _is_next_step(ONBOARDING_LADDER, current, target):
        return None
    if current == OnboardingStatus.NOT_STARTED and target == OnboardingStatus.COMPLETED:
        return None
    return WorkflowError(
        ErrorKind.ILLEGAL_TRANSITION,
        f"Cannot move onboarding status from {current.value} to {target.value}",
    )


class LifecycleStateMachine:
    def __init__(
        self,
        candidates: CandidateRepository,
        gate: DocumentVerificationGate,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._candidates = candidates
        self._gate = gate
        self._clock = clock

    # --- reads --------------------------------------------------------------

    def get_candidate(self, candidate_id: int) -> Result[CandidateRecord]:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            return Err(WorkflowError.not_found("Candidate", candidate_id))
        return Ok(candidate)

    def list_candidates(self) -> list[CandidateRecord]:
        return self._candidates.list_all()

    def list_by_status(self, status: Status) -> list[CandidateRecord]:
        return self._candidates.list_by_status(status)

    def count(self) -> int:
        return self._candidates.count()

    # --- transitions ----------------------------------------------------------

    def transition_status(self, candidate_id: int, target: Status) -> Result[TransitionOutcome]:
        current = self._candidates.get(candidate_id)
        if current is None:
            logger.warning("Candidate with ID %s not found for status update", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))

        if target == current.status:
            return Ok(TransitionOutcome(candidate=current, changed=False))

        error = status_transition_error(current.status, target)
        if error is not None:
            logger.info("Rejected status transition for candidate %s: %s", candidate_id, error.message)
            return Err(error)

        entering_offer = target == Status.OFFER_EXTENDED
        updated = current.model_copy(
            update={
                "status": target,
                "version": current.version + 1,
                "offer_episode": current.offer_episode + 1 if entering_offer else current.offer_episode,
                "updated_at": self._clock(),
            }
        )
        if entering_offer:
            saved = self._candidates.save_offer_transition(updated, expected_version=current.version)
        else:
            saved = self._candidates.save(updated, expected_version=current.version)
        if not saved:
            return Err(WorkflowError.concurrent_modification(candidate_id))

        logger.info("Status updated for candidate ID %s: %s -> %s", candidate_id, current.status.value, target.value)
        return Ok(
            TransitionOutcome(
                candidate=updated,
                changed=True,
                notify_offer=entering_offer,
                previous_state=current.status.value,
            )
        )

    def transition_onboarding_status(self, candidate_id: int, target: OnboardingStatus) -> Result[TransitionOutcome]:
        current = self._candidates.get(candidate_id)
        if current is None:
            logger.warning("Candidate with ID %s not found for onboarding status update", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))

        if current.status not in ONBOARDING_ELIGIBLE_STATUSES:
            return Err(
                WorkflowError(
                    ErrorKind.ONBOARDING_NOT_ELIGIBLE,
                    f"Candidate {candidate_id} has status {current.status.value}; onboarding requires an extended offer",
                )
            )

        if target == OnboardingStatus.COMPLETED and not self._gate.is_fully_verified(candidate_id):
            return Err(
                WorkflowError(
                    ErrorKind.DOCUMENTS_NOT_VERIFIED,
                    f"Candidate {candidate_id} has no documents or unverified documents",
                )
            )

        if target == current.onboarding_status:
            return Ok(TransitionOutcome(candidate=current, changed=False))

        error = onboarding_transition_error(current.onboarding_status, target)
        if error is not None:
            return Err(error)

        updated = current.model_copy(
            update={"onboarding_status": target, "version": current.version + 1, "updated_at": self._clock()}
        )
        if not self._candidates.save(updated, expected_version=current.version):
            return Err(WorkflowError.concurrent_modification(candidate_id))

        logger.info(
            "Onboarding status updated for candidate ID %s: %s -> %s",
            candidate_id, current.onboarding_status.value, target.value,
        )
        return Ok(TransitionOutcome(candidate=updated, changed=True, previous_state=current.onboarding_status.value))

    def update_personal_info(self, candidate_id: int, update_request: PersonalInfoUpdate) -> Result[CandidateRecord]:
        current = self._candidates.get(candidate_id)
        if current is None:
            logger.warning("Candidate with ID %s not found for personal info update", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))

        updated = current.model_copy(
            update={
                "first_name": update_request.first_name,
                "last_name": update_request.last_name,
                "email": update_request.email,
                "phone_no": update_request.phone_no,
                "version": current.version + 1,
                "updated_at": self._clock(),
            }
        )
        if not self._candidates.save(updated, expected_version=current.version):
            return Err(WorkflowError.concurrent_modification(candidate_id))

        logger.info("Personal info updated successfully for candidate ID %s", candidate_id)
        return Ok(updated)
