"""
Offer Notification Dispatcher.

Delivers at most one successful "offer extended" email per offer episode.
Per episode the notification row moves NOT_SENT -> SENDING -> SENT, falling
back SENDING -> NOT_SENT when the transport fails. The dispatcher does not
retry by itself; callers retry transient failures until the attempt budget
is spent, after which the failure is reported as permanent. A SENDING claim
older than the transport timeout plus a margin belongs to a sender that
died mid-send; the next dispatch takes it over and the lost attempt counts
against the budget.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

import config
from database.db_manager import utcnow
from onboarding.models import Ack, CandidateRecord, NotificationRecord, NotificationState, Status
from onboarding.notifications.templates import NotificationTemplates
from onboarding.notifications.transport import EmailTransport, SendResult
from onboarding.repository import CandidateRepository, NotificationRepository
from onboarding.results import Err, ErrorKind, Ok, Result, WorkflowError
from utils.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)


class OfferNotificationDispatcher:
    def __init__(
        self,
        candidates: CandidateRepository,
        notifications: NotificationRepository,
        transport: EmailTransport,
        activity_logger: Optional[ActivityLogger] = None,
        timeout: float = config.NOTIFICATION_TIMEOUT_SECONDS,
        max_attempts: int = config.NOTIFICATION_MAX_ATTEMPTS,
        claim_ttl: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._candidates = candidates
        self._notifications = notifications
        self._transport = transport
        self._activity_logger = activity_logger
        self._timeout = timeout
        self._max_attempts = max_attempts
        # a SENDING claim older than this is taken over as abandoned
        self._claim_ttl = claim_ttl if claim_ttl is not None else timeout + config.NOTIFICATION_CLAIM_MARGIN_SECONDS
        self._clock = clock

    def dispatch_offer_notification(self, candidate_id: int) -> Result[Ack]:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            logger.warning("Candidate with ID %s not found for offer notification", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))

        if candidate.offer_episode == 0 or candidate.status == Status.REJECTED:
            return Err(
                WorkflowError(
                    ErrorKind.NO_OFFER_EPISODE,
                    f"Candidate {candidate_id} has no open offer (status {candidate.status.value})",
                )
            )

        episode = candidate.offer_episode
        record = self._notifications.get(candidate_id, episode) or self._notifications.ensure(candidate_id, episode)
        if record.state == NotificationState.SENT:
            return Ok(self._ack(candidate, record, already_sent=True))

        if not self._notifications.claim(
            candidate_id, episode, candidate.email, self._max_attempts, stale_before=self._stale_before()
        ):
            return self._claim_lost(candidate, episode)

        message = NotificationTemplates.offer_extended(candidate.email, candidate.full_name)
        result = self._send(message)

        if result.success:
            if not self._notifications.mark_sent(candidate_id, episode):
                logger.error("Offer notification for candidate %s episode %s was sent but not recorded", candidate_id, episode)
            logger.info("Offer notification sent to %s for candidate %s", candidate.email, candidate_id)
            if self._activity_logger:
                self._activity_logger.log_notification(candidate_id, episode, candidate.email)
            return Ok(Ack(candidate_id=candidate_id, episode=episode, recipient=candidate.email))

        attempts = self._notifications.release(candidate_id, episode, result.detail)
        if result.transient and attempts < self._max_attempts:
            logger.warning(
                "Offer notification for candidate %s failed (attempt %d/%d): %s",
                candidate_id, attempts, self._max_attempts, result.detail,
            )
            return Err(WorkflowError.dispatch_error(f"Offer notification failed: {result.detail}", transient=True))

        return self._delivery_failed(candidate_id, episode, attempts, result.detail)

    def _stale_before(self) -> datetime:
        return self._clock() - timedelta(seconds=self._claim_ttl)

    def _send(self, message) -> SendResult:
        try:
            return self._transport.send(message, timeout=self._timeout)
        except Exception as e:
            # transports report failures in SendResult; anything raised is treated as transient
            logger.exception("Mail transport raised while sending to %s", message.to)
            return SendResult(success=False, transient=True, detail=f"{type(e).__name__}: {e}")

    def _claim_lost(self, candidate: CandidateRecord, episode: int) -> Result[Ack]:
        record = self._notifications.get(candidate.id, episode)
        if record is not None and record.state == NotificationState.SENT:
            return Ok(self._ack(candidate, record, already_sent=True))
        if record is not None and record.state == NotificationState.SENDING:
            return Err(
                WorkflowError.dispatch_error(
                    f"Offer notification for candidate {candidate.id} is already being sent",
                    transient=True,
                )
            )
        attempts = record.attempts if record else self._max_attempts
        last_error = (record.last_error if record else None) or "attempt limit reached"
        return self._delivery_failed(candidate.id, episode, attempts, last_error)

    def _delivery_failed(self, candidate_id: int, episode: int, attempts: int, detail: str) -> Result[Ack]:
        logger.error(
            "Offer notification delivery failed for candidate %s episode %s after %d attempt(s); "
            "manual follow-up required: %s",
            candidate_id, episode, attempts, detail,
        )
        if self._activity_logger:
            self._activity_logger.log_delivery_failure(candidate_id, episode, attempts, detail)
        return Err(
            WorkflowError.dispatch_error(
                f"Offer notification could not be delivered after {attempts} attempt(s): {detail}",
                transient=False,
            )
        )

    @staticmethod
    def _ack(candidate: CandidateRecord, record: NotificationRecord, already_sent: bool) -> Ack:
        return Ack(
            candidate_id=candidate.id,
            episode=record.episode,
            recipient=record.recipient or candidate.email,
            already_sent=already_sent,
        )
