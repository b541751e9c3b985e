"""
Activity Logger Utility.

Writes workflow audit events (transitions, verifications, notification
outcomes, delivery failures needing manual follow-up) to the activity_logs table.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database.db_manager import ActivityLog, SessionLocal

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Centralized activity logger for workflow events."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def log(
        self,
        event_type: str,
        severity: str = "Info",
        user_id: Optional[str] = None,
        message: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Log an activity to the activity_logs table.

        Args:
            event_type: Type of event (e.g., "Transition", "Verification", "Notification")
            severity: Severity level ("Info", "Warning", "Error")
            user_id: Candidate ID associated with the event
            message: Human-readable message
            metadata: Additional JSON data

        Returns:
            True if logged successfully, False otherwise
        """
        db: Session = self._session_factory()
        try:
            log_entry = ActivityLog(
                timestamp=datetime.now(timezone.utc),
                user_id=user_id,
                event_type=event_type,
                severity=severity,
                message=message,
                event_metadata=metadata or {},
            )

            db.add(log_entry)
            db.commit()
            return True

        except SQLAlchemyError as e:
            db.rollback()
            # an audit write must never fail the workflow operation itself
            logger.error(f"Failed to log activity: {e}")
            return False
        finally:
            db.close()

    def log_transition(self, candidate_id: int, field: str, previous: str, current: str) -> bool:
        """Log an applied status or onboarding status transition."""
        return self.log(
            event_type="Transition",
            severity="Info",
            user_id=str(candidate_id),
            message=f"Candidate {candidate_id} {field}: {previous} -> {current}",
            metadata={"field": field, "from": previous, "to": current},
        )

    def log_verification(self, candidate_id: int, document_id: int) -> bool:
        return self.log(
            event_type="Verification",
            severity="Info",
            user_id=str(candidate_id),
            message=f"Document {document_id} verified for candidate {candidate_id}",
            metadata={"document_id": document_id},
        )

    def log_notification(self, candidate_id: int, episode: int, recipient: str) -> bool:
        return self.log(
            event_type="Notification",
            severity="Info",
            user_id=str(candidate_id),
            message=f"Offer notification sent to {recipient}",
            metadata={"episode": episode, "recipient": recipient},
        )

    def log_delivery_failure(
        self,
        candidate_id: int,
        episode: int,
        attempts: int,
        error_message: str,
    ) -> bool:
        """Log an offer notification that gave up and needs manual follow-up."""
        return self.log(
            event_type="Notification",
            severity="Error",
            user_id=str(candidate_id),
            message=f"Offer notification delivery failed after {attempts} attempt(s); manual follow-up required",
            metadata={"episode": episode, "attempts": attempts, "error_message": error_message},
        )

    def log_error(
        self,
        event_type: str,
        error_message: str,
        user_id: Optional[str] = None,
        error_details: Optional[dict] = None,
    ) -> bool:
        """Log an error event."""
        metadata = {
            "error_message": error_message,
            "error_details": error_details or {},
        }

        return self.log(
            event_type=event_type,
            severity="Error",
            user_id=user_id,
            message=f"Error: {error_message}",
            metadata=metadata,
        )

    def get_audit_logs(
        self,
        user_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: int = 100,
    ) -> list[ActivityLog]:
        """Get audit logs with optional filters, newest first."""
        db: Session = self._session_factory()
        try:
            query = db.query(ActivityLog)

            if user_id:
                query = query.filter(ActivityLog.user_id == user_id)
            if event_type:
                query = query.filter(ActivityLog.event_type == event_type)

            logs = query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()
            return logs
        finally:
            db.close()
