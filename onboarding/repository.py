"""
Record store for the onboarding engine (SQLAlchemy).

Every method opens its own short-lived session, so callers only ever see
committed rows and never hold ORM objects between calls. Writes against a
candidate are conditioned on the version observed at read time.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from database.db_manager import (
    BankInfo,
    Candidate,
    CandidateDocument,
    CandidateEducation,
    OfferNotification,
    SessionLocal,
    utcnow,
)
from onboarding.models import (
    BankInfoRecord,
    BankInfoUpdate,
    CandidateRecord,
    DocumentRecord,
    EducationRecord,
    EducationUpdate,
    NotificationRecord,
    NotificationState,
    Status,
)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""
    db: Session = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class CandidateRepository:
    """Candidates table access: find-by-id, find-by-status, conditional save, count."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def get(self, candidate_id: int) -> Optional[CandidateRecord]:
        with session_scope(self._session_factory) as db:
            row = db.get(Candidate, candidate_id)
            return CandidateRecord.model_validate(row) if row else None

    def list_all(self) -> list[CandidateRecord]:
        with session_scope(self._session_factory) as db:
            rows = db.execute(select(Candidate).order_by(Candidate.id)).scalars().all()
            return [CandidateRecord.model_validate(row) for row in rows]

    def list_by_status(self, status: Status) -> list[CandidateRecord]:
        with session_scope(self._session_factory) as db:
            query = select(Candidate).where(Candidate.status == status.value).order_by(Candidate.id)
            return [CandidateRecord.model_validate(row) for row in db.execute(query).scalars().all()]

    def count(self) -> int:
        with session_scope(self._session_factory) as db:
            return db.execute(select(func.count(Candidate.id))).scalar_one()

    def add(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_no: Optional[str] = None,
    ) -> CandidateRecord:
        """Insert a new candidate at APPLIED / NOT_STARTED."""
        with session_scope(self._session_factory) as db:
            row = Candidate(first_name=first_name, last_name=last_name, email=email, phone_no=phone_no)
            db.add(row)
            db.flush()
            return CandidateRecord.model_validate(row)

    def save(self, record: CandidateRecord, expected_version: int) -> bool:
        """
        Write the record back if the stored version still equals expected_version.

        Returns False when another writer got there first.
        """
        with session_scope(self._session_factory) as db:
            return self._conditional_update(db, record, expected_version)

    def save_offer_transition(self, record: CandidateRecord, expected_version: int) -> bool:
        """Conditional save plus the NOT_SENT notification row for the new offer episode, in one commit."""
        with session_scope(self._session_factory) as db:
            if not self._conditional_update(db, record, expected_version):
                return False
            db.add(
                OfferNotification(
                    candidate_id=record.id,
                    episode=record.offer_episode,
                    state=NotificationState.NOT_SENT.value,
                    recipient=record.email,
                )
            )
            return True

    def upsert_bank_info(self, candidate_id: int, update_request: BankInfoUpdate) -> BankInfoRecord:
        with session_scope(self._session_factory) as db:
            row = db.execute(select(BankInfo).where(BankInfo.candidate_id == candidate_id)).scalar_one_or_none()
            if row is None:
                row = BankInfo(candidate_id=candidate_id)
                db.add(row)
            row.bank_name = update_request.bank_name
            row.account_number = update_request.account_number
            row.ifsc_code = update_request.ifsc_code
            db.flush()
            return BankInfoRecord.model_validate(row)

    def upsert_education(self, candidate_id: int, update_request: EducationUpdate) -> EducationRecord:
        with session_scope(self._session_factory) as db:
            row = db.execute(
                select(CandidateEducation).where(CandidateEducation.candidate_id == candidate_id)
            ).scalar_one_or_none()
            if row is None:
                row = CandidateEducation(candidate_id=candidate_id)
                db.add(row)
            row.degree = update_request.highest_degree
            row.institution = update_request.university
            row.passing_year = update_request.year_of_graduation
            db.flush()
            return EducationRecord.model_validate(row)

    @staticmethod
    def _conditional_update(db: Session, record: CandidateRecord, expected_version: int) -> bool:
        statement = (
            update(Candidate)
            .where(Candidate.id == record.id, Candidate.version == expected_version)
            .values(
                first_name=record.first_name,
                last_name=record.last_name,
                email=record.email,
                phone_no=record.phone_no,
                status=record.status.value,
                onboarding_status=record.onboarding_status.value,
                version=record.version,
                offer_episode=record.offer_episode,
                updated_at=record.updated_at or utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        return db.execute(statement).rowcount == 1


class DocumentRepository:
    """Candidate documents and their verification flags."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def get(self, document_id: int) -> Optional[DocumentRecord]:
        with session_scope(self._session_factory) as db:
            row = db.get(CandidateDocument, document_id)
            return DocumentRecord.model_validate(row) if row else None

    def add(self, candidate_id: int, document_type: str, file_url: str) -> DocumentRecord:
        with session_scope(self._session_factory) as db:
            row = CandidateDocument(
                candidate_id=candidate_id,
                document_type=document_type,
                file_url=file_url,
                file_verified=False,
            )
            db.add(row)
            db.flush()
            return DocumentRecord.model_validate(row)

    def list_for_candidate(self, candidate_id: int) -> list[DocumentRecord]:
        with session_scope(self._session_factory) as db:
            query = select(CandidateDocument).where(CandidateDocument.candidate_id == candidate_id).order_by(CandidateDocument.id)
            return [DocumentRecord.model_validate(row) for row in db.execute(query).scalars().all()]

    def mark_verified(self, document_id: int, verified_at: datetime) -> bool:
        """Set file_verified; there is deliberately no way to clear it."""
        with session_scope(self._session_factory) as db:
            statement = (
                update(CandidateDocument)
                .where(CandidateDocument.id == document_id)
                .values(file_verified=True, updated_at=verified_at)
                .execution_options(synchronize_session=False)
            )
            return db.execute(statement).rowcount == 1

    def verification_counts(self, candidate_id: int) -> tuple[int, int]:
        """(total, verified) for a candidate, read in a single statement."""
        with session_scope(self._session_factory) as db:
            query = select(
                func.count(CandidateDocument.id),
                func.coalesce(func.sum(case((CandidateDocument.file_verified.is_(True), 1), else_=0)), 0),
            ).where(CandidateDocument.candidate_id == candidate_id)
            total, verified = db.execute(query).one()
            return int(total), int(verified)


class NotificationRepository:
    """
    Offer notification rows keyed by (candidate_id, episode).

    claim() is a conditional UPDATE (NOT_SENT -> SENDING), so at most one
    caller can hold the right to call the transport for an episode. An
    abandoned claim is expired first, inside the same transaction.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def get(self, candidate_id: int, episode: int) -> Optional[NotificationRecord]:
        with session_scope(self._session_factory) as db:
            row = self._find(db, candidate_id, episode)
            return NotificationRecord.model_validate(row) if row else None

    def ensure(self, candidate_id: int, episode: int) -> NotificationRecord:
        """Return the row for the episode, inserting a NOT_SENT one if missing."""
        try:
            with session_scope(self._session_factory) as db:
                row = self._find(db, candidate_id, episode)
                if row is None:
                    row = OfferNotification(
                        candidate_id=candidate_id,
                        episode=episode,
                        state=NotificationState.NOT_SENT.value,
                    )
                    db.add(row)
                    db.flush()
                return NotificationRecord.model_validate(row)
        except IntegrityError:
            # a concurrent caller inserted the same episode first
            return self.get(candidate_id, episode)

    def claim(
        self,
        candidate_id: int,
        episode: int,
        recipient: str,
        max_attempts: int,
        stale_before: Optional[datetime] = None,
    ) -> bool:
        """
        Take the right to send for an episode.

        A SENDING claim taken before stale_before is treated as abandoned by a
        crashed sender: it is returned to NOT_SENT with one attempt consumed,
        in the same transaction, before the normal claim is tried.
        """
        with session_scope(self._session_factory) as db:
            now = utcnow()
            if stale_before is not None:
                db.execute(
                    update(OfferNotification)
                    .where(
                        OfferNotification.candidate_id == candidate_id,
                        OfferNotification.episode == episode,
                        OfferNotification.state == NotificationState.SENDING.value,
                        OfferNotification.claimed_at < stale_before,
                    )
                    .values(
                        state=NotificationState.NOT_SENT.value,
                        attempts=OfferNotification.attempts + 1,
                        last_error="send claim expired before the transport reported a result",
                        claimed_at=None,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
            statement = (
                update(OfferNotification)
                .where(
                    OfferNotification.candidate_id == candidate_id,
                    OfferNotification.episode == episode,
                    OfferNotification.state == NotificationState.NOT_SENT.value,
                    OfferNotification.attempts < max_attempts,
                )
                .values(state=NotificationState.SENDING.value, recipient=recipient, claimed_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            return db.execute(statement).rowcount == 1

    def mark_sent(self, candidate_id: int, episode: int) -> bool:
        with session_scope(self._session_factory) as db:
            now = utcnow()
            statement = (
                update(OfferNotification)
                .where(
                    OfferNotification.candidate_id == candidate_id,
                    OfferNotification.episode == episode,
                    OfferNotification.state == NotificationState.SENDING.value,
                )
                .values(
                    state=NotificationState.SENT.value,
                    attempts=OfferNotification.attempts + 1,
                    last_error=None,
                    sent_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            return db.execute(statement).rowcount == 1

    def release(self, candidate_id: int, episode: int, error: str) -> int:
        """SENDING -> NOT_SENT after a failed send; returns the attempts used so far."""
        with session_scope(self._session_factory) as db:
            statement = (
                update(OfferNotification)
                .where(
                    OfferNotification.candidate_id == candidate_id,
                    OfferNotification.episode == episode,
                    OfferNotification.state == NotificationState.SENDING.value,
                )
                .values(
                    state=NotificationState.NOT_SENT.value,
                    attempts=OfferNotification.attempts + 1,
                    last_error=error[:2000],
                    claimed_at=None,
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            db.execute(statement)
            row = self._find(db, candidate_id, episode)
            return row.attempts if row else 0

    @staticmethod
    def _find(db: Session, candidate_id: int, episode: int) -> Optional[OfferNotification]:
        query = select(OfferNotification).where(
            OfferNotification.candidate_id == candidate_id,
            OfferNotification.episode == episode,
        )
        return db.execute(query).scalar_one_or_none()
