"""
Domain types for the onboarding engine.

Status enums and their canonical orderings, free-text enum parsing, pydantic
snapshots of stored records and the camelCase update payloads the API accepts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from onboarding.results import Err, ErrorKind, Ok, Result, WorkflowError

E = TypeVar("E", bound=Enum)


class Status(str, Enum):
    """Hiring pipeline status of a candidate."""

    APPLIED = "APPLIED"
    INTERVIEWED = "INTERVIEWED"
    OFFER_EXTENDED = "OFFER_EXTENDED"
    REJECTED = "REJECTED"
    ONBOARDED = "ONBOARDED"


class OnboardingStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class NotificationState(str, Enum):
    """Offer notification delivery state (one per offer episode)."""

    NOT_SENT = "NOT_SENT"
    SENDING = "SENDING"
    SENT = "SENT"


# Canonical forward orderings; REJECTED sits outside the status ladder.
STATUS_LADDER = (Status.APPLIED, Status.INTERVIEWED, Status.OFFER_EXTENDED, Status.ONBOARDED)
ONBOARDING_LADDER = (OnboardingStatus.NOT_STARTED, OnboardingStatus.IN_PROGRESS, OnboardingStatus.COMPLETED)
TERMINAL_STATUSES = frozenset({Status.REJECTED, Status.ONBOARDED})
ONBOARDING_ELIGIBLE_STATUSES = frozenset({Status.OFFER_EXTENDED, Status.ONBOARDED})


def _parse_enum(enum_cls: Type[E], text: Optional[str], label: str) -> Result[E]:
    name = (text or "").strip().upper()
    if name in enum_cls.__members__:
        return Ok(enum_cls[name])
    allowed = ", ".join(enum_cls.__members__)
    return Err(WorkflowError(ErrorKind.INVALID_ENUM_VALUE, f"Invalid {label} value '{text}'. Expected one of: {allowed}"))


def parse_status(text: Optional[str]) -> Result[Status]:
    """Match free text case-insensitively against the Status names."""
    return _parse_enum(Status, text, "status")


def parse_onboarding_status(text: Optional[str]) -> Result[OnboardingStatus]:
    """Match free text case-insensitively against the OnboardingStatus names."""
    return _parse_enum(OnboardingStatus, text, "onboarding status")


class CandidateRecord(BaseModel):
    """Snapshot of a candidate row as read from the record store."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone_no: Optional[str] = None
    status: Status = Status.APPLIED
    onboarding_status: OnboardingStatus = OnboardingStatus.NOT_STARTED
    version: int = 1
    offer_episode: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class DocumentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    candidate_id: int
    document_type: str
    file_url: str
    file_verified: bool = False
    uploaded_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_id: int
    episode: int
    state: NotificationState = NotificationState.NOT_SENT
    attempts: int = 0
    recipient: Optional[str] = None
    last_error: Optional[str] = None
    claimed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None


class BankInfoRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_id: int
    bank_name: str
    account_number: str
    ifsc_code: str


class EducationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    candidate_id: int
    degree: str
    institution: str
    passing_year: int


# Update payloads accept the camelCase keys used by the HTTP clients.

class PersonalInfoUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(..., alias="firstName", min_length=1)
    last_name: str = Field(..., alias="lastName", min_length=1)
    email: str = Field(..., min_length=3)
    phone_no: Optional[str] = Field(default=None, alias="phoneNo")


class BankInfoUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bank_name: str = Field(..., alias="bankName", min_length=1)
    account_number: str = Field(..., alias="accountNumber", min_length=1)
    ifsc_code: str = Field(..., alias="ifscCode", min_length=1)


class EducationUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    highest_degree: str = Field(..., alias="highestDegree", min_length=1)
    university: str = Field(..., min_length=1)
    year_of_graduation: int = Field(..., alias="yearOfGraduation", ge=1900, le=2100)


class Ack(BaseModel):
    """Acknowledgement of a delivered (or previously delivered) offer notification."""

    candidate_id: int
    episode: int
    recipient: str
    already_sent: bool = False


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of an applied (or no-op) state machine transition."""

    candidate: CandidateRecord
    changed: bool
    notify_offer: bool = False
    previous_state: Optional[str] = None
