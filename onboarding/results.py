"""
Tagged result values returned by every engine operation.

Callers branch on ``result.ok`` (or ``isinstance(result, Err)``) instead of
catching exceptions:

    result = workflow.update_status(1, "interviewed")
    if not result.ok:
        return result.error.kind
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INVALID_ENUM_VALUE = "InvalidEnumValue"
    ILLEGAL_TRANSITION = "IllegalTransition"
    ONBOARDING_NOT_ELIGIBLE = "OnboardingNotEligible"
    DOCUMENTS_NOT_VERIFIED = "DocumentsNotVerified"
    CONCURRENT_MODIFICATION = "ConcurrentModification"
    DISPATCH_ERROR = "DispatchError"
    NO_OFFER_EPISODE = "NoOfferEpisode"


@dataclass(frozen=True)
class WorkflowError:
    """A failure the caller is expected to handle."""

    kind: ErrorKind
    message: str
    transient: bool = False

    @classmethod
    def not_found(cls, what: str, identifier: object) -> "WorkflowError":
        return cls(ErrorKind.NOT_FOUND, f"{what} not found with ID: {identifier}")

    @classmethod
    def concurrent_modification(cls, candidate_id: int) -> "WorkflowError":
        return cls(
            ErrorKind.CONCURRENT_MODIFICATION,
            f"Candidate {candidate_id} was modified concurrently",
            transient=True,
        )

    @classmethod
    def dispatch_error(cls, message: str, transient: bool) -> "WorkflowError":
        return cls(ErrorKind.DISPATCH_ERROR, message, transient=transient)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: WorkflowError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
