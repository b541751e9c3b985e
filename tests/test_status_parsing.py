"""
Tests for free-text enum parsing.

Verifies:
- Case-insensitive matching against canonical names
- Unknown or empty text yields InvalidEnumValue instead of raising
"""

from __future__ import annotations

import pytest

from onboarding.models import OnboardingStatus, Status, parse_onboarding_status, parse_status
from onboarding.results import Err, ErrorKind, Ok


@pytest.mark.parametrize(
    "text, expected",
    [
        ("APPLIED", Status.APPLIED),
        ("interviewed", Status.INTERVIEWED),
        ("Offer_Extended", Status.OFFER_EXTENDED),
        ("  rejected ", Status.REJECTED),
        ("onboarded", Status.ONBOARDED),
    ],
)
def test_parse_status_is_case_insensitive(text: str, expected: Status) -> None:
    assert parse_status(text) == Ok(expected)


@pytest.mark.parametrize("text", ["bogus", "", None, "OFFER EXTENDED", "hired"])
def test_parse_status_rejects_unknown_names(text) -> None:
    result = parse_status(text)
    assert isinstance(result, Err)
    assert result.error.kind == ErrorKind.INVALID_ENUM_VALUE
    assert "APPLIED" in result.error.message


def test_parse_onboarding_status() -> None:
    assert parse_onboarding_status("in_progress") == Ok(OnboardingStatus.IN_PROGRESS)
    assert parse_onboarding_status("Completed").value == OnboardingStatus.COMPLETED

    result = parse_onboarding_status("done")
    assert not result.ok
    assert result.error.kind == ErrorKind.INVALID_ENUM_VALUE
