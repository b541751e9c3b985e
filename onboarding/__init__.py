"""
Candidate Lifecycle & Verification Workflow Engine.

Entry point for callers is OnboardingWorkflow (see onboarding.workflow).
"""

from onboarding.models import OnboardingStatus, Status
from onboarding.results import Err, ErrorKind, Ok, WorkflowError
from onboarding.workflow import OnboardingWorkflow, build_workflow

__all__ = [
    "Err",
    "ErrorKind",
    "Ok",
    "OnboardingStatus",
    "OnboardingWorkflow",
    "Status",
    "WorkflowError",
    "build_workflow",
]
