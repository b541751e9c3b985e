"""
Candidate Onboarding API Layer (FastAPI)

Exposes REST endpoints under /api/candidates for:
- listing and counting candidates
- status and onboarding status transitions
- personal, bank and educational info updates
- document upload and verification
- offer notification delivery

Every route delegates to the OnboardingWorkflow and maps its typed errors
to HTTP status codes.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config
from database.db_manager import init_db
from onboarding.models import (
    Ack,
    BankInfoRecord,
    BankInfoUpdate,
    CandidateRecord,
    DocumentRecord,
    EducationRecord,
    EducationUpdate,
    PersonalInfoUpdate,
)
from onboarding.results import ErrorKind, WorkflowError
from onboarding.workflow import OnboardingWorkflow, build_workflow

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Database tables ensured at %s", config.DATABASE_URL)
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Candidate Onboarding API",
    description="Candidate lifecycle and document verification workflow",
    version="1.0.0",
    lifespan=lifespan,
)


# Request/Response Models
class StatusUpdateRequest(BaseModel):
    status: str


class OnboardingStatusUpdateRequest(BaseModel):
    onboardingstatus: str


class StatusUpdateResponse(BaseModel):
    message: str
    candidate: CandidateRecord
    notification_sent: Optional[bool] = None
    notification_error: Optional[str] = None


class CandidateResponse(BaseModel):
    message: str
    candidate: CandidateRecord


class DocumentResponse(BaseModel):
    message: str
    document: DocumentRecord


_ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_ENUM_VALUE: 400,
    ErrorKind.ILLEGAL_TRANSITION: 400,
    ErrorKind.ONBOARDING_NOT_ELIGIBLE: 400,
    ErrorKind.DOCUMENTS_NOT_VERIFIED: 400,
    ErrorKind.NO_OFFER_EPISODE: 400,
    ErrorKind.CONCURRENT_MODIFICATION: 409,
}


def http_status_for(error: WorkflowError) -> int:
    if error.kind == ErrorKind.DISPATCH_ERROR:
        return 503 if error.transient else 502
    return _ERROR_STATUS_CODES.get(error.kind, 400)


def raise_for_error(error: WorkflowError) -> None:
    status_code = http_status_for(error)
    if status_code >= 500:
        logger.error("%s: %s", error.kind.value, error.message)
    else:
        logger.warning("%s: %s", error.kind.value, error.message)
    raise HTTPException(status_code=status_code, detail={"error": error.kind.value, "message": error.message})


@lru_cache(maxsize=1)
def get_workflow() -> OnboardingWorkflow:
    """Shared workflow wired from config; tests override this dependency."""
    return build_workflow()


def _resolve_workflow(request: Request) -> OnboardingWorkflow:
    """The workflow the routes use, honouring dependency overrides."""
    provider = request.app.dependency_overrides.get(get_workflow, get_workflow)
    return provider()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    _resolve_workflow(request).activity_logger.log_error("API_Error", str(exc), error_details={"path": request.url.path})
    return JSONResponse(status_code=500, content={"error": "InternalError", "message": "Internal server error"})


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "Candidate Onboarding API",
        "version": "1.0.0",
        "endpoints": {
            "GET /api/candidates/all": "List all candidates",
            "GET /api/candidates/onboarded": "List onboarded candidates",
            "GET /api/candidates/count": "Count candidates",
            "POST /api/candidates/{id}/status": "Move a candidate to the next status",
            "PUT /api/candidates/{id}/onboard-status": "Move a candidate to the next onboarding status",
            "PUT /api/candidates/{id}/verify-document": "Verify an uploaded document",
            "POST /api/candidates/send/{candidate_id}": "Send the offer notification",
        },
    }


@app.get("/api/candidates/all", response_model=list[CandidateRecord])
def get_all_candidates(workflow: OnboardingWorkflow = Depends(get_workflow)):
    logger.info("Fetching all candidates...")
    return workflow.list_candidates()


@app.get("/api/candidates/hired", response_model=list[CandidateRecord])
def get_hired_candidates(workflow: OnboardingWorkflow = Depends(get_workflow)):
    logger.info("Fetching hired candidates...")
    return workflow.list_onboarded()


@app.get("/api/candidates/onboarded", response_model=list[CandidateRecord])
def get_onboarded_candidates(workflow: OnboardingWorkflow = Depends(get_workflow)):
    logger.info("Fetching onboarded candidates...")
    return workflow.list_onboarded()


@app.get("/api/candidates/count")
def get_candidate_count(workflow: OnboardingWorkflow = Depends(get_workflow)) -> int:
    count = workflow.count()
    logger.info("Total candidate count: %d", count)
    return count


@app.post("/api/candidates/{candidate_id}/status", response_model=StatusUpdateResponse)
def update_candidate_status(
    candidate_id: int,
    request: StatusUpdateRequest,
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Updating candidate status for ID: %s", candidate_id)
    result = workflow.update_status(candidate_id, request.status)
    if not result.ok:
        raise_for_error(result.error)

    update = result.value
    response = StatusUpdateResponse(
        message="Status updated" if update.changed else "Status unchanged",
        candidate=update.candidate,
    )
    if update.notification is not None:
        response.notification_sent = update.notification.ok
        if not update.notification.ok:
            response.notification_error = update.notification.error.message
    return response


@app.put("/api/candidates/{candidate_id}/onboard-status", response_model=CandidateResponse)
def update_onboarding_status(
    candidate_id: int,
    request: OnboardingStatusUpdateRequest,
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Updating onboarding status for ID: %s", candidate_id)
    result = workflow.update_onboarding_status(candidate_id, request.onboardingstatus)
    if not result.ok:
        raise_for_error(result.error)
    return CandidateResponse(message="Onboarding status updated", candidate=result.value)


@app.put("/api/candidates/{candidate_id}/personal-info", response_model=CandidateResponse)
def update_personal_info(
    candidate_id: int,
    request: PersonalInfoUpdate,
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Updating personal info for candidate ID %s", candidate_id)
    result = workflow.update_personal_info(candidate_id, request)
    if not result.ok:
        raise_for_error(result.error)
    return CandidateResponse(message="Personal info updated successfully", candidate=result.value)


@app.put("/api/candidates/{candidate_id}/bank-info", response_model=BankInfoRecord)
def update_bank_info(
    candidate_id: int,
    request: BankInfoUpdate,
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Updating bank info for candidate ID %s", candidate_id)
    result = workflow.update_bank_info(candidate_id, request)
    if not result.ok:
        raise_for_error(result.error)
    return result.value


@app.put("/api/candidates/{candidate_id}/educational-info", response_model=EducationRecord)
def update_educational_info(
    candidate_id: int,
    request: EducationUpdate,
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Updating educational info for candidate ID %s", candidate_id)
    result = workflow.update_educational_info(candidate_id, request)
    if not result.ok:
        raise_for_error(result.error)
    return result.value


@app.post("/api/candidates/{candidate_id}/upload-document", response_model=DocumentResponse)
async def upload_document(
    candidate_id: int,
    file: UploadFile = File(...),
    workflow: OnboardingWorkflow = Depends(get_workflow),
):
    logger.info("Uploading document for candidate ID %s", candidate_id)
    content = await file.read()
    result = workflow.upload_document(candidate_id, file.filename or "document", content)
    if not result.ok:
        raise_for_error(result.error)
    return DocumentResponse(message="Document uploaded successfully", document=result.value)


@app.get("/api/candidates/{candidate_id}/documents", response_model=list[DocumentRecord])
def list_documents(candidate_id: int, workflow: OnboardingWorkflow = Depends(get_workflow)):
    result = workflow.list_documents(candidate_id)
    if not result.ok:
        raise_for_error(result.error)
    return result.value


@app.put("/api/candidates/{document_id}/verify-document", response_model=DocumentResponse)
def verify_document(document_id: int, workflow: OnboardingWorkflow = Depends(get_workflow)):
    logger.info("Verifying document with ID %s", document_id)
    result = workflow.verify_document(document_id)
    if not result.ok:
        raise_for_error(result.error)
    return DocumentResponse(message="Document verified successfully.", document=result.value)


@app.post("/api/candidates/send/{candidate_id}", response_model=Ack)
def send_offer_notification(candidate_id: int, workflow: OnboardingWorkflow = Depends(get_workflow)):
    logger.info("Sending offer email to candidate ID %s", candidate_id)
    result = workflow.send_offer_notification(candidate_id)
    if not result.ok:
        raise_for_error(result.error)
    return result.value


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
