"""
Document Verification Gate.

Records per-document verification and answers "is this candidate's
document set fully verified?" for the lifecycle state machine. A candidate
with no documents is never fully verified.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from database.db_manager import utcnow
from onboarding.models import DocumentRecord
from onboarding.repository import CandidateRepository, DocumentRepository
from onboarding.results import Err, Ok, Result, WorkflowError
from onboarding.storage import BlobStore

logger = logging.getLogger(__name__)


class DocumentVerificationGate:
    def __init__(
        self,
        documents: DocumentRepository,
        candidates: CandidateRepository,
        blob_store: BlobStore,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._documents = documents
        self._candidates = candidates
        self._blob_store = blob_store
        self._clock = clock

    def verify(self, document_id: int) -> Result[DocumentRecord]:
        """Mark a document verified. Verifying twice is a no-op success."""
        document = self._documents.get(document_id)
        if document is None:
            logger.warning("Document not found with ID: %s", document_id)
            return Err(WorkflowError.not_found("Document", document_id))

        if document.file_verified:
            logger.info("Document %s already verified", document_id)
            return Ok(document)

        self._documents.mark_verified(document_id, self._clock())
        verified = self._documents.get(document_id)
        logger.info("Document verified successfully for document ID %s", document_id)
        return Ok(verified)

    def is_fully_verified(self, candidate_id: int) -> bool:
        total, verified = self._documents.verification_counts(candidate_id)
        fully_verified = total > 0 and verified == total
        logger.info(
            "Document verification status for candidate ID %s: %s (%d/%d verified)",
            candidate_id, fully_verified, verified, total,
        )
        return fully_verified

    def upload_document(self, candidate_id: int, filename: str, content: bytes) -> Result[DocumentRecord]:
        """Store the file in the blob store and record an unverified document pointing at it."""
        if self._candidates.get(candidate_id) is None:
            logger.warning("Candidate with ID %s not found for document upload", candidate_id)
            return Err(WorkflowError.not_found("Candidate", candidate_id))

        locator = self._blob_store.store(candidate_id, filename, content)
        document = self._documents.add(candidate_id, document_type=filename, file_url=locator)
        logger.info("Document uploaded successfully with ID %s for candidate %s", document.id, candidate_id)
        return Ok(document)

    def list_documents(self, candidate_id: int) -> Result[list[DocumentRecord]]:
        if self._candidates.get(candidate_id) is None:
            return Err(WorkflowError.not_found("Candidate", candidate_id))
        return Ok(self._documents.list_for_candidate(candidate_id))
