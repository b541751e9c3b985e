"""
Blob stores for uploaded candidate documents.

A store keeps the bytes and hands back a locator, which is what the
documents table records as file_url.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Protocol

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def store(self, candidate_id: int, filename: str, content: bytes) -> str:
        """Persist the bytes and return a locator for them."""
        ...


def _safe_name(filename: str) -> str:
    name = Path(filename or "").name.strip()
    return name or "document"


@dataclass
class InMemoryBlobStore:
    """
    Simple in-memory document vault.

    Locators look like ``memory://<candidate_id>/<uuid>-<filename>``.
    """

    # Structure: locator -> bytes
    _storage: Dict[str, bytes] = field(default_factory=dict)

    def store(self, candidate_id: int, filename: str, content: bytes) -> str:
        locator = f"memory://{candidate_id}/{uuid.uuid4().hex}-{_safe_name(filename)}"
        self._storage[locator] = content
        return locator

    def get(self, locator: str) -> bytes | None:
        return self._storage.get(locator)


class LocalBlobStore:
    """Stores uploaded documents under ``<root>/<candidate_id>/``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def store(self, candidate_id: int, filename: str, content: bytes) -> str:
        directory = self.root / str(candidate_id)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{uuid.uuid4().hex}-{_safe_name(filename)}"
        path.write_bytes(content)
        logger.info("Stored %d bytes for candidate %s at %s", len(content), candidate_id, path)
        return str(path.resolve())
