"""
Seed demo candidates for local development.

Creates tables if needed and inserts a handful of candidates at
APPLIED / NOT_STARTED. Existing rows (matched by email) are left alone.

Usage:
    python scripts/seed_candidates.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from sqlalchemy import select

from database.db_manager import Candidate, SessionLocal, init_db
from onboarding.repository import CandidateRepository

DEMO_CANDIDATES = [
    {"first_name": "Asha", "last_name": "Rao", "email": "asha.rao@example.com", "phone_no": "+91-98450-11111"},
    {"first_name": "Daniel", "last_name": "Okafor", "email": "daniel.okafor@example.com", "phone_no": "+44-7700-900123"},
    {"first_name": "Mei", "last_name": "Tanaka", "email": "mei.tanaka@example.com", "phone_no": None},
]


def seed() -> int:
    init_db()
    repository = CandidateRepository(SessionLocal)
    created = 0

    db = SessionLocal()
    try:
        existing = set(db.execute(select(Candidate.email)).scalars().all())
    finally:
        db.close()

    for data in DEMO_CANDIDATES:
        if data["email"] in existing:
            print(f"  - Skipping existing candidate {data['email']}")
            continue
        candidate = repository.add(**data)
        created += 1
        print(f"  + Created candidate {candidate.id}: {candidate.full_name} ({candidate.status.value})")
    return created


if __name__ == "__main__":
    print("Seeding demo candidates...")
    count = seed()
    print(f"[SUCCESS] {count} candidate(s) created.")
