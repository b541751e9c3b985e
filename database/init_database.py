"""
Initialize the candidate onboarding database.

Run this script to create all tables in the database named by DATABASE_URL
(SQLite file by default, PostgreSQL when DATABASE_URL points at one).
"""

import sys
from pathlib import Path

# Add project root to path
project_root = str(Path(__file__).parent.parent.resolve())
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import config
from database.db_manager import init_db

if __name__ == "__main__":
    print("Initializing candidate onboarding database...")
    print(f"Database URL: {config.DATABASE_URL}")

    try:
        init_db()
        print("[SUCCESS] Database tables created successfully!")
    except Exception as e:
        print(f"[ERROR] Error initializing database: {e}")
        print("\nMake sure:")
        print("1. The database server is running (PostgreSQL only)")
        print("2. DATABASE_URL is set correctly in .env file")
        sys.exit(1)
