"""
Create any missing tables and rebuild rating summaries from the rating log.
Run this after deploying schema changes or after an interrupted write.
"""

import sys
from tradecore.database import SessionLocal, create_tables
from tradecore.services.rating_service import rebuild_all_summaries


def run_migration():
    """Create tables and replay rating events into the summary cache"""

    print("Running migration: creating tables and rebuilding rating summaries...")

    db = SessionLocal()
    try:
        create_tables()
        print("✓ Tables are up to date")

        rebuilt = rebuild_all_summaries(db)
        print(f"✓ Rebuilt {rebuilt} rating summaries")
        print("\nMigration completed successfully!")

    except Exception as e:
        print(f"✗ Error running migration: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    run_migration()
