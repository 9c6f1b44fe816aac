#!/usr/bin/env python3
"""
Rating Recalculation Script

Recomputes every book's cached average from its stored ratings.

USAGE:
    # Make sure you're in the project root with venv activated
    python scripts/recalculate_ratings.py

Run it after importing data directly into the database, or whenever
`books.average_rating` may disagree with the `ratings` table.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app.database import SessionLocal
from app.services.ratings import recalculate_all_book_ratings


def recalculate() -> None:
    print("=" * 60)
    print("Recalculating book averages...")
    print("=" * 60)

    db = SessionLocal()

    try:
        updated = recalculate_all_book_ratings(db)
        print(f"Updated {updated} books.")
    except Exception as e:
        print(f"Error recalculating ratings: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    recalculate()
