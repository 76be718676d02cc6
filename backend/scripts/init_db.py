"""Initialize the database - creates the versions table and adds missing columns."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from versionable.database import engine
from versionable.utils.schema_sync import ensure_versions_table


def init_db():
    print("Creating versions table...")
    added = ensure_versions_table(engine)
    if added:
        print(f"Added: {', '.join(added)}")
    print("Database initialized successfully.")


if __name__ == "__main__":
    init_db()
