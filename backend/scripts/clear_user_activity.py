#!/usr/bin/env python3
"""Clear notifications and watch history (all users, or one with --user-id).
Run from backend: python scripts/clear_user_activity.py [--user-id 42]
"""
import argparse
import sys
from pathlib import Path

# Ensure backend is on path when run as script
backend_dir = Path(__file__).resolve().parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

from videotube.db.session import SessionLocal
from videotube.services.admin_service import clear_user_activity


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user-id", type=int, default=None, help="Only clear this user's rows")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        deleted = clear_user_activity(db, args.user_id)
        print("User activity cleared. Rows deleted:")
        for table, count in deleted.items():
            print(f"  {table}: {count}")
    except Exception as e:
        db.rollback()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
