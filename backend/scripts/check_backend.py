#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from backend/:
  python scripts/check_backend.py
"""
import os
import socket
import sys
from pathlib import Path

# Run from backend/
backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    # 1) .env
    env_file = backend_dir / ".env"
    if not env_file.exists():
        errors.append("backend/.env missing. Create it and set DATABASE_URL and ACCESS_TOKEN_SECRET.")
    else:
        print("OK  .env exists")

    # 2) Settings that must not keep their defaults
    from videotube.config import settings
    if settings.access_token_secret in ("", "change-me"):
        errors.append("ACCESS_TOKEN_SECRET is unset; tokens from the auth service will not verify.")
        print("FAIL ACCESS_TOKEN_SECRET")
    else:
        print("OK  ACCESS_TOKEN_SECRET set")

    # 3) DB connection and schema
    try:
        from sqlalchemy import inspect, text
        from videotube.db.session import engine
        from videotube.db.tables import ALL_TABLE_NAMES
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        missing = [t for t in ALL_TABLE_NAMES if not inspect(engine).has_table(t)]
        if missing:
            errors.append(f"Tables missing: {', '.join(missing)}. Run: alembic upgrade head")
            print("FAIL Schema:", ", ".join(missing))
        else:
            print("OK  Schema (all tables present)")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    # 4) App import (catches missing deps, bad imports)
    try:
        from videotube.main import app  # noqa: F401
        print("OK  App import (videotube.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    # 5) Port 8000
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 8000))
        print("OK  Port 8000 is free")
    except OSError:
        errors.append("Port 8000 is in use. Stop the other process or use another port (e.g. --port 8001).")
        print("FAIL Port 8000 is in use")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn videotube.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
