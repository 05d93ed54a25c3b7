from videotube.db.base import Base
from videotube.db.session import get_db, engine, SessionLocal
from videotube.db.tables import ALL_TABLE_NAMES, USER_ACTIVITY_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "USER_ACTIVITY_TABLE_NAMES"]
