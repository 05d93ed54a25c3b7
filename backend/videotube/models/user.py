"""User: identity and display fields (username, full name, avatar) plus per-user tracking preferences.

Account management lives in the auth service; this table only carries what notifications and
watch history read or toggle.
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from videotube.db.base import Base, JSONType


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(100), nullable=False, index=True)
    avatar = Column(String(500), nullable=False, default="")  # media host url
    watch_history_paused = Column(Boolean, nullable=False, default=False, server_default="0")
    notification_preferences = Column(JSONType, nullable=False, default=dict)  # only overrides; see notification_service
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User {self.id}: {self.username}>"
