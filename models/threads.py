"""Thread model for conversation management."""
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from uuid import uuid4

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Thread(Base):
    """
    SQLAlchemy model for conversation threads.

    Each thread groups the ordered chat messages, uploaded files and
    analyses of one conversation. The most recently created thread of a
    user is that user's active thread.
    """
    __tablename__ = "threads"

    thread_id = Column(String(36), primary_key=True, default=lambda: str(uuid4()), index=True)
    user_id = Column(String, nullable=False, index=True)
    title = Column(String(255), nullable=False, default="New Conversation")
    # Set client-side so two threads created back to back keep their order
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
