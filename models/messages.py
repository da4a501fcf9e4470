"""Chat message model."""
from sqlalchemy import Column, String, DateTime, Integer, Text, Boolean, ForeignKey, Enum
from uuid import uuid4
from .threads import Base, utcnow
import enum


class MessageRole(enum.Enum):
    """Enum for the author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


class Message(Base):
    """
    SQLAlchemy model for chat messages.

    Messages are written once per chat turn (one user, one assistant) and
    never updated. ``relevant`` marks messages usable as context for later
    cost analyses; only relevant messages carry an ``analysis_id``.
    """
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    message_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid4()), index=True)
    user_id = Column(String, nullable=False, index=True)
    thread_id = Column(String(36), ForeignKey("threads.thread_id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(Enum(MessageRole), nullable=False)
    content = Column(Text, nullable=False, default="")
    relevant = Column(Boolean, nullable=False, default=False)
    analysis_id = Column(Integer, ForeignKey("analyses.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
