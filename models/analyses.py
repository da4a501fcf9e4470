"""Saved cost analysis model."""
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey
from .threads import Base, utcnow


class Analysis(Base):
    """SQLAlchemy model for one LLM-generated cost optimization result."""
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    thread_id = Column(String(36), ForeignKey("threads.thread_id", ondelete="CASCADE"), nullable=True, index=True)
    plan = Column(Text, nullable=False, default="")
    metrics = Column(Text, nullable=False, default="")
    comment = Column(Text, nullable=False, default="")
    result = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
