"""Uploaded file model."""
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey
from .threads import Base, utcnow


class UploadedFile(Base):
    """
    SQLAlchemy model for uploaded billing and usage files.

    Stores metadata about an upload with a reference to its bytes in object
    storage. Rows are written at upload time, keyed by the client's session
    token, and linked to the owning chat message once that turn completes.
    """
    __tablename__ = "uploaded_files"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    thread_id = Column(String(36), ForeignKey("threads.thread_id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String, nullable=True, index=True)
    message_id = Column(String(36), nullable=True, index=True)  # Set once, when the turn completes
    analysis_id = Column(Integer, ForeignKey("analyses.id", ondelete="SET NULL"), nullable=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)  # MIME type
    file_size = Column(Integer, nullable=False)  # Size in bytes
    r2_key = Column(String, unique=True, nullable=False)  # Object key in storage
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
