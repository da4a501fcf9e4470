"""Thread service for conversation bookkeeping."""
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
import logging

from models import Thread, Message, UploadedFile, Analysis
from services.files import FileService

logger = logging.getLogger(__name__)


class ThreadService:
    """Service class for thread CRUD operations."""

    @staticmethod
    def create_thread(db: Session, user_id: str) -> Thread:
        """Create a new, empty thread for a user."""
        db_thread = Thread(user_id=user_id, title="New Conversation")

        db.add(db_thread)
        db.commit()
        db.refresh(db_thread)

        logger.info(f"Created thread {db_thread.thread_id} for user {user_id}")
        return db_thread

    @staticmethod
    def get_thread(db: Session, thread_id: str, user_id: str) -> Optional[Thread]:
        """Retrieve a thread by ID, ensuring user ownership."""
        return db.query(Thread).filter(
            Thread.thread_id == thread_id,
            Thread.user_id == user_id
        ).first()

    @staticmethod
    def get_latest_thread(db: Session, user_id: str) -> Optional[Thread]:
        """Return the user's most recently created thread."""
        return db.query(Thread).filter(
            Thread.user_id == user_id
        ).order_by(
            desc(Thread.created_at)
        ).first()

    @staticmethod
    def list_threads(db: Session, user_id: str) -> List[Tuple[Thread, int]]:
        """
        List the user's threads that have messages, newest first.

        Returns:
            List of (thread, message count) pairs. Threads without any
            message are left out by the inner join.
        """
        return db.query(
            Thread,
            func.count(Message.id).label("msg_count")
        ).join(
            Message, Message.thread_id == Thread.thread_id
        ).filter(
            Thread.user_id == user_id
        ).group_by(
            Thread.thread_id
        ).order_by(
            desc(Thread.created_at)
        ).all()

    @staticmethod
    def delete_thread(db: Session, thread_id: str, user_id: str) -> Optional[List[str]]:
        """
        Delete a thread with its files, messages and analyses.

        Returns:
            The object keys of the thread's uploaded files so their bytes can
            be purged, or None if the thread does not exist for the user.
        """
        thread = ThreadService.get_thread(db, thread_id, user_id)
        if not thread:
            return None

        keys = [
            key for (key,) in db.query(UploadedFile.r2_key).filter(
                UploadedFile.thread_id == thread_id
            ).all()
        ]

        db.query(UploadedFile).filter(UploadedFile.thread_id == thread_id).delete(synchronize_session=False)
        db.query(Message).filter(Message.thread_id == thread_id).delete(synchronize_session=False)
        db.query(Analysis).filter(Analysis.thread_id == thread_id).delete(synchronize_session=False)
        db.delete(thread)
        db.commit()

        logger.info(f"Deleted thread {thread_id} ({len(keys)} files)")
        return keys

    @staticmethod
    def get_thread_messages_with_files(db: Session, user_id: str, thread_id: str) -> List[Dict[str, Any]]:
        """
        Return a thread's messages in chronological order with their files.

        Files are grouped by the message they were linked to; files that were
        never linked to a message are not attached to any message.
        """
        messages = db.query(Message).filter(
            Message.user_id == user_id,
            Message.thread_id == thread_id
        ).order_by(
            Message.created_at, Message.id
        ).all()

        files = db.query(UploadedFile).filter(
            UploadedFile.user_id == user_id,
            UploadedFile.thread_id == thread_id,
            UploadedFile.message_id.isnot(None)
        ).order_by(
            UploadedFile.uploaded_at, UploadedFile.id
        ).all()

        files_by_message: Dict[str, List[Dict[str, Any]]] = {}
        for file in files:
            files_by_message.setdefault(file.message_id, []).append(FileService.to_dict(file))

        return [
            {
                "role": msg.role.value,
                "content": msg.content,
                "relevant": msg.relevant,
                "message_id": msg.message_id,
                "created_at": msg.created_at,
                "files": files_by_message.get(msg.message_id, [])
            }
            for msg in messages
        ]

    @staticmethod
    def get_full_thread_text(db: Session, user_id: str, thread_id: str) -> str:
        """Render the whole thread as ``role: content`` lines."""
        messages = db.query(Message).filter(
            Message.user_id == user_id,
            Message.thread_id == thread_id
        ).order_by(
            Message.created_at, Message.id
        ).all()

        if not messages:
            return "No messages."
        return "\n".join(f"{msg.role.value}: {msg.content}" for msg in messages)
