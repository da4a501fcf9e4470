"""Message service for persisting chat turns."""
from typing import Optional
from uuid import uuid4
from sqlalchemy.orm import Session
from sqlalchemy import desc

from models import Message, MessageRole

CONTEXT_MESSAGE_LIMIT = 10
CONTEXT_MESSAGE_CHARS = 500


class MessageService:
    """Service class for chat message operations."""

    @staticmethod
    def save_message(
        db: Session,
        user_id: str,
        thread_id: str,
        role: MessageRole,
        content: str,
        relevant: bool,
        analysis_id: Optional[int] = None,
        message_id: Optional[str] = None
    ) -> Message:
        """Persist one chat message. Non-relevant messages never keep an analysis."""
        db_message = Message(
            message_id=message_id or str(uuid4()),
            user_id=user_id,
            thread_id=thread_id,
            role=role,
            content=content,
            relevant=relevant,
            analysis_id=analysis_id if relevant else None
        )

        db.add(db_message)
        db.commit()
        db.refresh(db_message)

        return db_message

    @staticmethod
    def get_relevant_context(db: Session, user_id: str, thread_id: str) -> str:
        """
        Build the prior-context block for a cost analysis prompt.

        Takes the most recent relevant messages of the thread, restores
        chronological order and truncates each one.
        """
        recent = db.query(Message).filter(
            Message.user_id == user_id,
            Message.thread_id == thread_id,
            Message.relevant.is_(True)
        ).order_by(
            desc(Message.created_at), desc(Message.id)
        ).limit(CONTEXT_MESSAGE_LIMIT).all()

        if not recent:
            return ""

        lines = [
            f"{msg.role.value}: {msg.content[:CONTEXT_MESSAGE_CHARS]}"
            for msg in reversed(recent)
        ]
        return "Previous relevant context:\n" + "\n".join(lines) + "\n\n"
