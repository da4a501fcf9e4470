"""Uploaded file service for storage and metadata operations."""
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4
from sqlalchemy.orm import Session
from sqlalchemy import desc
import io
import logging
import os

from models import UploadedFile
from services.minio import MinIOService

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


class FileService:
    """Service class for uploaded file operations."""

    @staticmethod
    def validate_file(filename: Optional[str], file_size: int) -> Tuple[bool, Optional[str]]:
        """
        Validate an upload before it is stored.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not filename:
            return False, "No file provided"

        if file_size > MAX_FILE_SIZE:
            return False, f"File too large. Maximum size is {MAX_FILE_SIZE // 1024 // 1024}MB."

        return True, None

    @staticmethod
    def generate_object_name(user_id: str, thread_id: str, filename: str) -> str:
        """Generate a unique object key scoped to the user and thread."""
        file_extension = os.path.splitext(filename)[1].lstrip(".") or "bin"
        return f"{user_id}/{thread_id}/{uuid4()}.{file_extension}"

    @staticmethod
    def download_url(r2_key: str) -> str:
        return f"/api/files/{r2_key}"

    @staticmethod
    def to_dict(file: UploadedFile) -> Dict[str, Any]:
        """Public representation of a file, including its download URL."""
        return {
            "id": file.id,
            "file_name": file.file_name,
            "file_type": file.file_type,
            "file_size": file.file_size,
            "r2_key": file.r2_key,
            "uploaded_at": file.uploaded_at,
            "download_url": FileService.download_url(file.r2_key)
        }

    @staticmethod
    def upload_file(
        db: Session,
        storage: MinIOService,
        user_id: str,
        thread_id: str,
        session_id: str,
        filename: str,
        file_content: bytes,
        content_type: str
    ) -> Optional[UploadedFile]:
        """
        Store an upload's bytes and record its metadata under the session token.

        This is the first half of linking a file to a chat message: the row
        is keyed by ``session_id`` until the chat turn that consumes it
        assigns the message ID.

        Returns:
            UploadedFile if successful, None if object storage failed

        Raises:
            ValueError: if the upload fails validation
        """
        if not session_id:
            raise ValueError("Session ID required")

        is_valid, error_msg = FileService.validate_file(filename, len(file_content))
        if not is_valid:
            raise ValueError(error_msg)

        object_name = FileService.generate_object_name(user_id, thread_id, filename)

        success = storage.upload_file(
            file_data=io.BytesIO(file_content),
            object_name=object_name,
            content_type=content_type,
            file_size=len(file_content)
        )

        if not success:
            return None

        db_file = UploadedFile(
            user_id=user_id,
            thread_id=thread_id,
            session_id=session_id,
            file_name=filename,
            file_type=content_type,
            file_size=len(file_content),
            r2_key=object_name
        )

        db.add(db_file)
        db.commit()
        db.refresh(db_file)

        logger.info(f"Saved metadata for {filename} with ID {db_file.id} (session {session_id})")
        return db_file

    @staticmethod
    def get_file(db: Session, file_id: int, user_id: str) -> Optional[UploadedFile]:
        """Get a file by ID, ensuring user ownership."""
        return db.query(UploadedFile).filter(
            UploadedFile.id == file_id,
            UploadedFile.user_id == user_id
        ).first()

    @staticmethod
    def get_file_by_key(db: Session, r2_key: str) -> Optional[UploadedFile]:
        return db.query(UploadedFile).filter(UploadedFile.r2_key == r2_key).first()

    @staticmethod
    def get_files_by_ids(db: Session, user_id: str, thread_id: str, file_ids: List[int]) -> List[UploadedFile]:
        """Fetch exactly the requested files of a thread, ordered by name."""
        if not file_ids:
            return []

        return db.query(UploadedFile).filter(
            UploadedFile.user_id == user_id,
            UploadedFile.thread_id == thread_id,
            UploadedFile.id.in_(file_ids)
        ).order_by(
            UploadedFile.file_name
        ).all()

    @staticmethod
    def get_files_by_session(db: Session, user_id: str, thread_id: str, session_id: str) -> List[UploadedFile]:
        """Fetch every file uploaded in a thread under a session token."""
        return db.query(UploadedFile).filter(
            UploadedFile.user_id == user_id,
            UploadedFile.thread_id == thread_id,
            UploadedFile.session_id == session_id
        ).order_by(
            UploadedFile.uploaded_at, UploadedFile.id
        ).all()

    @staticmethod
    def link_files(
        db: Session,
        user_id: str,
        thread_id: str,
        message_id: str,
        analysis_id: Optional[int] = None,
        session_id: Optional[str] = None,
        file_ids: Optional[List[int]] = None
    ) -> int:
        """
        Point not-yet-linked files at the message and analysis of a chat turn.

        Files are matched by session token when one is given, otherwise by
        explicit IDs. A file that already belongs to a message is never
        relinked.

        Returns:
            Number of files updated
        """
        query = db.query(UploadedFile).filter(
            UploadedFile.user_id == user_id,
            UploadedFile.thread_id == thread_id,
            UploadedFile.message_id.is_(None)
        )

        if session_id:
            query = query.filter(UploadedFile.session_id == session_id)
        elif file_ids:
            query = query.filter(UploadedFile.id.in_(file_ids))
        else:
            return 0

        updated = query.update(
            {UploadedFile.message_id: message_id, UploadedFile.analysis_id: analysis_id},
            synchronize_session=False
        )
        db.commit()

        logger.info(f"Linked {updated} files to message {message_id}")
        return updated

    @staticmethod
    def list_recent_files(db: Session, limit: int = 10) -> List[UploadedFile]:
        return db.query(UploadedFile).order_by(
            desc(UploadedFile.uploaded_at), desc(UploadedFile.id)
        ).limit(limit).all()

    @staticmethod
    def delete_file(db: Session, storage: MinIOService, file: UploadedFile) -> bool:
        """
        Delete a file from both object storage and the database.

        Returns:
            bool: True if successful, False if object storage refused
        """
        if not storage.delete_file(object_name=file.r2_key):
            return False

        db.delete(file)
        db.commit()

        return True
