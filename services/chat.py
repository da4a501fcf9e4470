"""Chat turn processing: files, relevance, cost analysis and persistence."""
from typing import List, Optional
from uuid import uuid4
from langchain_core.language_models import BaseChatModel
from sqlalchemy.orm import Session
import logging

from graph import turn_graph
from models import MessageRole, UploadedFile
from schemas.chat import ChatReply
from services.analyses import AnalysisService
from services.extraction import TextExtractor
from services.files import FileService
from services.messages import MessageService
from services.minio import MinIOService

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 1000


def is_plan_file(file_name: str) -> bool:
    """Billing and plan exports are told apart from usage metrics by name."""
    name = file_name.lower()
    return "plan" in name or "billing" in name


def resolve_files(
    db: Session,
    user_id: str,
    thread_id: str,
    file_ids: List[int],
    session_id: str
) -> List[UploadedFile]:
    if file_ids:
        return FileService.get_files_by_ids(db, user_id, thread_id, file_ids)
    if session_id:
        return FileService.get_files_by_session(db, user_id, thread_id, session_id)
    return []


def user_message_content(message: str, files: List[UploadedFile]) -> str:
    if message or not files:
        return message
    return f"[Uploaded Files: {', '.join(f.file_name for f in files)}]"


async def process_chat_message(
    db: Session,
    storage: MinIOService,
    user_id: str,
    thread_id: str,
    message: str,
    file_ids: List[int],
    session_id: str,
    relevance_model: BaseChatModel,
    analysis_model: BaseChatModel
) -> ChatReply:
    """
    Process one chat turn.

    Reads the turn's files, asks the turn graph for a reply, then stores
    the user and assistant messages and links the files to the user
    message. An analysis is saved for every reply produced by the cost
    analysis model.
    """
    message_id = str(uuid4())
    logger.info(f"Processing message for thread {thread_id} (session {session_id!r}, file IDs {file_ids})")

    files = resolve_files(db, user_id, thread_id, file_ids, session_id)
    logger.info(f"Found {len(files)} files for processing")

    previews = ""
    plan_text = ""
    metrics_text = ""

    for file in files:
        previews += f"File: {file.file_name}\n"

        content = storage.download_file(object_name=file.r2_key)
        if content is None:
            logger.warning(f"Could not read {file.file_name} from storage: {file.r2_key}")
            continue

        text = TextExtractor.extract_text(file.file_name, content)
        previews += f"Content preview: {text[:PREVIEW_CHARS]}\n\n"

        if is_plan_file(file.file_name):
            plan_text = text
        else:
            metrics_text = text

    if files:
        names = ", ".join(f.file_name for f in files)
        probe = f"Files: {names}\n\n{previews}\n\nUser message: {message}"
    else:
        probe = f"User message: {message}"

    state = await turn_graph.ainvoke(
        {
            "user_id": user_id,
            "thread_id": thread_id,
            "probe": probe,
            "comment": message,
            "plan_text": plan_text,
            "metrics_text": metrics_text,
            "has_files": bool(files)
        },
        config={
            "configurable": {
                "db": db,
                "relevance_model": relevance_model,
                "analysis_model": analysis_model
            }
        }
    )

    relevant = state["relevant"]
    reply = state["reply"]
    analysis_id: Optional[int] = None

    if relevant:
        analysis = AnalysisService.save_analysis(
            db,
            user_id=user_id,
            thread_id=thread_id,
            plan=plan_text,
            metrics=metrics_text,
            comment=message,
            result=reply
        )
        analysis_id = analysis.id
        logger.info(f"Analysis saved with ID {analysis_id}")

    if files:
        FileService.link_files(
            db,
            user_id=user_id,
            thread_id=thread_id,
            message_id=message_id,
            analysis_id=analysis_id,
            session_id=session_id or None,
            file_ids=[f.id for f in files]
        )

    MessageService.save_message(
        db, user_id, thread_id, MessageRole.USER,
        user_message_content(message, files), relevant, analysis_id, message_id
    )
    MessageService.save_message(
        db, user_id, thread_id, MessageRole.ASSISTANT,
        reply, relevant, analysis_id
    )

    if not relevant:
        return ChatReply(reply=reply, thread_id=thread_id)

    return ChatReply(
        reply=reply,
        thread_id=thread_id,
        analysis_id=analysis_id,
        message_id=message_id
    )
