from fastapi import FastAPI, Depends, HTTPException, Query, Request, status, UploadFile, File, Form, Header
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from contextlib import asynccontextmanager
from io import BytesIO
from typing import Any, Dict, List, Optional
import logging
import os
import urllib.parse

logger = logging.getLogger(__name__)

# Local imports
from database import get_db, engine
from dtos.chat_request import ChatRequest, SummarizeRequest
from models import Base, UploadedFile
from schemas import (
    NewThreadResponse, ChatReply, HistoryMessage, ThreadMessage, HistoryResponse,
    ThreadMessagesResponse, ThreadSummary, ThreadListResponse, SummaryResponse,
    AnalysisResponse, AnalysisListResponse,
    UploadedFileResponse, FileUploadResponse, StoredObject, DebugFilesResponse
)
from services import ThreadService, FileService, AnalysisService, minio_service, get_storage
from services.chat import process_chat_message
from services.cleanup import purge_objects
from services.llm import get_relevance_model, get_analysis_model, get_summary_model, message_text
from services.minio import MinIOService
from graph import NO_CONTENT_REPLY
from sqlalchemy.orm import Session
from sqlalchemy import text


STATIC_DIR = os.getenv("STATIC_DIR", "public")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)

    try:
        minio_service.ensure_default_bucket()
    except Exception as e:
        logger.warning(f"Could not create bucket on startup: {e}. Will retry on first upload.")

    yield


app = FastAPI(
    title="Cloud FinOps Copilot",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins if origins != ["*"] else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=3600
)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "finops-copilot"}


@app.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db), storage: MinIOService = Depends(get_storage)):
    """Comprehensive health check for all services."""
    health_status = {
        "status": "healthy",
        "service": "finops-copilot",
        "checks": {}
    }

    # Check database connection
    try:
        db.execute(text("SELECT 1"))
        health_status["checks"]["database"] = {"status": "healthy"}
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    # Check MinIO connection
    try:
        buckets = storage.client.list_buckets()
        health_status["checks"]["minio"] = {"status": "healthy", "buckets": len(buckets)}
    except Exception as e:
        health_status["checks"]["minio"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    # Check OpenAI API key configuration
    health_status["checks"]["openai"] = {
        "status": "configured" if os.getenv("OPENAI_API_KEY") else "not_configured"
    }

    return health_status


# Helper function to get user ID from request
def get_current_user_id(request: Request) -> str:
    """Extract user ID from request headers."""
    return request.headers.get("X-User-ID", "guest")


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """Gate storage internals behind the ADMIN_TOKEN setting."""
    admin_token = os.getenv("ADMIN_TOKEN")
    if not admin_token:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin token required")


def to_history_messages(rows: List[Dict[str, Any]], with_timestamp: bool = False) -> list:
    schema = ThreadMessage if with_timestamp else HistoryMessage
    return [
        schema(
            role=row["role"],
            text=row["content"],
            files=[UploadedFileResponse.model_validate(f) for f in row["files"]],
            message_id=row["message_id"],
            **({"timestamp": row["created_at"]} if with_timestamp else {})
        )
        for row in rows
    ]


# Chat endpoints
@app.post("/api/chat/new", response_model=NewThreadResponse)
async def new_chat(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> NewThreadResponse:
    """Start a new conversation thread."""
    try:
        thread = ThreadService.create_thread(db, user_id)
    except Exception as e:
        logger.error(f"Failed to create new thread: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create new chat"
        )

    return NewThreadResponse(thread_id=thread.thread_id, success=True)


@app.post("/api/chat", response_model=ChatReply, response_model_exclude_none=True)
async def chat(
    req: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage),
    relevance_model: BaseChatModel = Depends(get_relevance_model),
    analysis_model: BaseChatModel = Depends(get_analysis_model)
) -> ChatReply:
    """
    Send one chat turn.

    The turn goes to the requested thread, else the user's latest thread.
    A thread is only created when the turn has a message or files.
    """
    logger.info(f"Chat request: {len(req.message)} chars, {len(req.file_ids)} file IDs, session {req.session_id!r}")

    if req.thread_id:
        thread = ThreadService.get_thread(db, req.thread_id, user_id)
        if not thread:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    else:
        thread = ThreadService.get_latest_thread(db, user_id)

    has_content = bool(req.message.strip()) or bool(req.file_ids)

    try:
        if not thread:
            if not has_content:
                return JSONResponse({"reply": NO_CONTENT_REPLY, "threadId": None})
            thread = ThreadService.create_thread(db, user_id)

        return await process_chat_message(
            db=db,
            storage=storage,
            user_id=user_id,
            thread_id=thread.thread_id,
            message=req.message,
            file_ids=req.file_ids,
            session_id=req.session_id,
            relevance_model=relevance_model,
            analysis_model=analysis_model
        )
    except Exception:
        logger.exception("POST /api/chat failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal Server Error"
        )


@app.get("/api/chat/history", response_model=HistoryResponse)
async def chat_history(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> HistoryResponse:
    """Messages of the user's latest thread, with their files."""
    thread = ThreadService.get_latest_thread(db, user_id)
    if not thread:
        return HistoryResponse(messages=[])

    rows = ThreadService.get_thread_messages_with_files(db, user_id, thread.thread_id)
    logger.info(f"Loaded {len(rows)} history messages for thread {thread.thread_id}")

    return HistoryResponse(messages=to_history_messages(rows))


@app.get("/api/chat/list", response_model=ThreadListResponse)
async def list_threads(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ThreadListResponse:
    """List the user's non-empty threads, newest first."""
    threads = ThreadService.list_threads(db, user_id)

    return ThreadListResponse(threads=[
        ThreadSummary(
            thread_id=thread.thread_id,
            title=thread.title,
            created_at=thread.created_at,
            msg_count=msg_count
        )
        for thread, msg_count in threads
    ])


@app.get("/api/chat/threads/{thread_id}/messages", response_model=ThreadMessagesResponse)
async def get_thread_messages(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> ThreadMessagesResponse:
    """Messages of a thread in chronological order, with their files."""
    try:
        rows = ThreadService.get_thread_messages_with_files(db, user_id, thread_id)
    except Exception as e:
        logger.error(f"Failed to load messages for thread {thread_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load messages"
        )

    return ThreadMessagesResponse(messages=to_history_messages(rows, with_timestamp=True))


@app.get("/api/chat/threads/{thread_id}/analysis", response_model=AnalysisResponse)
async def get_thread_analysis(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> AnalysisResponse:
    """Latest cost analysis of a thread."""
    analysis = AnalysisService.get_latest_analysis(db, user_id, thread_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No analysis for this thread")

    return AnalysisResponse.model_validate(analysis)


@app.delete("/api/chat/threads/{thread_id}")
async def delete_thread(
    thread_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> dict:
    """Delete a thread with its messages, analyses and files."""
    keys = ThreadService.delete_thread(db, thread_id, user_id)

    if keys is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")

    if keys:
        try:
            purge_objects.delay(keys)
        except Exception as e:
            logger.error(f"Could not queue purge of {len(keys)} objects for thread {thread_id}: {e}")

    return {"success": True}


@app.post("/api/chat/summarize", response_model=SummaryResponse)
async def summarize_thread(
    req: SummarizeRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    model: BaseChatModel = Depends(get_summary_model)
) -> SummaryResponse:
    """Summarize a thread's spend drivers and actions."""
    if not req.thread_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="threadId is required")

    full_text = ThreadService.get_full_thread_text(db, user_id, req.thread_id)
    logger.info(f"Summarizing thread {req.thread_id} ({len(full_text)} chars)")

    try:
        response = await model.ainvoke([
            SystemMessage(content="You summarize FinOps chats into crisp bullet points."),
            HumanMessage(content=f"Summarize key spend drivers and actions:\n{full_text}")
        ])
    except Exception as e:
        logger.error(f"Summary generation failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to summarize thread"
        )

    return SummaryResponse(summary=message_text(response))


@app.get("/api/analyses", response_model=AnalysisListResponse)
async def list_analyses(
    limit: int = Query(10, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
) -> AnalysisListResponse:
    """Most recent cost analyses of the user across threads."""
    analyses = AnalysisService.list_analyses(db, user_id, limit=limit)
    return AnalysisListResponse(analyses=[AnalysisResponse.model_validate(a) for a in analyses])


# File endpoints
@app.post("/api/files/upload", response_model=FileUploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    file_type: Optional[str] = Form(None, alias="fileType"),
    session_id: Optional[str] = Form(None, alias="sessionId"),
    thread_id: Optional[str] = Query(None, alias="threadId"),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage)
) -> FileUploadResponse:
    """
    Upload a billing or usage file into a thread.

    The file stays attached to the upload session until a chat turn
    sends the same session token. Maximum file size: 10MB
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")

    if not session_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session ID required")

    file_content = await file.read()
    is_valid, error_msg = FileService.validate_file(file.filename, len(file_content))
    if not is_valid:
        logger.warning(f"Rejected upload {file.filename}: {error_msg}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_msg)

    if thread_id:
        thread = ThreadService.get_thread(db, thread_id, user_id)
        if not thread:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Thread not found")
    else:
        thread = ThreadService.get_latest_thread(db, user_id) or ThreadService.create_thread(db, user_id)

    try:
        uploaded = FileService.upload_file(
            db=db,
            storage=storage,
            user_id=user_id,
            thread_id=thread.thread_id,
            session_id=session_id,
            filename=file.filename,
            file_content=file_content,
            content_type=file.content_type or file_type or "application/octet-stream"
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not uploaded:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="File storage failed. Please try again."
        )

    return FileUploadResponse(file=UploadedFileResponse.model_validate(FileService.to_dict(uploaded)))


@app.get("/api/files/{r2_key:path}")
async def download_file(
    r2_key: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage)
):
    """Download a stored file by its object key."""
    record = FileService.get_file_by_key(db, r2_key)

    # Keys are "{user}/{thread}/..."; bytes can outlive their row until the purge runs
    owner = record.user_id if record is not None else r2_key.split("/", 1)[0]
    if owner != user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    file_content = storage.download_file(object_name=r2_key)
    if file_content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    filename = record.file_name if record else r2_key.split("/")[-1]
    media_type = record.file_type if record else "application/octet-stream"

    # Encode filename for HTTP headers (handle Unicode characters)
    safe_filename = filename.encode('ascii', 'ignore').decode('ascii')
    if safe_filename != filename:
        encoded_filename = urllib.parse.quote(filename)
        content_disposition = f"attachment; filename=\"{safe_filename}\"; filename*=UTF-8''{encoded_filename}"
    else:
        content_disposition = f'attachment; filename="{filename}"'

    return StreamingResponse(
        BytesIO(file_content),
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition,
            "Cache-Control": "private, max-age=3600"
        }
    )


@app.delete("/api/files/{file_id}")
async def delete_file(
    file_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage)
) -> dict:
    """Delete an uploaded file from storage and metadata."""
    if not file_id.isdigit():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file ID")

    uploaded = FileService.get_file(db, int(file_id), user_id)
    if not uploaded:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    if not FileService.delete_file(db, storage, uploaded):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete file"
        )

    return {"success": True}


@app.get("/api/debug/files", response_model=DebugFilesResponse, dependencies=[Depends(require_admin)])
async def debug_files(
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage)
) -> DebugFilesResponse:
    """Administrative listing of stored objects and the latest file rows."""
    objects = storage.list_files()
    recent: List[UploadedFile] = FileService.list_recent_files(db, limit=10)

    logger.info(f"Storage objects: {len(objects)}, database files: {len(recent)}")

    return DebugFilesResponse(
        r2_files=[StoredObject(**obj) for obj in objects],
        database_files=[
            {
                **UploadedFileResponse.model_validate(FileService.to_dict(f)).model_dump(mode="json", by_alias=True),
                "threadId": f.thread_id,
                "sessionId": f.session_id,
                "messageId": f.message_id,
                "analysisId": f.analysis_id
            }
            for f in recent
        ],
        r2_bucket=storage.default_bucket,
        total_storage=f"{sum(obj['size'] for obj in objects)} bytes"
    )


# Everything else is served from the UI build
if os.path.isdir(STATIC_DIR):
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
