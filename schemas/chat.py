"""Pydantic schemas for chat, thread and analysis responses."""
from datetime import datetime
from typing import Optional, List

from .files import CamelModel, UploadedFileResponse


class NewThreadResponse(CamelModel):
    thread_id: str
    success: bool = True


class ChatReply(CamelModel):
    """
    Schema for the reply to a chat turn.

    ``analysis_id`` and ``message_id`` are only present when the turn was
    answered by the cost analysis.
    """
    reply: str
    thread_id: Optional[str] = None
    analysis_id: Optional[int] = None
    message_id: Optional[str] = None


class HistoryMessage(CamelModel):
    role: str
    text: str
    files: List[UploadedFileResponse]
    message_id: str


class ThreadMessage(HistoryMessage):
    timestamp: datetime


class HistoryResponse(CamelModel):
    messages: List[HistoryMessage]


class ThreadMessagesResponse(CamelModel):
    messages: List[ThreadMessage]


class ThreadSummary(CamelModel):
    """Schema for a thread in the sidebar listing."""
    thread_id: str
    title: str
    created_at: datetime
    msg_count: int


class ThreadListResponse(CamelModel):
    threads: List[ThreadSummary]


class SummaryResponse(CamelModel):
    summary: str


class AnalysisResponse(CamelModel):
    """Schema for a saved cost analysis."""
    id: int
    thread_id: Optional[str]
    plan: str
    metrics: str
    comment: str
    result: str
    created_at: datetime


class AnalysisListResponse(CamelModel):
    analyses: List[AnalysisResponse]
