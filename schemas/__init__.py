from .chat import (
    NewThreadResponse, ChatReply, HistoryMessage, ThreadMessage, HistoryResponse,
    ThreadMessagesResponse, ThreadSummary, ThreadListResponse, SummaryResponse,
    AnalysisResponse, AnalysisListResponse
)
from .files import UploadedFileResponse, FileUploadResponse, StoredObject, DebugFilesResponse

__all__ = ["NewThreadResponse", "ChatReply", "HistoryMessage", "ThreadMessage", "HistoryResponse",
           "ThreadMessagesResponse", "ThreadSummary", "ThreadListResponse", "SummaryResponse",
           "AnalysisResponse", "AnalysisListResponse",
           "UploadedFileResponse", "FileUploadResponse", "StoredObject", "DebugFilesResponse"]
