from .threads import ThreadService
from .messages import MessageService
from .files import FileService
from .analyses import AnalysisService
from .minio import minio_service, get_storage

__all__ = ["ThreadService", "MessageService", "FileService", "AnalysisService", "minio_service", "get_storage"]
