from .threads import Thread, Base
from .messages import Message, MessageRole
from .files import UploadedFile
from .analyses import Analysis

__all__ = ["Thread", "Message", "MessageRole", "UploadedFile", "Analysis", "Base"]
