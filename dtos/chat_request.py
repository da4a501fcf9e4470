from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional


class ChatRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str = Field(default="", description="User message, may be empty when files are sent")
    file_ids: List[int] = Field(default_factory=list, description="IDs of uploaded files to analyze")
    session_id: str = Field(default="", description="Upload session token linking files to this turn")
    thread_id: Optional[str] = Field(default=None, description="Thread to post into, defaults to the latest")


class SummarizeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    thread_id: Optional[str] = None
