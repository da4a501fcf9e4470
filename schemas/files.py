"""Uploaded file schemas for responses."""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serializing field names in camelCase for the web client."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UploadedFileResponse(CamelModel):
    """Schema for an uploaded file with its download URL."""
    id: int
    file_name: str
    file_type: str
    file_size: int
    r2_key: str
    uploaded_at: datetime
    download_url: str


class FileUploadResponse(CamelModel):
    file: UploadedFileResponse


class StoredObject(CamelModel):
    key: str
    size: int
    uploaded: Optional[str] = None


class DebugFilesResponse(CamelModel):
    """Schema for the administrative storage listing."""
    r2_files: List[StoredObject]
    database_files: List[Dict[str, Any]]
    r2_bucket: str
    total_storage: str
