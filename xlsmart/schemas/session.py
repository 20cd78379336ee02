"""Upload session request and response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SessionProgressRequest(BaseModel):
    """Progress query for one session."""

    session_id: str = Field(..., min_length=1, alias="sessionId")

    class Config:
        populate_by_name = True


class SessionProgressResponse(BaseModel):
    """Polling snapshot of an upload session."""

    success: bool = True
    session_id: str
    status: str
    progress: Dict[str, Any]
    error: Optional[str] = None


class UploadSessionResponse(BaseModel):
    """Upload session detail response."""

    id: str
    session_name: str
    file_names: List[str]
    total_rows: int
    status: str
    progress: Dict[str, Any]
    error_message: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UploadSessionDetailResponse(UploadSessionResponse):
    success: bool = True


class SessionAcceptedResponse(BaseModel):
    """Response after a session was created or a background run queued."""

    success: bool = True
    session_id: str
    status: str
    total_rows: int
    message: str


class SessionListResponse(BaseModel):
    success: bool = True
    items: List[UploadSessionResponse]
    total: int
