"""Request/response models for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, Field


class ContentRequest(BaseModel):
    """Body of /api/compile and /api/preview. Missing content is rejected by the handler."""

    content: Optional[str] = Field(default=None, description="LaTeX source")


class CompileResponse(BaseModel):
    artifact: str = Field(..., description="Base64-encoded PDF")
    warnings: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    reason: Optional[str] = None
    errors: List[str] = Field(default_factory=list)


class SegmentResponse(BaseModel):
    kind: str
    raw: str
    display_mode: bool
    html: str
    error: Optional[str] = None


class PreviewResponse(BaseModel):
    html: str
    segments: List[SegmentResponse]


class DocumentRequest(BaseModel):
    """Create (no id) or update (with id) a document."""

    id: Optional[str] = None
    title: Optional[str] = None
    content: str = ""


class DocumentResponse(BaseModel):
    id: str
    title: str
    content: str
    created_at: str
    updated_at: str
