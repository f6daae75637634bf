"""
API response schemas
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.core.records import AnalysisRecord, CamelModel, MessageRecord


class AnalysisResponse(AnalysisRecord):
    """Stored analysis plus the session's messages"""
    messages: List[MessageRecord] = Field(default_factory=list)


class ChatResponse(CamelModel):
    success: bool = True
    messages: List[MessageRecord]


class SessionNameResponse(CamelModel):
    success: bool = True
    session_id: str
    name: str


class ClearSessionResponse(CamelModel):
    success: bool = True
    session_id: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(description="API status (healthy)")
    version: str = Field(description="API version")
    environment: str
    timestamp: datetime = Field(description="Response timestamp")

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "environment": "development",
                "timestamp": "2025-01-15T12:00:00Z"
            }
        }


class StatusResponse(BaseModel):
    """Configured providers per capability"""
    status: str = Field(description="ok, or degraded when no language model is configured")
    providers: Dict[str, Dict[str, bool]]
    storage_backend: str
    llm_available: bool
    timestamp: datetime
    message: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "status": "ok",
                "providers": {
                    "face": {"facepp": True, "azure_face": False},
                    "llm": {"openai": True, "anthropic": False}
                },
                "storage_backend": "memory",
                "llm_available": True,
                "timestamp": "2025-01-15T12:00:00Z"
            }
        }
