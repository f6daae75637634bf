"""
API request schemas

Bodies are camelCase on the wire (mediaData, sessionId, ...) and
snake_case in Python.
"""
from typing import Literal, Optional

from pydantic import Field, field_validator

from src.core.records import CamelModel

ModelName = Literal["openai", "anthropic", "deepseek", "perplexity"]
Depth = Literal["short", "medium", "long"]


class AnalyzeMediaRequest(CamelModel):
    """Image or video analysis request"""

    media_data: str = Field(..., min_length=1, description="Base64 media, optionally as a data: URL")
    media_type: Literal["image", "video"] = Field(..., description="Kind of media in media_data")
    session_id: str = Field(..., min_length=1)
    max_people: int = Field(default=5, ge=1, le=10, description="Upper bound on analyzed subjects")
    selected_model: Optional[ModelName] = Field(default=None, description="Preferred language model")
    video_segment_start: float = Field(default=0.0, ge=0, description="Segment start in seconds")
    video_segment_duration: float = Field(default=3.0, gt=0, description="Requested segment length in seconds")
    analysis_depth: Depth = Field(default="short", description="short=20, medium=40, long=60 questions")

    class Config:
        json_schema_extra = {
            "example": {
                "mediaData": "data:image/jpeg;base64,/9j/4AAQSkZJRg...",
                "mediaType": "image",
                "sessionId": "session-123",
                "maxPeople": 5,
                "selectedModel": "openai",
                "analysisDepth": "short"
            }
        }


class AnalyzeTextRequest(CamelModel):
    """Text analysis request"""

    content: str = Field(..., description="Text written by the person to analyze")
    session_id: str = Field(..., min_length=1)
    selected_model: Optional[ModelName] = None
    title: Optional[str] = None
    analysis_depth: Depth = "short"

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Text content is required")
        return value

    class Config:
        json_schema_extra = {
            "example": {
                "content": "I have always loved building things with my hands...",
                "sessionId": "session-123",
                "selectedModel": "anthropic",
                "analysisDepth": "medium"
            }
        }


class AnalyzeDocumentRequest(CamelModel):
    """Document analysis request"""

    file_data: str = Field(..., min_length=1, description="Document as a base64 data URL")
    file_name: str = Field(..., min_length=1)
    file_type: Optional[str] = Field(default=None, description="pdf, docx, txt or a MIME type")
    session_id: str = Field(..., min_length=1)
    selected_model: Optional[ModelName] = None
    title: Optional[str] = None
    analysis_depth: Depth = "short"

    class Config:
        json_schema_extra = {
            "example": {
                "fileData": "data:application/pdf;base64,JVBERi0xLjQK...",
                "fileName": "essay.pdf",
                "fileType": "pdf",
                "sessionId": "session-123"
            }
        }


class ChatRequest(CamelModel):
    """Follow-up chat message"""

    content: str = Field(..., min_length=1, max_length=8000)
    session_id: str = Field(..., min_length=1)
    selected_model: Optional[ModelName] = None


class ClearSessionRequest(CamelModel):
    session_id: str = Field(..., min_length=1)


class RenameSessionRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
