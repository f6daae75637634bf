"""
Persisted records and the camelCase model base shared with the HTTP layer
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NewAnalysis(CamelModel):
    session_id: str
    title: str
    media_type: str  # image, video, text, document
    media_url: str
    personality_insights: Dict[str, Any]
    face_analysis: Optional[List[Dict[str, Any]]] = None
    video_analysis: Optional[Dict[str, Any]] = None
    audio_transcription: Optional[Dict[str, Any]] = None


class AnalysisRecord(NewAnalysis):
    id: int
    downloaded: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class MessageRecord(CamelModel):
    id: int
    session_id: str
    analysis_id: Optional[int] = None
    role: str  # user, assistant
    content: str
    created_at: datetime = Field(default_factory=utcnow)


class SessionRecord(CamelModel):
    session_id: str
    name: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
