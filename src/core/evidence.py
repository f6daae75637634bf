"""
Normalized evidence shapes shared by every provider of a capability
"""
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

UNKNOWN_GENDER = "unknown"


@dataclass(frozen=True)
class BoundingBox:
    """Face rectangle normalized to 0-1 of the image size"""
    left: float
    top: float
    width: float
    height: float


@dataclass(frozen=True)
class FaceObservation:
    """One face reported by one provider"""
    person_index: int  # 1-based, stable within a single image
    bounding_box: BoundingBox
    estimated_age: Optional[Tuple[float, float]] = None
    estimated_gender: str = UNKNOWN_GENDER
    emotion_scores: Dict[str, float] = field(default_factory=dict)
    provider_attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def top_emotion(self) -> str:
        if not self.emotion_scores:
            return "neutral"
        return max(self.emotion_scores.items(), key=lambda item: item[1])[0]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["estimated_age"] = list(self.estimated_age) if self.estimated_age else None
        data["top_emotion"] = self.top_emotion
        return data


@dataclass(frozen=True)
class IntegratedPerson:
    """Merged multi-provider view of one detected subject"""
    person_label: str
    primary_provider: str
    primary_observation: FaceObservation
    secondary_observations: Dict[str, FaceObservation]
    service_status: Dict[str, bool]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "person_label": self.person_label,
            "primary_provider": self.primary_provider,
            "primary_observation": self.primary_observation.to_dict(),
            "secondary_observations": {
                provider: observation.to_dict()
                for provider, observation in self.secondary_observations.items()
            },
            "service_status": dict(self.service_status),
        }


@dataclass(frozen=True)
class Utterance:
    text: str
    start_sec: float
    end_sec: float
    sentiment: str = "unknown"


@dataclass(frozen=True)
class Word:
    text: str
    start_sec: float
    end_sec: float
    confidence: float


@dataclass(frozen=True)
class TranscriptionResult:
    """Transcript normalized across transcription providers"""
    full_text: str
    utterances: List[Utterance]
    words: List[Word]
    provider: str
    confidence: float

    @classmethod
    def build(
        cls,
        provider: str,
        full_text: str,
        utterances: List[Utterance],
        words: List[Word],
        confidence: float,
        duration: float = 0.0
    ) -> "TranscriptionResult":
        """Create a result, covering unsegmented providers with one utterance"""
        if not utterances:
            end = duration or (words[-1].end_sec if words else 0.0)
            utterances = [Utterance(text=full_text, start_sec=0.0, end_sec=end)]
        confidence = min(max(confidence, 0.0), 1.0)
        return cls(
            full_text=full_text,
            utterances=list(utterances),
            words=list(words),
            provider=provider,
            confidence=confidence,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VideoInsights:
    """Scene, emotion and topic timelines from a video-indexing provider"""
    provider: str
    duration_sec: float
    scenes: List[Dict[str, Any]] = field(default_factory=list)
    emotions: List[Dict[str, Any]] = field(default_factory=list)
    faces: List[Dict[str, Any]] = field(default_factory=list)
    topics: List[Dict[str, Any]] = field(default_factory=list)
    labels: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SpeechMetrics:
    word_count: int
    duration_sec: float
    speaking_rate: float  # words per second

    @classmethod
    def from_transcript(cls, transcript: TranscriptionResult, duration_sec: float) -> "SpeechMetrics":
        word_count = len(transcript.words) or len(transcript.full_text.split())
        rate = word_count / duration_sec if duration_sec > 0 else 0.0
        return cls(word_count=word_count, duration_sec=duration_sec, speaking_rate=round(rate, 2))
