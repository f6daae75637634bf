"""
Shared fixtures: stub adapters, an in-memory store and a fake transcoder
"""
import asyncio
import json
import os
from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest
from PIL import Image

# Settings are read on first import; route tests exercise the limiter on their own app
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from src.core.evidence import BoundingBox, FaceObservation, TranscriptionResult, Utterance
from src.core.questions import required_fields
from src.core.results import ErrorKind, ProviderResult
from src.infrastructure.storage import MemoryAnalysisStore
from src.providers.registry import ProviderRegistry
from src.services.orchestrator import AnalysisOrchestrator, OrchestratorConfig

LONG_ANSWER = "A considered answer of reasonable length."


def make_assessment(depth: str = "short", missing: Sequence[str] = (), summary: str = "Calm and curious.") -> dict:
    """Assessment dict with every required answer except ``missing``"""
    answers = {name: LONG_ANSWER for name in required_fields(depth) if name not in missing}
    return {
        "summary": summary,
        "detailed_analysis": {
            "personality_core": "Steady, reflective, quietly ambitious.",
            "core_psychological_assessment": answers,
        },
    }


def assessment_text(depth: str = "short", missing: Sequence[str] = ()) -> str:
    return json.dumps(make_assessment(depth, missing))


def face(index: int, gender: str = "unknown", left: float = 0.1) -> FaceObservation:
    return FaceObservation(
        person_index=index,
        bounding_box=BoundingBox(left=left, top=0.2, width=0.3, height=0.4),
        estimated_age=(25, 35),
        estimated_gender=gender,
        emotion_scores={"happiness": 0.8, "neutral": 0.2},
    )


class StubFaceAdapter:
    def __init__(self, name: str, faces: Optional[List[FaceObservation]] = None,
                 error: Optional[ErrorKind] = None, configured: bool = True):
        self.name = name
        self.faces = faces or []
        self.error = error
        self.is_configured = configured
        self.calls = 0

    async def detect_faces(self, image_bytes: bytes, max_count: int) -> ProviderResult:
        self.calls += 1
        if self.error is not None:
            return ProviderResult.failure(self.name, self.error, "stub failure")
        return ProviderResult.success(self.name, self.faces[:max_count])


class StubTranscriptionAdapter:
    def __init__(self, name: str, text: Optional[str] = "Hello there, nice to meet you.",
                 configured: bool = True):
        self.name = name
        self.text = text
        self.is_configured = configured
        self.calls = 0

    async def transcribe(self, audio_bytes: bytes, duration: float = 0.0) -> ProviderResult:
        self.calls += 1
        if self.text is None:
            return ProviderResult.failure(self.name, ErrorKind.UNKNOWN, "stub failure")
        return ProviderResult.success(self.name, TranscriptionResult.build(
            provider=self.name,
            full_text=self.text,
            utterances=[Utterance(text=self.text, start_sec=0.0, end_sec=duration)],
            words=[],
            confidence=0.9,
            duration=duration,
        ))


class StubLLMAdapter:
    """Answers with ``reply(system_prompt, user_prompt)``; a ProviderResult reply is returned as-is"""

    def __init__(self, name: str, reply: Optional[Callable[[str, str], object]] = None, configured: bool = True):
        self.name = name
        self.reply = reply or (lambda system, user: assessment_text())
        self.is_configured = configured
        self.prompts: List[tuple] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def complete(self, system_prompt: str, user_prompt: str) -> ProviderResult:
        self.prompts.append((system_prompt, user_prompt))
        answer = self.reply(system_prompt, user_prompt)
        if isinstance(answer, ProviderResult):
            return answer
        return ProviderResult.success(self.name, answer)


def failing(name: str, kind: ErrorKind = ErrorKind.RATE_LIMITED) -> Callable[[str, str], ProviderResult]:
    return lambda system, user: ProviderResult.failure(name, kind, "stub failure")


class FakeTranscoder:
    """Writes placeholder files where ffmpeg would"""

    def __init__(self, total_duration: float = 9.0, has_audio: bool = True):
        self.total_duration = total_duration
        self.has_audio = has_audio
        self.segments: List[tuple] = []

    async def probe_duration(self, path: Path) -> float:
        return self.total_duration

    async def extract_segment(self, path: Path, start: float, duration: float, out_dir: Path) -> Path:
        self.segments.append((start, duration))
        output = out_dir / "segment.mp4"
        output.write_bytes(b"segment")
        return output

    async def extract_frame(self, path: Path, timestamp_fraction: float, out_dir: Path,
                            duration: Optional[float] = None) -> Path:
        output = out_dir / "frame.jpg"
        output.write_bytes(jpeg_bytes())
        return output

    async def extract_audio(self, path: Path, out_dir: Path) -> Optional[Path]:
        if not self.has_audio:
            return None
        output = out_dir / "audio.mp3"
        output.write_bytes(b"audio")
        return output


class HangingProcess:
    """Child process that never finishes on its own"""

    pid = 4242

    def __init__(self):
        self.returncode = None
        self.killed = False
        self.reaped = False

    async def communicate(self):
        await asyncio.sleep(30)

    def kill(self):
        self.killed = True
        self.returncode = -9

    async def wait(self):
        self.reaped = True
        return self.returncode


def jpeg_bytes(width: int = 200, height: int = 100) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color=(120, 90, 60)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def store():
    return MemoryAnalysisStore()


@pytest.fixture
def config():
    return OrchestratorConfig(
        face_order=["facepp", "azure_face", "google_vision"],
        llm_order=["openai", "anthropic"],
        default_llm="openai",
        provider_timeout=5.0,
        llm_timeout=5.0,
        video_indexer_timeout=5.0,
        request_deadline=30.0,
    )


@pytest.fixture
def make_orchestrator(store, config):
    def build(face=(), transcription=(), llm=(), transcoder=None, **overrides):
        registry = ProviderRegistry(face=list(face), transcription=list(transcription), llm=list(llm))
        for key, value in overrides.items():
            setattr(config, key, value)
        return AnalysisOrchestrator(
            registry=registry,
            transcoder=transcoder or FakeTranscoder(),
            store=store,
            config=config,
        )
    return build
