"""
Transcription provider adapters

Gladia, AssemblyAI, Deepgram and OpenAI Whisper, normalized to
TranscriptionResult. Providers that return no segmentation get a single
utterance spanning the whole clip.
"""
import asyncio
from typing import Any, Dict, List, Optional

import httpx
from openai import AsyncOpenAI

from src.core.evidence import TranscriptionResult, Utterance, Word
from src.core.results import ErrorKind, ProviderResult
from src.providers.base import ProviderAdapter, ProviderCallError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class TranscriptionAdapter(ProviderAdapter):
    """Common contract: transcribe(audio_bytes, duration)"""

    async def transcribe(self, audio_bytes: bytes, duration: float = 0.0) -> ProviderResult[TranscriptionResult]:
        if not self.is_configured:
            return self.unavailable()
        try:
            result = await self._transcribe(audio_bytes, duration)
        except Exception as e:
            return self.failed(e)
        if not result.full_text.strip():
            logger.warning(f"{self.name} returned an empty transcript")
            return ProviderResult.failure(self.name, ErrorKind.MALFORMED, "empty transcript")
        logger.info(f"{self.name} transcribed {len(result.full_text)} chars in {len(result.utterances)} utterances")
        return ProviderResult.success(self.name, result)

    async def _transcribe(self, audio_bytes: bytes, duration: float) -> TranscriptionResult:
        raise NotImplementedError


def _utterances(items: List[Dict[str, Any]], scale: float = 1.0, sentiment_key: Optional[str] = None) -> List[Utterance]:
    return [
        Utterance(
            text=item["text"].strip(),
            start_sec=float(item.get("start", 0)) / scale,
            end_sec=float(item.get("end", 0)) / scale,
            sentiment=str(item.get(sentiment_key) or "unknown").lower() if sentiment_key else "unknown",
        )
        for item in items if item.get("text")
    ]


def _words(items: List[Dict[str, Any]], default_confidence: float, scale: float = 1.0) -> List[Word]:
    return [
        Word(
            text=(item.get("word") or item.get("text") or "").strip(),
            start_sec=float(item.get("start", 0)) / scale,
            end_sec=float(item.get("end", 0)) / scale,
            confidence=float(item.get("confidence") or default_confidence),
        )
        for item in items
    ]


class GladiaAdapter(TranscriptionAdapter):
    """Gladia v2: upload, request a pre-recorded job, poll its result"""

    name = "gladia"
    BASE_URL = "https://api.gladia.io/v2"

    def __init__(self, api_key: Optional[str], poll_attempts: int = 30, poll_interval: float = 1.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _transcribe(self, audio_bytes: bytes, duration: float) -> TranscriptionResult:
        headers = {"x-gladia-key": self.api_key}

        upload = await self.http.post(
            f"{self.BASE_URL}/upload",
            headers=headers,
            files={"audio": ("audio.mp3", audio_bytes, "audio/mpeg")},
        )
        upload.raise_for_status()
        audio_url = upload.json()["audio_url"]

        job = await self.http.post(f"{self.BASE_URL}/pre-recorded", headers=headers, json={"audio_url": audio_url})
        job.raise_for_status()
        result_url = job.json()["result_url"]

        for _ in range(self.poll_attempts):
            await asyncio.sleep(self.poll_interval)
            poll = await self.http.get(result_url, headers=headers)
            poll.raise_for_status()
            payload = poll.json()
            status = payload.get("status")
            if status == "done":
                return self._normalize(payload["result"]["transcription"], duration)
            if status == "error":
                raise ProviderCallError(ErrorKind.UNKNOWN, f"Gladia job failed: {payload.get('error_code')}")

        raise ProviderCallError(ErrorKind.TIMEOUT, "Gladia job did not finish in time")

    def _normalize(self, transcription: Dict[str, Any], duration: float) -> TranscriptionResult:
        utterances_raw = transcription.get("utterances") or []
        words_raw = [w for u in utterances_raw for w in (u.get("words") or [])]
        confidences = [u["confidence"] for u in utterances_raw if u.get("confidence") is not None]
        return TranscriptionResult.build(
            provider=self.name,
            full_text=transcription["full_transcript"],
            utterances=_utterances(utterances_raw),
            words=_words(words_raw, 0.9),
            confidence=sum(confidences) / len(confidences) if confidences else 0.9,
            duration=duration,
        )


class AssemblyAIAdapter(TranscriptionAdapter):
    """AssemblyAI: upload, submit with sentiment analysis, poll (timestamps in ms)"""

    name = "assemblyai"
    BASE_URL = "https://api.assemblyai.com/v2"

    def __init__(self, api_key: Optional[str], poll_attempts: int = 30, poll_interval: float = 1.0,
                 http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _transcribe(self, audio_bytes: bytes, duration: float) -> TranscriptionResult:
        headers = {"Authorization": self.api_key}

        upload = await self.http.post(f"{self.BASE_URL}/upload", headers=headers, content=audio_bytes)
        upload.raise_for_status()
        upload_url = upload.json()["upload_url"]

        submit = await self.http.post(f"{self.BASE_URL}/transcript", headers=headers, json={
            "audio_url": upload_url,
            "sentiment_analysis": True,
            "entity_detection": True,
            "iab_categories": True,
        })
        submit.raise_for_status()
        transcript_id = submit.json()["id"]

        for _ in range(self.poll_attempts):
            await asyncio.sleep(self.poll_interval)
            poll = await self.http.get(f"{self.BASE_URL}/transcript/{transcript_id}", headers=headers)
            poll.raise_for_status()
            transcript = poll.json()
            if transcript.get("status") == "completed":
                return self._normalize(transcript, duration)
            if transcript.get("status") == "error":
                raise ProviderCallError(ErrorKind.UNKNOWN, f"AssemblyAI job failed: {transcript.get('error')}")

        raise ProviderCallError(ErrorKind.TIMEOUT, "AssemblyAI job did not finish in time")

    def _normalize(self, transcript: Dict[str, Any], duration: float) -> TranscriptionResult:
        return TranscriptionResult.build(
            provider=self.name,
            full_text=transcript["text"] or "",
            utterances=_utterances(transcript.get("sentiment_analysis_results") or [], scale=1000,
                                   sentiment_key="sentiment"),
            words=_words(transcript.get("words") or [], 0.9, scale=1000),
            confidence=float(transcript.get("confidence") or 0.9),
            duration=duration,
        )


class DeepgramAdapter(TranscriptionAdapter):
    """Deepgram nova-2 pre-recorded transcription"""

    name = "deepgram"
    ENDPOINT = "https://api.deepgram.com/v1/listen"

    def __init__(self, api_key: Optional[str], http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(http_client)
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def _transcribe(self, audio_bytes: bytes, duration: float) -> TranscriptionResult:
        response = await self.http.post(
            self.ENDPOINT,
            params={
                "model": "nova-2",
                "detect_language": "true",
                "punctuate": "true",
                "diarize": "true",
                "paragraphs": "true",
            },
            headers={"Authorization": f"Token {self.api_key}", "Content-Type": "audio/mpeg"},
            content=audio_bytes,
        )
        response.raise_for_status()
        alternative = response.json()["results"]["channels"][0]["alternatives"][0]

        utterances: List[Utterance] = []
        paragraphs = (alternative.get("paragraphs") or {}).get("paragraphs") or []
        for paragraph in paragraphs:
            sentences = paragraph.get("sentences") or []
            text = " ".join(s.get("text", "") for s in sentences).strip()
            if text:
                utterances.append(Utterance(
                    text=text,
                    start_sec=float(paragraph.get("start", 0)),
                    end_sec=float(paragraph.get("end", 0)),
                ))

        return TranscriptionResult.build(
            provider=self.name,
            full_text=alternative["transcript"],
            utterances=utterances,
            words=_words(alternative.get("words") or [], 0.8),
            confidence=float(alternative.get("confidence") or 0.8),
            duration=duration,
        )


class WhisperAdapter(TranscriptionAdapter):
    """OpenAI Whisper via the async OpenAI SDK (verbose_json with word timestamps)"""

    name = "openai_whisper"
    CONFIDENCE = 0.92

    def __init__(self, api_key: Optional[str], model: str = "whisper-1", client: Optional[AsyncOpenAI] = None):
        super().__init__(None)
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def is_configured(self) -> bool:
        return bool(self._client is not None or self.api_key)

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy initialization of OpenAI client"""
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def _transcribe(self, audio_bytes: bytes, duration: float) -> TranscriptionResult:
        response = await self.client.audio.transcriptions.create(
            model=self.model,
            file=("audio.mp3", audio_bytes),
            response_format="verbose_json",
            timestamp_granularities=["word", "segment"],
        )
        segments = [
            {"text": s.text, "start": s.start, "end": s.end}
            for s in (getattr(response, "segments", None) or [])
        ]
        words = [
            Word(text=w.word.strip(), start_sec=float(w.start), end_sec=float(w.end), confidence=self.CONFIDENCE)
            for w in (getattr(response, "words", None) or [])
        ]
        return TranscriptionResult.build(
            provider=self.name,
            full_text=response.text,
            utterances=_utterances(segments),
            words=words,
            confidence=self.CONFIDENCE,
            duration=duration,
        )
