"""
Analysis orchestrator

Sequences one analysis request through

    Received -> MediaPrepared -> EvidenceGathered -> Synthesized -> Validated
             -> Persisted | Failed

Images go straight to the face fan-out. Videos are cut to the requested
segment first; a frame feeds the face fan-out while the segment's audio goes
through the transcription chain and the segment itself to the optional video
indexer. Text and documents skip evidence gathering.

Provider failures stay inside ProviderResult values. Only capability-level
outcomes (nothing configured, every provider failed, an assessment that stays
incomplete after one reprompt) raise.
"""
import asyncio
import json
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.core.evidence import IntegratedPerson, SpeechMetrics, TranscriptionResult, VideoInsights
from src.core.fallback import ChainOutcome, FallbackChainExecutor
from src.core.integrator import ResultIntegrator
from src.core.parsing import clean_markdown, extract_json_object
from src.core.questions import questions_for, required_fields, resolve_depth
from src.core.records import AnalysisRecord, MessageRecord, NewAnalysis
from src.core.results import Capability, ProviderResult
from src.core.validator import AssessmentValidator, ValidationOutcome
from src.infrastructure.storage import AnalysisStore
from src.providers.llm import LLMAdapter
from src.providers.registry import ProviderRegistry
from src.services import prompts
from src.services.document_service import DocumentService
from src.services.media_service import MediaTranscoder, clamp_segment, scratch_dir
from src.services.report_service import format_report
from src.utils.config import Settings
from src.utils.exceptions import (
    AllProvidersFailedError,
    AnalysisServiceException,
    AssessmentValidationError,
    ProvidersUnavailableError,
    RequestTimeoutError,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

# Characters of each personality_core passed to the group-dynamics call
GROUP_TRAIT_CHARS = 200


class AnalysisState(str, Enum):
    RECEIVED = "received"
    MEDIA_PREPARED = "media_prepared"
    EVIDENCE_GATHERED = "evidence_gathered"
    SYNTHESIZED = "synthesized"
    VALIDATED = "validated"
    PERSISTED = "persisted"
    FAILED = "failed"


@dataclass
class OrchestratorConfig:
    """Everything the orchestrator needs from settings, passed in explicitly"""
    face_order: List[str] = field(default_factory=list)
    llm_order: List[str] = field(default_factory=list)
    default_llm: str = "openai"
    max_people_limit: int = 5
    provider_timeout: float = 60.0
    llm_timeout: float = 180.0
    video_indexer_timeout: float = 180.0
    request_deadline: float = 600.0
    min_field_length: int = 10
    max_reprompts: int = 1

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrchestratorConfig":
        return cls(
            face_order=list(settings.FACE_PROVIDER_ORDER),
            llm_order=list(settings.LLM_PROVIDER_ORDER),
            default_llm=settings.DEFAULT_LLM_PROVIDER,
            max_people_limit=settings.MAX_PEOPLE_LIMIT,
            provider_timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            llm_timeout=settings.LLM_TIMEOUT_SECONDS,
            video_indexer_timeout=settings.VIDEO_INDEXER_TIMEOUT_SECONDS,
            request_deadline=settings.REQUEST_DEADLINE_SECONDS,
            min_field_length=settings.ASSESSMENT_MIN_FIELD_LENGTH,
            max_reprompts=settings.LLM_MAX_REPROMPTS,
        )


@dataclass
class MediaAnalysisRequest:
    session_id: str
    media_type: str  # image, video
    media_bytes: bytes
    media_url: str
    max_people: int = 5
    selected_model: Optional[str] = None
    video_segment_start: float = 0.0
    video_segment_duration: float = 3.0
    analysis_depth: str = "short"


@dataclass
class AnalysisOutcome:
    analysis: AnalysisRecord
    messages: List[MessageRecord]


@dataclass
class Evidence:
    """Everything gathered for synthesis"""
    people: List[IntegratedPerson] = field(default_factory=list)
    transcript: Optional[TranscriptionResult] = None
    speech_metrics: Optional[SpeechMetrics] = None
    video_insights: Optional[VideoInsights] = None
    segment: Optional[Dict[str, float]] = None

    @property
    def face_analysis(self) -> Optional[List[Dict[str, Any]]]:
        return [p.to_dict() for p in self.people] if self.people else None

    @property
    def audio_transcription(self) -> Optional[Dict[str, Any]]:
        if self.transcript is None:
            return None
        data = {
            "transcription": self.transcript.full_text,
            "provider": self.transcript.provider,
            "transcription_data": self.transcript.to_dict(),
        }
        if self.speech_metrics is not None:
            data["speech_metrics"] = asdict(self.speech_metrics)
        return data

    @property
    def video_analysis(self) -> Optional[Dict[str, Any]]:
        if self.segment is None:
            return None
        return {
            "provider": self.video_insights.provider if self.video_insights else "basic",
            **self.segment,
            "insights": self.video_insights.to_dict() if self.video_insights else None,
        }

    def payload(self, person: Optional[IntegratedPerson] = None) -> Dict[str, Any]:
        """Evidence payload for one subject"""
        data: Dict[str, Any] = {}
        if person is not None:
            data["face_analysis"] = person.to_dict()
        if self.video_analysis is not None:
            data["video_analysis"] = self.video_analysis
        if self.audio_transcription is not None:
            data["audio_transcription"] = self.audio_transcription
        return data


class AnalysisRun:
    """State tracker and log context for one request"""

    def __init__(self, kind: str):
        self.id = uuid.uuid4().hex[:12]
        self.kind = kind
        self.state = AnalysisState.RECEIVED
        logger.info(f"[{self.id}] {kind} analysis received")

    def advance(self, state: AnalysisState, note: str = "") -> None:
        logger.info(
            f"[{self.id}] {self.state.value} -> {state.value}{f' ({note})' if note else ''}",
            extra={"analysis_run": self.id, "state": state.value}
        )
        self.state = state

    def fail(self, exc: BaseException) -> None:
        logger.warning(
            f"[{self.id}] {self.state.value} -> failed: {exc}",
            extra={"analysis_run": self.id, "state": AnalysisState.FAILED.value}
        )
        self.state = AnalysisState.FAILED


@dataclass
class Synthesis:
    assessment: Dict[str, Any]
    provider: str


class AnalysisOrchestrator:
    """Coordinates providers, validation and persistence for every analysis flow"""

    def __init__(
        self,
        registry: ProviderRegistry,
        transcoder: MediaTranscoder,
        store: AnalysisStore,
        config: OrchestratorConfig,
        document_service: Optional[DocumentService] = None,
        executor: Optional[FallbackChainExecutor] = None
    ):
        self.registry = registry
        self.transcoder = transcoder
        self.store = store
        self.config = config
        self.document_service = document_service or DocumentService()
        self.executor = executor or FallbackChainExecutor(timeout=config.provider_timeout)
        self.integrator = ResultIntegrator(config.face_order)
        self.validator = AssessmentValidator(config.min_field_length)

        logger.info("AnalysisOrchestrator initialized", extra={"providers": registry.status()})

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def analyze_media(self, request: MediaAnalysisRequest) -> AnalysisOutcome:
        """Analyze an image or video segment"""
        return await self._within_deadline(self._analyze_media(request))

    async def analyze_text(
        self,
        session_id: str,
        content: str,
        selected_model: Optional[str] = None,
        analysis_depth: str = "short",
        title: Optional[str] = None
    ) -> AnalysisOutcome:
        """Analyze the author of a text"""
        return await self._within_deadline(self._analyze_text(
            session_id, content, selected_model, analysis_depth,
            title=title or "Text Analysis", media_type="text",
        ))

    async def analyze_document(
        self,
        session_id: str,
        file_data: str,
        file_name: str,
        file_type: Optional[str] = None,
        selected_model: Optional[str] = None,
        analysis_depth: str = "short",
        title: Optional[str] = None
    ) -> AnalysisOutcome:
        """Extract a document's text, then analyze its author"""
        self._require_llm()

        async def extract_then_analyze() -> AnalysisOutcome:
            text = await asyncio.to_thread(self.document_service.extract_text, file_data, file_name, file_type)
            return await self._analyze_text(
                session_id, text, selected_model, analysis_depth,
                title=title or file_name or "Document Analysis", media_type="document",
                source="document",
            )

        return await self._within_deadline(extract_then_analyze())

    async def _within_deadline(self, work) -> AnalysisOutcome:
        try:
            return await asyncio.wait_for(work, timeout=self.config.request_deadline)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(self.config.request_deadline)

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def _analyze_media(self, request: MediaAnalysisRequest) -> AnalysisOutcome:
        run = AnalysisRun(request.media_type)
        depth = resolve_depth(request.analysis_depth).value
        max_people = max(1, min(request.max_people, self.config.max_people_limit))

        try:
            self._require_llm()

            if request.media_type == "image":
                if not self.registry.configured(self.registry.face):
                    raise ProvidersUnavailableError(Capability.FACE.value)
                run.advance(AnalysisState.MEDIA_PREPARED, "image needs no preparation")
                evidence = Evidence(people=await self._gather_faces(request.media_bytes, max_people))
            else:
                evidence = await self._gather_video_evidence(request, max_people, run)

            run.advance(AnalysisState.EVIDENCE_GATHERED, f"{len(evidence.people)} subjects")

            if not evidence.people and evidence.transcript is None:
                logger.info(f"[{run.id}] No subjects detected; persisting empty outcome")
                outcome = await self._persist(
                    request.session_id, request.media_type, request.media_url,
                    f"{request.media_type.capitalize()} Analysis",
                    self._no_subjects(depth), evidence,
                )
                run.advance(AnalysisState.PERSISTED, "no subjects")
                return outcome

            if len(evidence.people) > 1:
                insights = await self._synthesize_group(evidence, request.selected_model, depth)
            else:
                insights = await self._synthesize_single(evidence, request.selected_model, depth)
            run.advance(AnalysisState.SYNTHESIZED, ", ".join(insights["providers_used"]))
            run.advance(AnalysisState.VALIDATED, f"{insights['people_count']} profiles")

            outcome = await self._persist(
                request.session_id, request.media_type, request.media_url,
                f"{request.media_type.capitalize()} Analysis", insights, evidence,
            )
            run.advance(AnalysisState.PERSISTED, f"analysis {outcome.analysis.id}")
            return outcome
        except Exception as e:
            run.fail(e)
            raise

    async def _analyze_text(
        self,
        session_id: str,
        content: str,
        selected_model: Optional[str],
        analysis_depth: str,
        title: str,
        media_type: str,
        source: str = "text"
    ) -> AnalysisOutcome:
        run = AnalysisRun(media_type)
        depth = resolve_depth(analysis_depth).value

        try:
            self._require_llm()
            run.advance(AnalysisState.EVIDENCE_GATHERED, f"{len(content)} chars of {source}")

            questions = questions_for(depth)
            synthesis = await self._synthesize(
                subject="the author",
                system_prompt=prompts.text_assessment_prompt(questions, source),
                user_prompt=content,
                adapters=self._llm_adapters(selected_model),
                required=required_fields(depth),
                concurrent=False,
            )
            run.advance(AnalysisState.SYNTHESIZED, f"served by {synthesis.provider}")
            run.advance(AnalysisState.VALIDATED)

            profile = {**synthesis.assessment, "person_label": "Author", "provider": synthesis.provider}
            insights = {
                "people_count": 1,
                "individual_profiles": [profile],
                "group_dynamics": None,
                "providers_used": [synthesis.provider],
                "analysis_depth": depth,
            }
            outcome = await self._persist(
                session_id, media_type, f"{media_type}:{uuid.uuid4().hex}", title, insights, Evidence()
            )
            run.advance(AnalysisState.PERSISTED, f"analysis {outcome.analysis.id}")
            return outcome
        except Exception as e:
            run.fail(e)
            raise

    # ------------------------------------------------------------------
    # Evidence gathering
    # ------------------------------------------------------------------

    async def _gather_faces(self, image_bytes: bytes, max_people: int) -> List[IntegratedPerson]:
        """
        Fan out to every configured face provider and merge per person

        An empty list means at least one provider looked and found nobody.

        Raises:
            AllProvidersFailedError: every configured provider errored
            ProvidersUnavailableError: every provider reported itself unavailable
        """
        results = await self.executor.run_concurrent(
            Capability.FACE,
            self.registry.configured(self.registry.face),
            lambda adapter: adapter.detect_faces(image_bytes, max_people),
            timeout=self.config.provider_timeout,
        )
        if results and not any(r.ok for r in results):
            raise self._chain_failure(ChainOutcome(result=results[-1], attempts=results), Capability.FACE)
        return self.integrator.integrate(results, max_people)

    async def _frame_faces(
        self,
        frame_bytes: bytes,
        max_people: int
    ) -> Tuple[List[IntegratedPerson], Optional[AnalysisServiceException]]:
        """Faces for a video frame; a failed fan-out is returned, not raised"""
        try:
            return await self._gather_faces(frame_bytes, max_people), None
        except (AllProvidersFailedError, ProvidersUnavailableError) as e:
            logger.warning(f"No face evidence for this frame: {e.message}", extra={"failures": e.details})
            return [], e

    async def _transcribe(self, audio_bytes: Optional[bytes], duration: float) -> Optional[TranscriptionResult]:
        if not audio_bytes:
            return None
        outcome = await self.executor.run_sequential(
            Capability.TRANSCRIPTION,
            self.registry.configured(self.registry.transcription),
            lambda adapter: adapter.transcribe(audio_bytes, duration),
            timeout=self.config.provider_timeout,
        )
        if not outcome.ok:
            logger.warning(f"No transcript available: {outcome.result.message}", extra={"failures": outcome.failures()})
            return None
        return outcome.result.value

    async def _index_video(self, video_bytes: Optional[bytes]) -> Optional[VideoInsights]:
        indexer = self.registry.video_indexer
        if not video_bytes or indexer is None or not indexer.is_configured:
            return None
        outcome = await self.executor.run_sequential(
            Capability.VIDEO_INDEXING,
            [indexer],
            lambda adapter: adapter.analyze(video_bytes),
            timeout=self.config.video_indexer_timeout,
        )
        if not outcome.ok:
            logger.warning(f"Video indexing skipped: {outcome.result.message}")
            return None
        return outcome.result.value

    async def _gather_video_evidence(
        self,
        request: MediaAnalysisRequest,
        max_people: int,
        run: AnalysisRun
    ) -> Evidence:
        with scratch_dir("video_") as tmp:
            source = tmp / "input.mp4"
            await asyncio.to_thread(source.write_bytes, request.media_bytes)

            total = await self.transcoder.probe_duration(source)
            start, duration = clamp_segment(request.video_segment_start, request.video_segment_duration, total)
            segment = await self.transcoder.extract_segment(source, start, duration, tmp)
            frame = await self.transcoder.extract_frame(segment, 0.5, tmp, duration=duration)
            audio = await self.transcoder.extract_audio(segment, tmp)
            run.advance(AnalysisState.MEDIA_PREPARED, f"{duration:g}s segment at {start:g}s of {total:g}s")

            frame_bytes = await asyncio.to_thread(frame.read_bytes)
            audio_bytes = await asyncio.to_thread(audio.read_bytes) if audio else None
            segment_bytes = await self._read_for_indexer(segment)

            (people, face_error), transcript, insights = await asyncio.gather(
                self._frame_faces(frame_bytes, max_people),
                self._transcribe(audio_bytes, duration),
                self._index_video(segment_bytes),
            )

        # Without a transcript the face failure leaves nothing to analyze
        if face_error is not None and transcript is None:
            raise face_error

        return Evidence(
            people=people,
            transcript=transcript,
            speech_metrics=SpeechMetrics.from_transcript(transcript, duration) if transcript else None,
            video_insights=insights,
            segment={"segment_start": start, "segment_duration": duration, "total_video_duration": total},
        )

    async def _read_for_indexer(self, segment: Path) -> Optional[bytes]:
        indexer = self.registry.video_indexer
        if indexer is None or not indexer.is_configured:
            return None
        return await asyncio.to_thread(segment.read_bytes)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def _require_llm(self) -> None:
        if not self.registry.has_llm:
            raise ProvidersUnavailableError(
                Capability.LLM.value,
                "No language-model providers are configured. Please configure at least one API key."
            )

    def _llm_adapters(self, selected_model: Optional[str]) -> List[LLMAdapter]:
        chain = self.registry.llm_chain(selected_model or self.config.default_llm)
        return self.registry.configured(chain)

    def _preference(self, adapters: Sequence[LLMAdapter]) -> List[str]:
        return [a.name for a in adapters]

    def _assess(self, result: ProviderResult[str], required: Sequence[str]) -> Tuple[Optional[Dict[str, Any]], ValidationOutcome]:
        try:
            assessment = clean_markdown(extract_json_object(result.value))
        except ValueError as e:
            logger.warning(f"{result.provider} output was not parseable: {e}")
            return None, ValidationOutcome(valid=False, missing_fields=list(required))
        return assessment, self.validator.validate_assessment(assessment, required)

    async def _synthesize(
        self,
        subject: str,
        system_prompt: str,
        user_prompt: str,
        adapters: Sequence[LLMAdapter],
        required: Sequence[str],
        concurrent: bool
    ) -> Synthesis:
        """
        Produce one validated assessment

        Concurrent mode queries every adapter and keeps the first valid answer
        in preference order. Sequential mode stops at the first provider that
        answers. An answer that fails validation earns one escalated reprompt
        through the sequential chain; a second failure is fatal.

        Raises:
            ProvidersUnavailableError: no adapter is configured
            AllProvidersFailedError: no adapter produced any answer
            AssessmentValidationError: the answer stayed incomplete
        """
        if not adapters:
            raise ProvidersUnavailableError(Capability.LLM.value)

        call = lambda adapter: adapter.complete(system_prompt, user_prompt)
        if concurrent:
            answered = await self.executor.run_concurrent(
                Capability.LLM, adapters, call, timeout=self.config.llm_timeout
            )
            first_ok = next((r for r in answered if r.ok), answered[-1])
            chain = ChainOutcome(result=first_ok, attempts=answered)
        else:
            chain = await self.executor.run_sequential(Capability.LLM, adapters, call, timeout=self.config.llm_timeout)
            answered = chain.attempts

        if not chain.ok:
            raise self._chain_failure(chain)

        assessed: Dict[str, Tuple[Optional[Dict[str, Any]], ValidationOutcome]] = {}

        def accept(result: ProviderResult[str]) -> bool:
            assessed[result.provider] = self._assess(result, required)
            return assessed[result.provider][1].valid

        chosen = self.executor.select_preferred(answered, self._preference(adapters), accept)
        if chosen is not None:
            logger.info(f"Assessment for {subject} accepted from {chosen.provider}")
            return Synthesis(assessment=assessed[chosen.provider][0], provider=chosen.provider)

        best_missing = min((outcome.missing_fields for _, outcome in assessed.values()), key=len)

        for _ in range(self.config.max_reprompts):
            logger.info(f"Reprompting for {subject} ({len(best_missing)} answers missing)")
            retry_prompt = prompts.escalated_prompt(system_prompt, best_missing)
            retry = await self.executor.run_sequential(
                Capability.LLM,
                adapters,
                lambda adapter: adapter.complete(retry_prompt, user_prompt),
                timeout=self.config.llm_timeout,
            )
            if not retry.ok:
                break
            assessment, outcome = self._assess(retry.result, required)
            if outcome.valid:
                logger.info(f"Assessment for {subject} accepted from {retry.result.provider} after reprompt")
                return Synthesis(assessment=assessment, provider=retry.result.provider)
            best_missing = outcome.missing_fields

        raise AssessmentValidationError(best_missing, subject=subject)

    @staticmethod
    def _chain_failure(chain: ChainOutcome, capability: Capability = Capability.LLM) -> AnalysisServiceException:
        if chain.all_unavailable:
            return ProvidersUnavailableError(capability.value)
        return AllProvidersFailedError(capability.value, chain.failures())

    async def _synthesize_single(self, evidence: Evidence, selected_model: Optional[str], depth: str) -> Dict[str, Any]:
        person = evidence.people[0] if evidence.people else None
        subject = person.person_label if person else "the speaker"
        questions = questions_for(depth)

        synthesis = await self._synthesize(
            subject=subject,
            system_prompt=prompts.media_assessment_prompt(
                subject, questions,
                has_video=evidence.segment is not None,
                has_audio=evidence.transcript is not None,
            ),
            user_prompt=json.dumps(evidence.payload(person), default=str),
            adapters=self._llm_adapters(selected_model),
            required=required_fields(depth),
            concurrent=True,
        )
        return {
            "people_count": 1,
            "individual_profiles": [self._profile(synthesis, person, subject)],
            "group_dynamics": None,
            "providers_used": [synthesis.provider],
            "analysis_depth": depth,
        }

    async def _synthesize_group(self, evidence: Evidence, selected_model: Optional[str], depth: str) -> Dict[str, Any]:
        questions = questions_for(depth)
        required = required_fields(depth)
        adapters = self._llm_adapters(selected_model)

        async def one(person: IntegratedPerson) -> Synthesis:
            return await self._synthesize(
                subject=person.person_label,
                system_prompt=prompts.media_assessment_prompt(
                    person.person_label, questions,
                    has_video=evidence.segment is not None,
                    has_audio=evidence.transcript is not None,
                ),
                user_prompt=json.dumps(evidence.payload(person), default=str),
                adapters=adapters,
                required=required,
                concurrent=False,
            )

        settled = await asyncio.gather(*(one(p) for p in evidence.people), return_exceptions=True)

        profiles: List[Dict[str, Any]] = []
        failures: Dict[str, Any] = {}
        for person, outcome in zip(evidence.people, settled):
            if isinstance(outcome, AllProvidersFailedError):
                logger.warning(f"Dropping {person.person_label}: {outcome.message}")
                failures[person.person_label] = outcome.details.get("failures", {})
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            profiles.append(self._profile(outcome, person, person.person_label))

        if not profiles:
            raise AllProvidersFailedError(Capability.LLM.value, failures)

        group_dynamics = await self._group_dynamics(profiles, adapters) if len(profiles) > 1 else None
        return {
            "people_count": len(profiles),
            "overview_summary": f"Analysis of {len(profiles)} people detected in the media.",
            "individual_profiles": profiles,
            "group_dynamics": group_dynamics,
            "providers_used": sorted({p["provider"] for p in profiles}),
            "analysis_depth": depth,
        }

    async def _group_dynamics(self, profiles: List[Dict[str, Any]], adapters: Sequence[LLMAdapter]) -> Optional[str]:
        """Best effort; a failure only omits the section"""
        group_input = {
            "profiles": [
                {
                    "person_label": p.get("person_label"),
                    "summary": p.get("summary"),
                    "key_traits": str((p.get("detailed_analysis") or {}).get("personality_core") or "")[:GROUP_TRAIT_CHARS],
                }
                for p in profiles
            ]
        }
        outcome = await self.executor.run_sequential(
            Capability.LLM,
            adapters,
            lambda adapter: adapter.complete(prompts.group_dynamics_prompt(len(profiles)), json.dumps(group_input)),
            timeout=self.config.llm_timeout,
        )
        if not outcome.ok:
            logger.warning("Group dynamics unavailable", extra={"failures": outcome.failures()})
            return None
        return clean_markdown(outcome.result.value)

    @staticmethod
    def _profile(synthesis: Synthesis, person: Optional[IntegratedPerson], label: str) -> Dict[str, Any]:
        profile = {**synthesis.assessment, "person_label": label, "provider": synthesis.provider}
        if person is not None:
            profile["person_index"] = person.primary_observation.person_index
            profile["bounding_box"] = asdict(person.primary_observation.bounding_box)
        return profile

    @staticmethod
    def _no_subjects(depth: str) -> Dict[str, Any]:
        return {
            "people_count": 0,
            "individual_profiles": [],
            "group_dynamics": None,
            "providers_used": [],
            "no_subjects_detected": True,
            "analysis_depth": depth,
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _persist(
        self,
        session_id: str,
        media_type: str,
        media_url: str,
        title: str,
        insights: Dict[str, Any],
        evidence: Evidence
    ) -> AnalysisOutcome:
        analysis = await self.store.create_analysis(NewAnalysis(
            session_id=session_id,
            title=title,
            media_type=media_type,
            media_url=media_url,
            personality_insights=insights,
            face_analysis=evidence.face_analysis,
            video_analysis=evidence.video_analysis,
            audio_transcription=evidence.audio_transcription,
        ))
        await self.store.create_message(
            session_id, "assistant", format_report(insights), analysis_id=analysis.id
        )
        messages = await self.store.get_messages(session_id)
        return AnalysisOutcome(analysis=analysis, messages=messages)
