"""
Analysis routes: image/video, text and document
"""
import uuid

from fastapi import APIRouter, Depends

from src.api.dependencies import get_orchestrator
from src.api.schemas.request import AnalyzeDocumentRequest, AnalyzeMediaRequest, AnalyzeTextRequest
from src.api.schemas.response import AnalysisResponse
from src.services.media_service import decode_data_url
from src.services.orchestrator import AnalysisOrchestrator, AnalysisOutcome, MediaAnalysisRequest
from src.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Analysis"])


def _response(outcome: AnalysisOutcome) -> AnalysisResponse:
    return AnalysisResponse(**outcome.analysis.model_dump(), messages=outcome.messages)


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_media(
    request: AnalyzeMediaRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """
    Analyze the people in an image or a video segment

    Face providers run concurrently and are merged per person; videos also
    go through transcription and optional video indexing before one or more
    language models synthesize the assessment.
    """
    _, media_bytes = decode_data_url(request.media_data)
    logger.info(
        f"Analyze {request.media_type}: {len(media_bytes) / 1024 / 1024:.2f} MB, "
        f"max_people={request.max_people}, depth={request.analysis_depth}"
    )

    # Videos are not kept; images stay viewable from the stored record
    media_url = request.media_data if request.media_type == "image" else f"video:{uuid.uuid4().hex}"

    outcome = await orchestrator.analyze_media(MediaAnalysisRequest(
        session_id=request.session_id,
        media_type=request.media_type,
        media_bytes=media_bytes,
        media_url=media_url,
        max_people=request.max_people,
        selected_model=request.selected_model,
        video_segment_start=request.video_segment_start,
        video_segment_duration=request.video_segment_duration,
        analysis_depth=request.analysis_depth,
    ))
    return _response(outcome)


@router.post("/analyze/text", response_model=AnalysisResponse)
async def analyze_text(
    request: AnalyzeTextRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """Analyze the author of a piece of text"""
    outcome = await orchestrator.analyze_text(
        session_id=request.session_id,
        content=request.content,
        selected_model=request.selected_model,
        analysis_depth=request.analysis_depth,
        title=request.title,
    )
    return _response(outcome)


@router.post("/analyze/document", response_model=AnalysisResponse)
async def analyze_document(
    request: AnalyzeDocumentRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """Analyze the author of a PDF, DOCX or plain-text document"""
    outcome = await orchestrator.analyze_document(
        session_id=request.session_id,
        file_data=request.file_data,
        file_name=request.file_name,
        file_type=request.file_type,
        selected_model=request.selected_model,
        analysis_depth=request.analysis_depth,
        title=request.title,
    )
    return _response(outcome)
