"""
Session, message and stored-analysis routes
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from src.api.dependencies import get_store
from src.api.schemas.request import ClearSessionRequest, RenameSessionRequest
from src.api.schemas.response import ClearSessionResponse, SessionNameResponse
from src.core.records import AnalysisRecord, MessageRecord, SessionRecord
from src.infrastructure.storage import AnalysisStore
from src.services.report_service import format_report
from src.utils.exceptions import RecordNotFoundError
from src.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Sessions"])


def _analysis_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid analysis ID")


@router.get("/messages", response_model=List[MessageRecord])
async def get_messages(
    session_id: str = Query(..., alias="sessionId", min_length=1),
    store: AnalysisStore = Depends(get_store)
):
    """Messages of a session, oldest first"""
    return await store.get_messages(session_id)


@router.get("/sessions", response_model=List[SessionRecord])
async def list_sessions(store: AnalysisStore = Depends(get_store)):
    """All sessions, most recently active first"""
    return await store.list_sessions()


@router.post("/session/clear", response_model=ClearSessionResponse)
async def clear_session(request: ClearSessionRequest, store: AnalysisStore = Depends(get_store)):
    """Delete a session with its analyses and messages"""
    await store.clear_session(request.session_id)
    return ClearSessionResponse(session_id=request.session_id)


@router.patch("/session/name", response_model=SessionNameResponse)
async def rename_session(request: RenameSessionRequest, store: AnalysisStore = Depends(get_store)):
    session = await store.rename_session(request.session_id, request.name)
    return SessionNameResponse(session_id=session.session_id, name=session.name)


@router.get("/analysis/{analysis_id}", response_model=AnalysisRecord)
async def get_analysis(analysis_id: str, store: AnalysisStore = Depends(get_store)):
    analysis = await store.get_analysis(_analysis_id(analysis_id))
    if analysis is None:
        raise RecordNotFoundError("Analysis not found")
    return analysis


@router.get("/download/{analysis_id}", response_class=PlainTextResponse)
async def download_analysis(analysis_id: str, store: AnalysisStore = Depends(get_store)):
    """
    Download an analysis as a plain-text report

    Marks the analysis as downloaded.
    """
    analysis = await store.mark_downloaded(_analysis_id(analysis_id))
    report = format_report(analysis.personality_insights, title=analysis.title)
    logger.info(f"Analysis {analysis.id} downloaded")
    return PlainTextResponse(
        report,
        headers={"Content-Disposition": f'attachment; filename="analysis_{analysis.id}.txt"'}
    )
