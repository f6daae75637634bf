"""
Chat routes for follow-up questions about an analysis
"""
from fastapi import APIRouter, Depends

from src.api.dependencies import get_chat_service
from src.api.schemas.request import ChatRequest
from src.api.schemas.response import ChatResponse
from src.services.chat_service import ChatService
from src.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service)
):
    """
    Send a message about the session's analysis

    The user message is stored before the model is called. Returns the
    stored user message followed by the assistant's reply.
    """
    logger.info(f"Chat message for session {request.session_id} (model={request.selected_model or 'default'})")
    messages = await chat_service.reply(request.session_id, request.content, request.selected_model)
    return ChatResponse(messages=messages)
