from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from app.routes.deps import get_current_user_id
from app.schemas.chat import ChatRequest
from app.services.chat import ChatService

router = APIRouter()

def get_chat_service() -> ChatService:
    return ChatService()

@router.post("")
async def chat(
    request: ChatRequest,
    user_id: str = Depends(get_current_user_id),
    chat_service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Answer a message as a server-sent event stream.

    Events: ``conversation`` (id), ``delta`` (reply text), then ``done``
    (suggestion count, optional warning) or ``error``.
    """
    turn = await chat_service.start_turn(user_id, request.message, request.conversation_id)

    return StreamingResponse(
        turn.events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
