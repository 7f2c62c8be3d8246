from fastapi import APIRouter, Depends, Response

from curriculum_planner.api.deps import cors_policy, get_chat_assistant
from curriculum_planner.services.chat_assistant import ChatAssistant, ChatReply, ChatRequest


router = APIRouter(prefix="/api", tags=["chat"])


@router.options("/chat-assistant")
def chat_assistant_preflight() -> Response:
    return Response(status_code=200, headers=cors_policy.headers())


@router.post("/chat-assistant")
def chat_assistant(
    payload: ChatRequest,
    assistant: ChatAssistant = Depends(get_chat_assistant),
) -> ChatReply:
    return assistant.respond(payload.message, payload.planId, payload.conversationHistory)
