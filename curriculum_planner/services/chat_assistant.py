import json
import logging
from typing import Any, Literal, Sequence

from pydantic import BaseModel, Field

from curriculum_planner.core.errors import UpstreamError, ValidationError
from curriculum_planner.domain.ai.providers.base import CompletionProvider
from curriculum_planner.domain.ai.providers.common import parse_json_text, strip_code_fence
from curriculum_planner.services.pipeline_runtime import run_ai_with_retry


logger = logging.getLogger(__name__)

REDIRECT_LINE = (
    "I can't provide direct answers as that would undermine your learning. Instead, let me help you "
    "understand the concept so you can solve it yourself. What part of this topic are you finding difficult?"
)

POLICY_PROMPT = f"""You are an Ethical AI Learning Assistant. Your role is to help students learn and understand concepts, NOT to help them cheat.

CORE ETHICAL PRINCIPLES:
1. NEVER provide direct answers to exam questions or assignments
2. NEVER write complete homework solutions
3. NEVER help students plagiarize or cheat in any way
4. ALWAYS encourage understanding over memorization
5. ALWAYS promote academic honesty and integrity
6. ALWAYS provide explanations that help students learn the process
7. ALWAYS redirect any attempts to get exam/assignment answers

YOUR CAPABILITIES:
- Explain concepts in simple, clear terms
- Break down complex topics into manageable parts
- Provide study strategies and learning tips
- Suggest practice problems (not solve them)
- Recommend learning resources
- Help adjust study schedules and curriculum plans
- Answer clarifying questions about topics
- Guide students to find answers themselves

WHAT YOU SHOULD DO:
- Ask guiding questions that help students think
- Explain the "why" and "how" behind concepts
- Suggest ways to practice and reinforce learning
- Help with time management and study planning
- Provide encouragement and learning strategies
- Point to official resources and textbooks

WHAT YOU MUST NEVER DO:
- Solve homework problems directly
- Write essays, reports, or assignments
- Provide exam answers
- Complete coding assignments
- Do calculations that are clearly homework
- Help circumvent academic integrity policies

If a student asks for homework/exam help, respond with:
"{REDIRECT_LINE}"

Be friendly, encouraging, and supportive while maintaining these ethical boundaries. Your goal is to make students better learners, not to do their work for them."""

PLAN_CONTEXT_LINE = "The student has a curriculum plan. You can reference it when providing guidance."
NO_PLAN_CONTEXT_LINE = (
    "The student hasn't generated a curriculum yet. You can still help with general learning questions."
)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    message: str | None = None
    planId: str | None = None
    conversationHistory: list[ChatMessage] | None = None


class ChatReply(BaseModel):
    reply: str
    suggestions: list[str] = Field(default_factory=list)


def build_system_prompt(plan_id: str | None) -> str:
    context_line = PLAN_CONTEXT_LINE if plan_id else NO_PLAN_CONTEXT_LINE
    return f"{POLICY_PROMPT}\n\n{context_line}"


def build_chat_messages(
    message: str,
    plan_id: str | None,
    history: Sequence[ChatMessage],
) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": build_system_prompt(plan_id)}]
    messages.extend({"role": item.role, "content": item.content} for item in history)
    messages.append({"role": "user", "content": message})
    return messages


def split_suggestions(text: str) -> tuple[str, list[str]]:
    """Unwrap a ``{"reply": ..., "suggestions": [...]}`` envelope; any other text is the reply itself."""
    if not strip_code_fence(text).startswith("{"):
        return text, []
    try:
        parsed: Any = parse_json_text(text)
    except json.JSONDecodeError:
        return text, []
    if not isinstance(parsed, dict) or not isinstance(parsed.get("reply"), str):
        return text, []

    raw_suggestions = parsed.get("suggestions")
    suggestions: list[str] = []
    if isinstance(raw_suggestions, list):
        suggestions = [item.strip() for item in raw_suggestions if isinstance(item, str) and item.strip()]
    return parsed["reply"], suggestions


class ChatAssistant:
    def __init__(
        self,
        ai_service: CompletionProvider,
        *,
        temperature: float = 0.8,
        max_attempts: int = 2,
        retry_backoff_sec: float = 0.5,
    ) -> None:
        self.ai_service = ai_service
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.retry_backoff_sec = retry_backoff_sec

    def respond(
        self,
        message: str | None,
        plan_id: str | None,
        history: Sequence[ChatMessage] | None = None,
    ) -> ChatReply:
        if not message or not message.strip():
            raise ValidationError("message must not be empty")
        history = list(history or [])
        logger.info("Chat request: planId=%s historyLength=%d", plan_id, len(history))

        messages = build_chat_messages(message, plan_id, history)
        text, _attempt_count = run_ai_with_retry(
            lambda _attempt: self.ai_service.complete(messages=messages, temperature=self.temperature),
            pipeline="chat_assistant",
            max_attempts=self.max_attempts,
            backoff_sec=self.retry_backoff_sec,
        )

        # 정책 준수 여부는 시스템 프롬프트에만 의존한다. 응답 본문은 가공하지 않는다.
        reply, suggestions = split_suggestions(text)
        if not reply.strip():
            raise UpstreamError("chat_empty_reply", kind="empty_output")

        logger.info("Chat response generated: suggestions=%d", len(suggestions))
        return ChatReply(reply=reply, suggestions=suggestions)
