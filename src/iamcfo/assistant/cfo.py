"""AI CFO assistant: one question in, one answer out.

A question runs through a small state machine:

    AWAITING_MODEL -> DONE
    AWAITING_MODEL -> EXECUTING_TOOLS -> AWAITING_FINAL -> DONE

The first model call may request data tools; their results are fed back and
the second call must answer in text. Any failure yields a fixed fallback
message instead of an exception.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from iamcfo.clients.openai_client import OpenAIClient, OpenAIResponse
from iamcfo.config import get_settings
from iamcfo.tools.definitions import get_tools_for_query
from iamcfo.tools.executor import ToolExecutor

logger = structlog.get_logger(__name__)

QUOTA_MESSAGE = (
    "I'm temporarily unable to analyze your data due to API limits. "
    "Please try again in a moment."
)
CONTEXT_LENGTH_MESSAGE = (
    "Your query involves too much data. Please try asking about a specific "
    "customer or shorter time period."
)
API_KEY_MESSAGE = "There's an issue with the API configuration. Please contact support."
GENERIC_MESSAGE = (
    "I encountered an issue analyzing your financial data. Please try rephrasing "
    "your question or contact support if this persists."
)


def fallback_message(error: BaseException) -> str:
    """Static user-facing message chosen by the error text."""
    text = str(error)
    if "insufficient_quota" in text:
        return QUOTA_MESSAGE
    if "context_length_exceeded" in text:
        return CONTEXT_LENGTH_MESSAGE
    if "API key" in text:
        return API_KEY_MESSAGE
    return GENERIC_MESSAGE


class AssistantState(str, Enum):
    IDLE = "idle"
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    AWAITING_FINAL = "awaiting_final"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AssistantContext:
    """Who is asking and what kind of question it is."""

    platform: str = "I AM CFO"
    query_type: str = "general"
    user_type: str = "business_owner"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AssistantContext":
        data = data or {}
        return cls(
            platform=data.get("platform") or cls.platform,
            query_type=data.get("queryType") or data.get("query_type") or cls.query_type,
            user_type=data.get("userType") or data.get("user_type") or cls.user_type,
        )


@dataclass
class AssistantTurn:
    """Record of one question: state transitions and tool calls made."""

    question: str
    context: AssistantContext
    transitions: list[AssistantState] = field(default_factory=list)
    tool_calls: list[dict[str, Any]] = field(default_factory=list)
    answer: str = ""
    error: str | None = None


def build_system_prompt(context: AssistantContext) -> str:
    return f"""You are an AI CFO assistant for I AM CFO platform.
You analyze financial data and provide actionable insights for business owners.

Current context:
- Platform: {context.platform}
- Query Type: {context.query_type}
- User Type: {context.user_type}
- Business: Multi-unit property management and service businesses

Your personality:
- Direct and insightful ("Man Behind the Curtain")
- Focus on actionable recommendations
- Use real data when available via functions
- Professional but approachable tone
- Always end with "More than just a balance sheet" when relevant

When you have access to real data via functions, prioritize that over general advice.
Always cite specific numbers and provide concrete recommendations."""


class CFOAssistant:
    """Answers financial questions, fetching data through tools when asked."""

    def __init__(
        self,
        llm: OpenAIClient,
        executor: ToolExecutor,
        final_max_tokens: int | None = None,
    ):
        self.llm = llm
        self.executor = executor
        self._final_max_tokens = final_max_tokens or get_settings().llm_final_max_tokens
        self.state = AssistantState.IDLE
        self.last_turn: AssistantTurn | None = None

    def _transition(self, turn: AssistantTurn, state: AssistantState) -> None:
        self.state = state
        turn.transitions.append(state)
        logger.debug("assistant_state", state=state.value)

    async def _execute_tools(
        self, turn: AssistantTurn, response: OpenAIResponse
    ) -> list[dict[str, Any]]:
        """Run each requested tool in order; results become tool messages."""
        results = []
        for call in response.tool_calls:
            outcome = await self.executor.execute(call["name"], call.get("arguments") or {})
            turn.tool_calls.append({"name": call["name"], "success": outcome.get("success")})
            results.append({
                "role": "tool_result",
                "tool_call_id": call["id"],
                "name": call["name"],
                "content": json.dumps(outcome, default=str),
            })
        return results

    async def ask(
        self,
        message: str,
        context: AssistantContext | dict[str, Any] | None = None,
    ) -> str:
        """Answer ``message``; never raises."""
        if not isinstance(context, AssistantContext):
            context = AssistantContext.from_dict(context)
        turn = AssistantTurn(question=message, context=context)
        self.last_turn = turn
        log = logger.bind(query_type=context.query_type)
        log.info("assistant_question", length=len(message))

        system_prompt = build_system_prompt(context)
        messages: list[dict[str, Any]] = [{"role": "user", "content": message}]
        tools = get_tools_for_query(context.query_type)

        try:
            self._transition(turn, AssistantState.AWAITING_MODEL)
            response = await self.llm.generate(system_prompt, messages, tools=tools or None)

            if response.tool_calls:
                self._transition(turn, AssistantState.EXECUTING_TOOLS)
                messages.append({
                    "role": "assistant",
                    "content": response.content,
                    "tool_calls": response.tool_calls,
                })
                messages.extend(await self._execute_tools(turn, response))

                self._transition(turn, AssistantState.AWAITING_FINAL)
                response = await self.llm.generate(
                    system_prompt, messages, max_tokens=self._final_max_tokens
                )
        except Exception as e:
            log.error("assistant_failed", error=str(e), state=self.state.value)
            turn.error = str(e)
            turn.answer = fallback_message(e)
            self._transition(turn, AssistantState.FAILED)
            return turn.answer

        turn.answer = response.content
        self._transition(turn, AssistantState.DONE)
        log.info("assistant_answered", tool_calls=len(turn.tool_calls))
        return turn.answer
