# src/edumanager/integrations/assistant.py
"""
Assistant response generation.

``OpenAIResponder`` asks a chat model through the openai SDK and falls back
to the deterministic ``KeywordResponder`` when no API key is configured or
the remote call fails; with ``use_fallback=False`` it raises
``AssistantError`` instead. ``AssistantService`` answers a caller's prompt and
records the exchange in the assistant log.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, Tuple

import openai
from openai import AsyncOpenAI

from edumanager.analytics.aggregation import attendance_overview, performance_overview
from edumanager.auth.context import CallerContext
from edumanager.exceptions import (
    AssistantError,
    EduManagerError,
    NotAuthenticatedError,
    ValidationError,
)
from edumanager.observability import get_logger, observability_context
from edumanager.repositories.assistant_logs import AssistantLogRepository
from edumanager.result import Result
from edumanager.schemas.records import AttendanceRecord, PerformanceRecord
from edumanager.settings import Settings, get_settings

logger = get_logger(__name__)

Context = Optional[Mapping[str, Any]]

NO_RESPONSE = "Sorry, I could not generate a response."

SYSTEM_PROMPT = """You are an AI assistant for EduManager, a school management system. \
You help analyze school data, provide insights on student performance, attendance \
patterns, and administrative tasks.

Context about the school:
- You manage data for middle and high school students (grades 6-12)
- You track attendance, performance, timetables, and student information
- You provide actionable insights to help improve educational outcomes

Current user context: {context}

Provide helpful, accurate, and actionable responses related to school management. \
Keep responses concise but informative."""

PERFORMANCE_PROMPT = (
    "Analyze this student performance data and provide insights on strengths, "
    "areas for improvement, and recommendations."
)
ATTENDANCE_PROMPT = (
    "Analyze this attendance data and provide insights on patterns, trends, "
    "and recommendations for improvement."
)


class Responder(Protocol):
    async def respond(self, prompt: str, context: Context = None) -> str: ...


# ---------------------------------------------------------------------------
# Keyword responder
# ---------------------------------------------------------------------------
def _attendance_reply(context: Mapping[str, Any]) -> str:
    reply = "**Attendance Analysis**: "
    if "attendance_rate" in context:
        reply += (
            f"The attendance rate across {context.get('total_records', 0)} records is "
            f"{context['attendance_rate']}%. "
        )
    return reply + (
        "Track consecutive absences per student and follow up early with parents "
        "when a pattern starts."
    )


def _performance_reply(context: Mapping[str, Any]) -> str:
    reply = "**Performance Insights**: "
    if "average_percentage" in context:
        reply += (
            f"The average score is {context['average_percentage']}% "
            f"(range {context.get('lowest_percentage', 0)}% to "
            f"{context.get('highest_percentage', 0)}%). "
        )
    return reply + (
        "Compare subject averages to find where extra support or revision sessions "
        "will help most."
    )


def _payment_reply(context: Mapping[str, Any]) -> str:
    return (
        "**Payment Management**: I can help you track school fee payments, generate "
        "payment links for parents, and monitor payment status. Payments accept cards, "
        "bank transfers, USSD and mobile money."
    )


def _timetable_reply(context: Mapping[str, Any]) -> str:
    return (
        "**Schedule Optimization**: Schedule core subjects in the morning peak hours "
        "and electives in afternoon slots, and check each class for overlapping periods."
    )


def _roster_reply(context: Mapping[str, Any]) -> str:
    return (
        "**Student Management**: I can summarize class rosters, enrollment status and "
        "parent contacts. Ask about a specific class or student for details."
    )


def _help_reply(context: Mapping[str, Any]) -> str:
    return (
        "**Help**: Ask me about attendance, performance, timetables, payments or "
        "students, for example \"What is the attendance rate this week?\""
    )


DEFAULT_REPLY = (
    "**AI Assistant**: I'm here to help with school management insights. I can analyze "
    "attendance patterns, performance trends, payment tracking, schedule optimization, and "
    "provide actionable recommendations. What specific area would you like me to focus on?"
)


class KeywordResponder:
    """Deterministic replies chosen by the first matching keyword group."""

    rules: Sequence[Tuple[Tuple[str, ...], Callable[[Mapping[str, Any]], str]]] = (
        (("attendance", "absent", "present"), _attendance_reply),
        (("performance", "grade", "score"), _performance_reply),
        (("payment", "fee"), _payment_reply),
        (("timetable", "schedule"), _timetable_reply),
        (("student", "class"), _roster_reply),
        (("help", "support"), _help_reply),
    )

    async def respond(self, prompt: str, context: Context = None) -> str:
        text = prompt.lower()
        for keywords, build in self.rules:
            if any(keyword in text for keyword in keywords):
                return build(context or {})
        return DEFAULT_REPLY


# ---------------------------------------------------------------------------
# OpenAI responder
# ---------------------------------------------------------------------------
class OpenAIResponder:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        fallback: Optional[Responder] = None,
        use_fallback: bool = True,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._fallback = (fallback or KeywordResponder()) if use_fallback else None

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._settings.OPENAI_API_KEY)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._settings.OPENAI_API_KEY,
                base_url=self._settings.OPENAI_BASE_URL,
                timeout=self._settings.OPENAI_TIMEOUT_SECONDS,
            )
        return self._client

    async def respond(self, prompt: str, context: Context = None) -> str:
        if not self.is_configured:
            if self._fallback is None:
                raise AssistantError("OpenAI API key not configured")
            logger.debug("OpenAI not configured; using keyword responder")
            return await self._fallback.respond(prompt, context)

        system = SYSTEM_PROMPT.format(
            context=json.dumps(context, default=str) if context else "No specific context provided"
        )
        try:
            completion = await self._get_client().chat.completions.create(
                model=self._settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=self._settings.OPENAI_MAX_TOKENS,
                temperature=self._settings.OPENAI_TEMPERATURE,
            )
        except openai.OpenAIError as e:
            if self._fallback is None:
                raise AssistantError(f"OpenAI request failed: {e}", cause=e) from e
            logger.warning(f"OpenAI request failed, using keyword responder: {e}")
            return await self._fallback.respond(prompt, context)

        if not completion.choices:
            return NO_RESPONSE
        return completion.choices[0].message.content or NO_RESPONSE


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------
class AssistantService:
    def __init__(self, responder: Responder, logs: AssistantLogRepository) -> None:
        self._responder = responder
        self._logs = logs

    async def ask(self, caller: CallerContext, prompt: str, context: Context = None) -> Result[str]:
        """
        Answer ``prompt`` and append the exchange to the caller's log.

        A reply is still returned when saving the log entry fails; the
        failure is logged.
        """
        with observability_context(
            caller_id=caller.caller_id, role=caller.role.value, operation="assistant.ask"
        ):
            if not caller.is_authenticated:
                return Result.failure(NotAuthenticatedError(operation="assistant.ask"))
            prompt = (prompt or "").strip()
            if not prompt:
                return Result.failure(ValidationError("Prompt is empty", field="prompt"))

            try:
                reply = await self._responder.respond(prompt, context)
            except EduManagerError as e:
                logger.error(f"Error generating assistant reply: {e}")
                return Result.failure(e)

            saved = await self._logs.save_interaction(caller, prompt, reply)
            if not saved.ok:
                logger.warning(f"Assistant reply not logged: {saved.error}")
            return Result.success(reply)

    async def analyze_performance(
        self, caller: CallerContext, records: Sequence[PerformanceRecord]
    ) -> Result[str]:
        context = {"type": "performance_analysis", **performance_overview(records).model_dump()}
        return await self.ask(caller, PERFORMANCE_PROMPT, context)

    async def analyze_attendance(
        self, caller: CallerContext, records: Sequence[AttendanceRecord]
    ) -> Result[str]:
        context = {"type": "attendance_analysis", **attendance_overview(records).model_dump()}
        return await self.ask(caller, ATTENDANCE_PROMPT, context)
