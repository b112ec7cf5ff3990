"""Orchestrator fallback for messages no rule could place.

Handles ``handoff_to_orchestrator`` and ``email_action``. The reasoning
backend answers with an ``AgentDecision``; a tool decision becomes an
Action and goes through the same dispatcher as explicit routes, so
confirmations, disambiguation and error mapping all still apply.
"""

import asyncio
import logging

from src.core.config import settings
from src.core.context import SessionContext
from src.core.dispatcher import ActionDispatcher
from src.core.entities import action_from_agent
from src.core.error_messages import CLASSIFIER_FALLBACK
from src.core.llm.clients import get_instructor_anthropic
from src.core.llm.prompts import AGENT_SYSTEM_PROMPT, PromptAdapter, format_tools
from src.core.observability import observe
from src.core.schemas.action import ActionType
from src.core.schemas.intent import AgentDecision
from src.core.time_parser import format_for_display
from src.skills.base import SkillResult

logger = logging.getLogger(__name__)

# The orchestrator never sends directly; sending always follows a draft.
_FORBIDDEN_TOOLS = frozenset({ActionType.email_send, ActionType.greeting})


def _session_summary(context: SessionContext) -> str:
    state = context.state
    lines = []
    if state.last_doc is not None:
        lines.append(f"last document: {state.last_doc.title}")
    if state.tasks_snapshot is not None and state.tasks_snapshot.items:
        shown = ", ".join(f"{i.index}. {i.title}" for i in state.tasks_snapshot.items[:10])
        lines.append(f"tasks last shown: {shown}")
    return "\n".join(lines) or "nothing pending"


class AgentOrchestrator:
    def __init__(self, dispatcher: ActionDispatcher):
        self.dispatcher = dispatcher

    async def _decide(self, text: str, context: SessionContext, hint: str | None) -> AgentDecision:
        system = AGENT_SYSTEM_PROMPT.format(
            user_name=context.user_name or "the user",
            now=format_for_display(context.now.astimezone(context.tz)),
            timezone=context.timezone,
            tools=format_tools(),
            session=_session_summary(context),
        )
        history = "\n".join(
            f"{turn.get('role', 'user')}: {turn.get('content', '')}" for turn in context.history[-6:]
        )
        content = f"Recent conversation:\n{history}\n\n" if history else ""
        if hint:
            content += f"Classifier hint: {hint}\n\n"
        content += f"Message: {text}"

        prompt = PromptAdapter.for_claude(system, [{"role": "user", "content": content}])
        client = get_instructor_anthropic()
        return await client.messages.create(
            model=settings.agent_model,
            max_tokens=1024,
            response_model=AgentDecision,
            max_retries=2,
            **prompt,
        )

    @observe(name="agent_orchestrator")
    async def run(self, text: str, context: SessionContext, hint: str | None = None) -> SkillResult:
        try:
            decision = await asyncio.wait_for(
                self._decide(text, context, hint),
                settings.agent_timeout_seconds,
            )
        except Exception as e:
            logger.error("Orchestrator backend failed for user %s: %s", context.user_id, e)
            return SkillResult(CLASSIFIER_FALLBACK)

        if decision.tool:
            try:
                action = action_from_agent(decision.tool, decision.arguments, text, context.now)
            except ValueError:
                logger.warning("Orchestrator proposed unknown tool %r", decision.tool)
                return SkillResult(decision.reply or CLASSIFIER_FALLBACK)
            if action.type in _FORBIDDEN_TOOLS:
                logger.warning("Orchestrator proposed %s, refusing", action.type)
                return SkillResult(decision.reply or CLASSIFIER_FALLBACK)
            logger.info("Orchestrator chose %s for user %s", action.type, context.user_id)
            return await self.dispatcher.dispatch(action, context)

        return SkillResult(decision.reply or CLASSIFIER_FALLBACK)
