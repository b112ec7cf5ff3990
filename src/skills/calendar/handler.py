"""Calendar skill: read, create, reschedule and cancel Google Calendar events.

Update and delete share one targeting routine: explicit event id, else a
search window (the given day, or the next 30 days) filtered by person and
by specific title. One candidate proceeds, none reports what was searched,
several go to disambiguation.
"""

import logging
from datetime import timedelta
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.disambiguation import present_choices
from src.core.matching import filter_event_candidates, is_generic_title
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.core.time_parser import coerce_datetime, day_bounds, format_for_display
from src.skills.base import SkillResult
from src.skills.confirmation import request_confirmation
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)

SEARCH_WINDOW_DAYS = 30
DEFAULT_DURATION_MINUTES = 30


def format_event(event: dict[str, Any], context: SessionContext) -> str:
    title = event.get("title") or "(no title)"
    start = coerce_datetime(event.get("start"), context.now)
    if start is None:
        return str(title)
    return f"{title}: {format_for_display(start.astimezone(context.tz))}"


def describe_criteria(action: Action, context: SessionContext) -> str:
    """Search criteria echoed back when nothing matched."""
    title = action.get("event_title")
    person = action.get("person")
    date = coerce_datetime(action.get("date"), context.now)

    what = f"\"{title}\"" if title and not is_generic_title(title) else "a meeting"
    if person:
        what += f" with {person}"
    if date is not None:
        local = date.astimezone(context.tz)
        what += f" on {local:%a} {local.day} {local:%b}"
    else:
        what += f" in the next {SEARCH_WINDOW_DAYS} days"
    return what


async def find_target_events(
    action: Action,
    context: SessionContext,
    capability,
) -> list[dict[str, Any]]:
    """Candidate events for an update/delete request."""
    targets = action.get("targets")
    if targets:
        return list(targets)

    event_id = action.get("event_id")
    if event_id:
        return [{"id": event_id, "title": action.get("event_title", ""), "start": action.get("start")}]

    date = coerce_datetime(action.get("date"), context.now)
    if date is not None:
        time_min, time_max = day_bounds(date.astimezone(context.tz))
    else:
        time_min = context.now
        time_max = context.now + timedelta(days=SEARCH_WINDOW_DAYS)

    result = await capability.call(
        "list_events",
        context.user_id,
        {"time_min": time_min, "time_max": time_max},
    )
    events = list(result.data or [])
    return filter_event_candidates(events, title=action.get("event_title"), person=action.get("person"))


class CalendarSkill:
    name = "calendar"
    intents = [
        ActionType.calendar_read,
        ActionType.calendar_create,
        ActionType.calendar_update,
        ActionType.calendar_delete,
    ]
    service = "calendar"

    @observe(name="calendar")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        capability = capabilities.get(self.service)
        if action.type == ActionType.calendar_read:
            return await self._read(action, context, capability)
        if action.type == ActionType.calendar_create:
            return await self._create(action, context, capability)

        candidates = await find_target_events(action, context, capability)
        if not candidates:
            return SkillResult(f"📅 I couldn't find {describe_criteria(action, context)}.")
        if len(candidates) > 1:
            text, updates = present_choices(
                str(action.type),
                candidates,
                context.now,
                describe=lambda e: format_event(e, context),
                context={k: v for k, v in action.entities.items() if k != "targets"},
                header=f"I found {len(candidates)} matching events:",
            )
            return SkillResult(text, updates)

        event = candidates[0]
        if action.type == ActionType.calendar_update:
            return await self._update(action, event, context, capability)
        return await self._delete(action, event, context, capability)

    async def _read(self, action: Action, context: SessionContext, capability) -> SkillResult:
        time_min = coerce_datetime(action.get("time_min"), context.now) or context.now
        time_max = coerce_datetime(action.get("time_max"), context.now) or time_min + timedelta(days=1)
        result = await capability.call(
            "list_events",
            context.user_id,
            {"time_min": time_min, "time_max": time_max},
        )
        if result.message:
            return SkillResult(result.message)

        events = list(result.data or [])
        label = action.get("label", "then")
        if not events:
            return SkillResult(f"📅 Your calendar is clear {label}.")
        lines = [f"📅 Your events {label}:", ""] + [f"• {format_event(e, context)}" for e in events]
        return SkillResult("\n".join(lines))

    async def _create(self, action: Action, context: SessionContext, capability) -> SkillResult:
        start = coerce_datetime(action.get("start"), context.now)
        if start is None:
            return ask_for_slots(action, ["start"], context.now)

        duration = int(action.get("duration_minutes", DEFAULT_DURATION_MINUTES))
        title = action.get("title") or (
            f"Meeting with {action.get('person')}" if action.get("person") else "Meeting"
        )
        entities = {
            "title": title,
            "start": start,
            "end": start + timedelta(minutes=duration),
            "attendees": action.get("attendees", []),
            "person": action.get("person"),
        }
        result = await capability.call("create_event", context.user_id, entities)
        return SkillResult(result.message or f"✅ Scheduled \"{title}\" for {format_for_display(start)}.")

    async def _update(
        self, action: Action, event: dict[str, Any], context: SessionContext, capability
    ) -> SkillResult:
        new_start = coerce_datetime(action.get("new_start"), context.now)
        if new_start is None:
            pending = Action(
                action.type,
                {
                    "event_id": event.get("id"),
                    "event_title": event.get("title"),
                    "duration_minutes": action.get("duration_minutes"),
                },
            )
            return ask_for_slots(pending, ["new_start"], context.now)

        entities: dict[str, Any] = {"event_id": event.get("id"), "new_start": new_start}
        if action.get("duration_minutes"):
            entities["new_end"] = new_start + timedelta(minutes=int(action.get("duration_minutes")))
        result = await capability.call("update_event", context.user_id, entities)
        title = event.get("title") or "your meeting"
        return SkillResult(result.message or f"✅ Moved \"{title}\" to {format_for_display(new_start)}.")

    async def _delete(
        self, action: Action, event: dict[str, Any], context: SessionContext, capability
    ) -> SkillResult:
        if action.needs_confirmation:
            confirm = Action(
                action.type,
                {"event_id": event.get("id"), "event_title": event.get("title"), "start": event.get("start")},
            )
            return request_confirmation(
                confirm, f"🗑 Cancel {format_event(event, context)}?", context.now
            )

        result = await capability.call("delete_event", context.user_id, {"event_id": event.get("id")})
        title = event.get("title") or "the event"
        return SkillResult(result.message or f"🗑 Cancelled \"{title}\".")


skill = CalendarSkill()
