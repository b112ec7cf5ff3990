"""Tasks skill: read, create, complete and delete Google Tasks.

The task list shown to the user is kept as ``tasks_snapshot`` so that
"mark task 3 done" resolves against what the user saw, without re-querying.
"""

import logging
from datetime import datetime
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.disambiguation import present_choices
from src.core.error_messages import SERVICE_ERRORS
from src.core.matching import filter_tasks_by_title, normalize_title
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.core.session import TaskSnapshotItem, TasksPaging, TasksSnapshot
from src.core.time_parser import coerce_datetime, format_for_display
from src.skills.base import SkillResult
from src.skills.confirmation import request_confirmation
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
MAX_TASKS_PER_LIST = 50


def build_snapshot(raw_tasks: list[dict[str, Any]], now: datetime) -> TasksSnapshot:
    """Deduplicate by list id + normalized title, cap each list, number from 1."""
    seen: set[tuple[str, str]] = set()
    per_list: dict[str, int] = {}
    items: list[TaskSnapshotItem] = []
    for task in raw_tasks:
        list_id = str(task.get("list_id") or task.get("listId") or "@default")
        title = str(task.get("title") or "").strip()
        if not title:
            continue
        key = (list_id, normalize_title(title))
        if key in seen:
            continue
        if per_list.get(list_id, 0) >= MAX_TASKS_PER_LIST:
            continue
        seen.add(key)
        per_list[list_id] = per_list.get(list_id, 0) + 1
        items.append(
            TaskSnapshotItem(
                index=len(items) + 1,
                id=str(task.get("id", "")),
                title=title,
                list_id=list_id,
                list_name=task.get("list_name") or task.get("listName"),
                due=task.get("due"),
                notes=task.get("notes"),
            )
        )
    return TasksSnapshot(items=items, timestamp=now)


def _format_item(item: TaskSnapshotItem, context: SessionContext) -> str:
    line = f"{item.index}. {item.title}"
    due = coerce_datetime(item.due, context.now) if item.due else None
    if due is not None:
        line += f" (due {format_for_display(due.astimezone(context.tz))})"
    return line


def _describe_task(task: dict[str, Any]) -> str:
    list_name = task.get("list_name") or task.get("listName")
    return f"{task['title']} ({list_name})" if list_name else str(task["title"])


class TasksSkill:
    name = "tasks"
    intents = [
        ActionType.tasks_read,
        ActionType.tasks_create,
        ActionType.tasks_complete,
        ActionType.tasks_delete,
    ]
    service = "tasks"

    @observe(name="tasks")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        capability = capabilities.get(self.service)
        if action.type == ActionType.tasks_read:
            return await self._read(action, context, capability)
        if action.type == ActionType.tasks_create:
            return await self._create(action, context, capability)
        if action.type == ActionType.tasks_complete:
            return await self._complete(action, context, capability)
        return await self._delete(action, context, capability)

    async def _fetch(self, context: SessionContext, capability) -> list[dict[str, Any]]:
        result = await capability.call("list_tasks", context.user_id, {})
        return list(result.data or [])

    async def _read(self, action: Action, context: SessionContext, capability) -> SkillResult:
        show_all = bool(action.get("show_all", False))
        show_rest = bool(action.get("show_rest", False))
        state = context.state
        updates: dict[str, Any] = {}

        if show_rest and state.tasks_snapshot and state.tasks_paging:
            snapshot = state.tasks_snapshot
            start = state.tasks_paging.last_end_index
        else:
            snapshot = build_snapshot(await self._fetch(context, capability), context.now)
            updates["tasks_snapshot"] = snapshot
            start = 0

        total = len(snapshot.items)
        if total == 0:
            updates["tasks_paging"] = TasksPaging(last_end_index=0, total=0)
            return SkillResult("✅ You have no pending tasks.", updates)

        if start >= total:
            return SkillResult(
                f"That's all of them: you have {total} task{'s' if total != 1 else ''}.",
                updates,
            )

        end = total if show_all else min(start + PAGE_SIZE, total)
        page = snapshot.items[start:end]
        updates["tasks_paging"] = TasksPaging(last_end_index=end, total=total)

        header = (
            f"📋 All your tasks ({total}):"
            if show_all
            else f"📋 Your tasks ({start + 1}-{end} of {total}):"
        )
        lines = [header, ""] + [_format_item(item, context) for item in page]
        if end < total:
            lines += ["", f"Say \"show the rest\" to see the other {total - end}."]
        lines += ["", "To finish one, say \"mark task 2 done\"."]
        return SkillResult("\n".join(lines), updates)

    async def _create(self, action: Action, context: SessionContext, capability) -> SkillResult:
        title = action.get("title")
        if not title:
            return ask_for_slots(action, ["title"], context.now)

        due = coerce_datetime(action.get("due"), context.now)
        entities = {"title": title, "due": due, "list_id": action.get("list_id")}
        result = await capability.call("create_task", context.user_id, entities)
        reply = result.message or f"✅ Added task: {title}"
        if due is not None and not result.message:
            reply += f" (due {format_for_display(due)})"
        # New task changes numbering on the next read.
        return SkillResult(reply, {"tasks_paging": None})

    async def _targets(self, action: Action, context: SessionContext, capability) -> list[dict] | SkillResult:
        """Tasks the action applies to, or a reply when they can't be pinned down.

        Priority: resolved targets, explicit index against the snapshot,
        then title search.
        """
        targets = action.get("targets")
        if targets:
            return list(targets)

        index = action.get("task_index")
        if index is not None:
            snapshot = context.state.tasks_snapshot
            item = snapshot.by_index(int(index)) if snapshot else None
            if item is None:
                return SkillResult(
                    f"I don't have a task {index} in the last list I showed you. "
                    "Say \"show my tasks\" to see the current list."
                )
            return [item.model_dump()]

        title = action.get("title")
        if not title:
            return ask_for_slots(action, ["title"], context.now)

        matches = filter_tasks_by_title(await self._fetch(context, capability), title)
        if not matches:
            return SkillResult(SERVICE_ERRORS["tasks"].not_found)
        if len(matches) > 1:
            text, updates = present_choices(
                str(action.type),
                matches,
                context.now,
                describe=_describe_task,
                source_list_key="list_name",
                allow_all=action.type == ActionType.tasks_complete,
                header=f"I found {len(matches)} tasks matching \"{title}\":",
            )
            return SkillResult(text, updates)
        return matches

    async def _complete(self, action: Action, context: SessionContext, capability) -> SkillResult:
        targets = await self._targets(action, context, capability)
        if isinstance(targets, SkillResult):
            return targets

        done: list[str] = []
        for task in targets:
            await capability.call(
                "complete_task",
                context.user_id,
                {"task_id": task["id"], "list_id": task.get("list_id"), "title": task["title"]},
            )
            done.append(task["title"])

        logger.info("Completed %d task(s) for user %s", len(done), context.user_id)
        if len(done) == 1:
            return SkillResult(f"✅ Marked \"{done[0]}\" as done.")
        return SkillResult(f"✅ Marked {len(done)} tasks as done:\n" + "\n".join(f"• {t}" for t in done))

    async def _delete(self, action: Action, context: SessionContext, capability) -> SkillResult:
        targets = await self._targets(action, context, capability)
        if isinstance(targets, SkillResult):
            return targets

        if action.needs_confirmation:
            titles = ", ".join(f"\"{t['title']}\"" for t in targets)
            confirm = Action(action.type, {"targets": targets})
            return request_confirmation(confirm, f"🗑 Delete {titles}?", context.now)

        for task in targets:
            await capability.call(
                "delete_task",
                context.user_id,
                {"task_id": task["id"], "list_id": task.get("list_id"), "title": task["title"]},
            )
        if len(targets) == 1:
            return SkillResult(f"🗑 Deleted \"{targets[0]['title']}\".", {"tasks_paging": None})
        return SkillResult(f"🗑 Deleted {len(targets)} tasks.", {"tasks_paging": None})


skill = TasksSkill()
