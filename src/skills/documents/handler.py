"""Documents skill: Q&A over the last uploaded document, list uploads, recall one.

``last_doc`` points at the document the conversation is about. Its cached
summary (``last_doc_summary``) is passed to the capability with every
question and replaced by the summary the capability sends back; loading or
uploading another document resets it.
"""

import logging
from datetime import datetime
from typing import Any

from src.capabilities.base import CapabilityRegistry
from src.core.context import SessionContext
from src.core.error_messages import NO_DOCUMENT, SERVICE_ERRORS
from src.core.observability import observe
from src.core.schemas.action import Action, ActionType
from src.core.session import LastDocument, StateUpdates
from src.core.time_parser import coerce_datetime
from src.skills.base import SkillResult
from src.skills.slots import ask_for_slots

logger = logging.getLogger(__name__)


def last_doc_updates(document: dict[str, Any], now: datetime) -> StateUpdates:
    """Delta that makes ``document`` the current one and drops the old summary."""
    last_doc = LastDocument(
        id=str(document["id"]),
        title=str(document.get("title") or document.get("name") or "document"),
        uploaded_at=coerce_datetime(document.get("uploaded_at"), now) or now,
    )
    return {"last_doc": last_doc, "last_doc_summary": None}


async def ingest_document(
    capabilities: CapabilityRegistry,
    user_id: str,
    media: dict[str, Any],
    now: datetime,
) -> SkillResult:
    """Store an uploaded file and make it the current document."""
    result = await capabilities.get("documents").call("ingest", user_id, media)
    document = result.data or {}
    if not document.get("id"):
        return SkillResult(result.message or "❌ I couldn't read that file. Please try again.")

    updates = last_doc_updates({"uploaded_at": now, **document}, now)
    title = updates["last_doc"].title
    reply = result.message or (
        f"📄 Got \"{title}\". Ask me anything about it, e.g. \"summarize this\" or \"what are the key points?\""
    )
    return SkillResult(reply, updates)


class DocumentsSkill:
    name = "documents"
    intents = [ActionType.document_qna, ActionType.document_list, ActionType.document_recall]
    service = "documents"

    @observe(name="documents")
    async def execute(
        self,
        action: Action,
        context: SessionContext,
        capabilities: CapabilityRegistry,
    ) -> SkillResult:
        capability = capabilities.get(self.service)

        if action.type == ActionType.document_list:
            result = await capability.call("list", context.user_id, {})
            if result.message:
                return SkillResult(result.message)
            docs = list(result.data or [])
            if not docs:
                return SkillResult("📄 You haven't uploaded any documents yet.")
            lines = ["📄 Your documents:", ""] + [f"{i}. {d.get('title')}" for i, d in enumerate(docs, 1)]
            return SkillResult("\n".join(lines))

        if action.type == ActionType.document_recall:
            name = action.get("document_name")
            if not name:
                return ask_for_slots(action, ["document_name"], context.now)
            result = await capability.call("find", context.user_id, {"name": name})
            document = result.data
            if isinstance(document, list):
                document = document[0] if document else None
            if not document:
                return SkillResult(SERVICE_ERRORS["documents"].not_found)
            updates = last_doc_updates(document, context.now)
            title = updates["last_doc"].title
            return SkillResult(result.message or f"📄 Loaded \"{title}\". What would you like to know?", updates)

        last_doc = context.state.last_doc
        if last_doc is None:
            return SkillResult(NO_DOCUMENT)

        result = await capability.call(
            "answer",
            context.user_id,
            {
                "document_id": last_doc.id,
                "title": last_doc.title,
                "query": action.get("query") or context.message_text,
                "summary": context.state.last_doc_summary,
            },
        )
        updates: StateUpdates = {}
        data = result.data or {}
        if isinstance(data, dict) and data.get("summary"):
            updates["last_doc_summary"] = data["summary"]
        return SkillResult(result.message or SERVICE_ERRORS["documents"].not_found, updates)


skill = DocumentsSkill()
