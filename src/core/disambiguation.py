"""Numbered-choice disambiguation across two turns.

``present_choices`` numbers the candidates and returns the prompt text with
the state delta that persists the round. ``resolve_choice`` resolves the
next reply against that round only. Rounds older than the pending-state TTL
(5 minutes by default) never resolve.
"""

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

from src.core.exceptions import (
    AmbiguousChoiceError,
    NoPendingDisambiguationError,
    StaleDisambiguationError,
)
from src.core.matching import title_matches
from src.core.session import (
    CandidateMatch,
    PendingDisambiguation,
    StateUpdates,
    is_fresh,
    set_disambiguation,
)

logger = logging.getLogger(__name__)

# Longer replies are new requests, not restated titles.
MAX_RESTATED_WORDS = 8

ALL_WORDS = frozenset({"both", "all", "both of them", "all of them", "all of these", "both of these"})

ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
}

_INDEX_RE = re.compile(r"^(?:#|no\.?\s*|number\s+|option\s+|the\s+)?(\d{1,3})(?:st|nd|rd|th)?(?:\s+one)?$")
_ORDINAL_RE = re.compile(r"^(?:the\s+)?(" + "|".join(ORDINALS) + r"|last)(?:\s+one)?$")


def _clean(reply: str) -> str:
    return re.sub(r"\s+", " ", reply.lower()).strip(" \t\n.!?,")


def parse_index(reply: str, count: int | None = None) -> int | None:
    """1-based index from "2", "#2", "option 2", "the second one", "last"."""
    text = _clean(reply)
    m = _INDEX_RE.match(text)
    if m:
        return int(m.group(1))
    m = _ORDINAL_RE.match(text)
    if m:
        if m.group(1) == "last":
            return count
        return ORDINALS[m.group(1)]
    return None


def looks_like_choice(reply: str) -> bool:
    """A reply that only makes sense as an answer to a numbered list."""
    return parse_index(reply) is not None or _clean(reply) in ALL_WORDS


def _describe(item: dict[str, Any]) -> str:
    return str(item.get("title") or item.get("name") or "(untitled)")


def present_choices(
    action: str,
    candidates: list[dict[str, Any]],
    now: datetime,
    *,
    describe: Callable[[dict[str, Any]], str] = _describe,
    source_list_key: str | None = None,
    allow_all: bool = False,
    context: dict[str, Any] | None = None,
    header: str | None = None,
) -> tuple[str, StateUpdates]:
    """Number the candidates 1..N and persist them as a disambiguation round."""
    matches = [
        CandidateMatch(
            item=item,
            source_list=str(item.get(source_list_key)) if source_list_key and item.get(source_list_key) else None,
            display_index=i,
        )
        for i, item in enumerate(candidates, start=1)
    ]
    pending = PendingDisambiguation(
        action=action,
        matches=matches,
        timestamp=now,
        allow_all=allow_all,
        context=context or {},
    )

    lines = [header or f"I found {len(matches)} matches:", ""]
    lines += [f"{m.display_index}. {describe(m.item)}" for m in matches]
    lines.append("")
    if allow_all and len(matches) == 2:
        lines.append('Reply with 1, 2, or "both".')
    elif allow_all:
        lines.append(f'Reply with a number (1-{len(matches)}) or "all".')
    else:
        lines.append(f"Reply with a number (1-{len(matches)}).")
    return "\n".join(lines), set_disambiguation(pending)


def resolve_choice(
    reply: str,
    pending: PendingDisambiguation | None,
    now: datetime,
) -> list[CandidateMatch]:
    """Resolve a reply against the persisted round.

    Raises:
        NoPendingDisambiguationError: there is no round.
        StaleDisambiguationError: the round expired.
        AmbiguousChoiceError: the reply does not single out candidates;
            ``candidate_count`` is how many candidates it matched (0 when
            it matched none).
    """
    if pending is None:
        raise NoPendingDisambiguationError("No pending disambiguation")
    if not is_fresh(pending.timestamp, now):
        raise StaleDisambiguationError("Disambiguation round expired")

    count = len(pending.matches)
    text = _clean(reply)

    index = parse_index(text, count)
    if index is not None:
        if 1 <= index <= count:
            return [pending.matches[index - 1]]
        raise AmbiguousChoiceError(f"Please reply with a number between 1 and {count}.", count)

    if text in ALL_WORDS:
        if pending.allow_all:
            return list(pending.matches)
        raise AmbiguousChoiceError(f"Please pick one: reply with a number between 1 and {count}.", count)

    restated = []
    if len(text.split()) <= MAX_RESTATED_WORDS:
        restated = [m for m in pending.matches if title_matches(text, m.title)]
    if len(restated) == 1:
        return restated
    if restated:
        raise AmbiguousChoiceError(
            f"That still matches {len(restated)} items. Please reply with a number between 1 and {count}.",
            len(restated),
        )
    raise AmbiguousChoiceError("Reply does not match any candidate.", 0)
