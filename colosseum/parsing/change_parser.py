"""Read the agent changes a lieutenant proposes in reply to an admin order."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import ValidationError

from colosseum.domain.models import ChangeAction, ProposedChange
from colosseum.parsing.extractor import extract_json

PROMPT_NAME_PATTERN = re.compile(r"^\s*You are ['\"]([^'\"]+)['\"]")
RENAMED_PATTERN = re.compile(r"renamed to ['\"]([^'\"]+)['\"]", re.IGNORECASE)
NEW_NAME_PATTERN = re.compile(r"new name:\s*['\"]?([^'\",\n]+)", re.IGNORECASE)


def _first(entry: Mapping, *keys: str) -> Optional[str]:
    for key in keys:
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _looks_like_change(entry: Any) -> bool:
    return isinstance(entry, Mapping) and bool(
        _first(entry, "agent_id", "agentId") and _first(entry, "new_prompt", "newPrompt")
    )


def _to_change(entry: Mapping) -> Optional[ProposedChange]:
    agent_id = _first(entry, "agent_id", "agentId")
    new_prompt = _first(entry, "new_prompt", "newPrompt")
    if not agent_id or not new_prompt:
        return None
    try:
        return ProposedChange(
            agent_id=agent_id,
            agent_name=_first(entry, "agent_name", "agentName") or agent_id,
            what_changed=_first(entry, "what_changed", "whatChanged") or "Updated",
            new_prompt=new_prompt,
            action=_first(entry, "action") or ChangeAction.UPDATE_PROMPT.value,
            new_name=_first(entry, "new_name", "newName"),
            new_description=_first(entry, "new_description", "newDescription", "description"),
            rank=_first(entry, "rank"),
            type=_first(entry, "type"),
            parent_id=_first(entry, "parent_id", "parentId"),
        )
    except ValidationError as exc:
        print(f"[change_parser] Dropping change for '{agent_id}': {exc.errors()[0]['msg']}")
        return None


def _entries(text: str) -> list:
    wrapped = extract_json(text, required_key="changes")
    if wrapped is not None and isinstance(wrapped.get("changes"), list):
        return wrapped["changes"]

    array = extract_json(text, expect="array")
    if array is not None and any(_looks_like_change(e) for e in array):
        return array

    payload = extract_json(text)
    if payload is None:
        return []
    if _looks_like_change(payload):
        return [payload]
    for value in payload.values():
        if isinstance(value, list) and any(_looks_like_change(e) for e in value):
            return value
    return []


def parse_proposed_changes(text: Optional[str]) -> list[ProposedChange]:
    """Changes found in a lieutenant reply, in order.

    Accepts ``{"changes": [...]}``, a bare array of changes, a single change
    object, or any object holding a list of change-like entries. Entries
    without both an agent id and a replacement prompt are dropped.
    """
    if not text:
        return []
    changes = []
    for entry in _entries(text):
        if not isinstance(entry, Mapping):
            continue
        change = _to_change(entry)
        if change is not None:
            changes.append(change)
    return changes


def extract_agent_metadata(change: ProposedChange) -> tuple[Optional[str], Optional[str]]:
    """(name, description) an approved change implies for its agent.

    Explicit ``new_name``/``new_description`` win; otherwise the name is taken
    from a prompt opening with ``You are 'Name'`` or from a rename note in
    ``what_changed``.
    """
    name = change.new_name
    if not name:
        match = PROMPT_NAME_PATTERN.match(change.new_prompt or "")
        if match:
            name = match.group(1).strip()
    if not name:
        match = RENAMED_PATTERN.search(change.what_changed or "") or NEW_NAME_PATTERN.search(
            change.what_changed or ""
        )
        if match:
            name = match.group(1).strip()
    return name or None, change.new_description


__all__ = ["extract_agent_metadata", "parse_proposed_changes"]
