"""Compose the instruction text an agent receives from its chain of command."""

from __future__ import annotations

from typing import Optional

from colosseum.data.agent_store import AgentStore
from colosseum.domain.errors import AgentNotFound, BrokenHierarchy, PromptVersionNotFound
from colosseum.domain.models import AgentNode, EffectivePrompt, PromptSection, PromptVersion

USER_CUSTOM_PROMPT_MARKER = "{USER_CUSTOM_PROMPT}"
SECTION_SEPARATOR = "\n\n"


def build_chain(nodes_by_id: dict[str, AgentNode], agent_id: str) -> list[AgentNode]:
    """Walk parent references from ``agent_id`` up to the root.

    Returns the chain in root-to-leaf order. Every step is checked: the
    parent must exist, must not already be in the chain, and must outrank
    its child.
    """
    current = nodes_by_id.get(agent_id)
    if current is None:
        raise AgentNotFound(agent_id)

    chain = [current]
    seen = {current.id}
    while current.parent_id:
        parent = nodes_by_id.get(current.parent_id)
        if parent is None:
            raise BrokenHierarchy(
                f"Agent '{current.id}' references missing parent '{current.parent_id}'"
            )
        if parent.id in seen:
            raise BrokenHierarchy(f"Cycle detected at '{parent.id}' while resolving '{agent_id}'")
        if not parent.rank.outranks(current.rank):
            raise BrokenHierarchy(
                f"Parent '{parent.id}' ({parent.rank.value}) does not outrank "
                f"'{current.id}' ({current.rank.value})"
            )
        chain.append(parent)
        seen.add(parent.id)
        current = parent

    chain.reverse()
    return chain


class PromptComposer:
    """Concatenates the active prompt of every node from the root to the target."""

    def __init__(self, store: AgentStore):
        self.store = store

    def ancestor_chain(self, agent_id: str) -> list[AgentNode]:
        nodes_by_id = {node.id: node for node in self.store.list_nodes()}
        try:
            return build_chain(nodes_by_id, agent_id)
        except BrokenHierarchy as exc:
            print(f"[prompt_composer] Broken hierarchy for '{agent_id}': {exc}")
            raise

    def compose(
        self, agent_id: str, *, user_custom_prompt: Optional[str] = None
    ) -> EffectivePrompt:
        """Return the composed text plus per-node sections for provenance.

        Nodes without an active version are skipped. If no node in the chain
        has one, :class:`PromptVersionNotFound` is raised instead of returning
        an empty prompt. ``{USER_CUSTOM_PROMPT}`` is replaced in the composed
        text only when ``user_custom_prompt`` is given.
        """
        sections: list[PromptSection] = []
        for node in self.ancestor_chain(agent_id):
            active = self.store.get_active_version(node.id)
            if active is None:
                print(f"[prompt_composer] Skipping '{node.id}': no active prompt version")
                continue
            sections.append(
                PromptSection(
                    agent_id=node.id,
                    agent_name=node.name,
                    rank=node.rank,
                    text=active.prompt_text,
                )
            )

        if not sections:
            raise PromptVersionNotFound(agent_id)

        text = SECTION_SEPARATOR.join(section.text for section in sections)
        if user_custom_prompt is not None:
            text = text.replace(USER_CUSTOM_PROMPT_MARKER, user_custom_prompt)
        return EffectivePrompt(text=text, sections=sections)

    def effective_prompt(self, agent_id: str) -> PromptVersion:
        """The node's own active version (used for display)."""
        if self.store.get_node(agent_id) is None:
            raise AgentNotFound(agent_id)
        active = self.store.get_active_version(agent_id)
        if active is None:
            raise PromptVersionNotFound(agent_id)
        return active


__all__ = [
    "PromptComposer",
    "SECTION_SEPARATOR",
    "USER_CUSTOM_PROMPT_MARKER",
    "build_chain",
]
