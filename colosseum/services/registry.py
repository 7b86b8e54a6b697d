"""Administrative operations on the agent hierarchy."""

from __future__ import annotations

import re
from typing import Optional

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.domain.errors import AgentNotFound, ColosseumError, RegistryError
from colosseum.domain.models import AgentNode, AgentTreeNode, PromptVersion, Rank
from colosseum.prompts.model_resolver import ModelResolver

PREVIEW_CHARS = 100
REPORTS_HEADER = "## DIRECT REPORTS"
REPORTS_FOOTER = "## END DIRECT REPORTS"
REPORTS_BLOCK_PATTERN = re.compile(r"\n*## DIRECT REPORTS\n[\s\S]*?## END DIRECT REPORTS")
SYNC_NOTE = "Auto-sync: updated DIRECT REPORTS block"


def _parse_rank(rank) -> Rank:
    try:
        return Rank(rank)
    except ValueError as exc:
        raise ValueError(f"Unknown rank: {rank!r}") from exc


def _report_line(node: AgentNode) -> str:
    return f"{node.name} (id: {node.id}) - {node.description or 'No description'}"


class AgentRegistry:
    """Writes that keep the hierarchy valid, plus the admin tree view."""

    def __init__(self, store: SqliteAgentStore, resolver: Optional[ModelResolver] = None):
        self.store = store
        self.resolver = resolver or ModelResolver(store)

    def _require(self, agent_id: str) -> AgentNode:
        node = self.store.get_node(agent_id)
        if node is None:
            raise AgentNotFound(agent_id)
        return node

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def create_agent(
        self,
        agent_id: str,
        name: str,
        rank,
        type: str,
        parent_id: Optional[str],
        description: Optional[str],
        prompt: str,
    ) -> AgentNode:
        """Insert a node with version 1 of its prompt active.

        There is at most one general and it has no parent; every other rank
        needs an existing parent of strictly higher rank. The node is placed after its last sibling.
        """
        rank = _parse_rank(rank)
        if not prompt or not prompt.strip():
            raise ValueError("prompt text must be a non-empty string")
        if self.store.get_node(agent_id) is not None:
            raise RegistryError(f"Agent '{agent_id}' already exists")

        if rank is Rank.GENERAL:
            if parent_id:
                raise RegistryError("A general cannot have a parent")
            existing = next((n for n in self.store.list_nodes() if n.rank is Rank.GENERAL), None)
            if existing is not None:
                raise RegistryError(f"General '{existing.id}' already leads the hierarchy")
        else:
            if not parent_id:
                raise RegistryError(f"A {rank.value} needs a parent")
            parent = self.store.get_node(parent_id)
            if parent is None:
                raise RegistryError(f"Parent '{parent_id}' does not exist")
            if not parent.rank.outranks(rank):
                raise RegistryError(
                    f"Parent '{parent_id}' ({parent.rank.value}) must outrank a {rank.value}"
                )

        last = self.store.max_child_sort_order(parent_id or None)
        node = self.store.insert_node(
            AgentNode(
                id=agent_id,
                name=name,
                rank=rank,
                type=type,
                parent_id=parent_id or None,
                description=description,
                sort_order=0 if last is None else last + 1,
            )
        )
        self.store.insert_version(agent_id, prompt, "Initial prompt", "admin")
        print(f"[registry] Created {rank.value} '{agent_id}' under '{parent_id}'")
        return node

    def deactivate_agent(self, agent_id: str) -> AgentNode:
        node = self._require(agent_id)
        if node.rank in (Rank.GENERAL, Rank.LIEUTENANT):
            raise RegistryError(f"Refusing to deactivate {node.rank.value} '{agent_id}'")
        self.store.set_node_active(agent_id, False)
        print(f"[registry] Deactivated '{agent_id}'")
        return self._require(agent_id)

    def update_agent_metadata(
        self,
        agent_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> AgentNode:
        self._require(agent_id)
        self.store.update_node_metadata(agent_id, name=name, description=description)
        return self._require(agent_id)

    # ------------------------------------------------------------------
    # Prompts and models
    # ------------------------------------------------------------------

    def create_prompt_version(
        self, agent_id: str, text: str, notes: str = "", author: str = "admin"
    ) -> PromptVersion:
        version = self.store.insert_version(agent_id, text, notes, author)
        print(f"[registry] '{agent_id}' prompt v{version.version} is now active ({author})")
        return version

    def activate_prompt_version(self, agent_id: str, version: int) -> PromptVersion:
        self._require(agent_id)
        activated = self.store.activate_version(agent_id, version)
        print(f"[registry] '{agent_id}' rolled to prompt v{version}")
        return activated

    def set_model_override(self, agent_id: str, model: Optional[str]) -> None:
        model = (model or "").strip() or None
        self.store.update_model_override(agent_id, model)
        print(f"[registry] '{agent_id}' model override -> {model or '(inherit)'}")

    def set_all_model_overrides(self, model: Optional[str]) -> int:
        model = (model or "").strip() or None
        count = self.store.update_all_model_overrides(model)
        print(f"[registry] Set model override on {count} agents -> {model or '(inherit)'}")
        return count

    # ------------------------------------------------------------------
    # Tree view
    # ------------------------------------------------------------------

    def _effective_model(self, agent_id: str) -> Optional[str]:
        try:
            return self.resolver.resolve_model(agent_id)
        except ColosseumError as exc:
            print(f"[registry] No effective model for '{agent_id}': {exc}")
            return None

    def agent_tree(self) -> list[AgentTreeNode]:
        """Nested display tree of every node, roots first, siblings by sort order."""
        nodes = self.store.list_nodes()
        known = {node.id for node in nodes}
        tree_nodes: dict[str, AgentTreeNode] = {}
        for node in nodes:
            active = self.store.get_active_version(node.id)
            preview = active.prompt_text[:PREVIEW_CHARS] + "..." if active else ""
            tree_nodes[node.id] = AgentTreeNode(
                id=node.id,
                name=node.name,
                rank=node.rank,
                type=node.type,
                description=node.description,
                effective_model=self._effective_model(node.id),
                model_override=node.model_override,
                is_active=node.is_active,
                active_version=active.version if active else None,
                prompt_preview=preview,
            )

        roots: list[AgentTreeNode] = []
        for node in nodes:
            if node.parent_id and node.parent_id in known:
                tree_nodes[node.parent_id].children.append(tree_nodes[node.id])
            else:
                roots.append(tree_nodes[node.id])
        return roots

    # ------------------------------------------------------------------
    # Chain of command
    # ------------------------------------------------------------------

    def direct_reports_block(self, agent_id: str) -> Optional[str]:
        """The DIRECT REPORTS section for a general or lieutenant; ``None`` for soldiers."""
        agent = self._require(agent_id)
        if agent.rank is Rank.SOLDIER:
            return None

        active_nodes = self.store.list_nodes(include_inactive=False)
        lines = [
            "",
            "",
            REPORTS_HEADER,
            "(This is the AUTHORITATIVE list of agents you manage. If any other part "
            "of your prompt lists different agents, THIS section is correct.)",
            "",
        ]

        if agent.rank is Rank.GENERAL:
            lines.append(
                "Use the lieutenant's exact agent_id in your DELEGATION. When an order "
                "affects a soldier, delegate to their lieutenant, never skip the chain."
            )
            lines.append("")
            for lt in (n for n in active_nodes if n.rank is Rank.LIEUTENANT):
                lines.append(f"DIVISION: {_report_line(lt)}")
                soldiers = [n for n in active_nodes if n.parent_id == lt.id and n.rank is Rank.SOLDIER]
                if soldiers:
                    lines.append("  Soldiers:")
                    lines.extend(f"  - {_report_line(s)}" for s in soldiers)
                else:
                    lines.append("  Soldiers: (none)")
                lines.append("")
            direct = [n for n in active_nodes if n.parent_id == agent_id and n.rank is Rank.SOLDIER]
            if direct:
                lines.append("DIRECT SOLDIERS (no lieutenant):")
                lines.extend(f"  - {_report_line(s)}" for s in direct)
                lines.append("")
        else:
            lines.append("Use the soldier's exact agent_id in your changes JSON response.")
            lines.append("")
            soldiers = [n for n in active_nodes if n.parent_id == agent_id and n.rank is Rank.SOLDIER]
            if not soldiers:
                lines.append("(No soldiers currently assigned to you.)")
            for i, s in enumerate(soldiers, start=1):
                lines.append(f"{i}. {_report_line(s)}")

        lines.append(REPORTS_FOOTER)
        return "\n".join(lines)

    def sync_chain_of_command(self) -> list[str]:
        """Rewrite the DIRECT REPORTS block of every active leader.

        A new prompt version is created only when the text changes, so
        repeated runs are no-ops. Returns the ids of agents that got a new
        version.
        """
        updated: list[str] = []
        leaders = [
            n
            for n in self.store.list_nodes(include_inactive=False)
            if n.rank in (Rank.GENERAL, Rank.LIEUTENANT)
        ]
        for leader in leaders:
            block = self.direct_reports_block(leader.id)
            active = self.store.get_active_version(leader.id)
            if block is None or active is None:
                continue
            current = active.prompt_text
            if REPORTS_BLOCK_PATTERN.search(current):
                new_text = REPORTS_BLOCK_PATTERN.sub(lambda _: block, current, count=1)
            else:
                new_text = current.rstrip() + block
            if new_text == current:
                continue
            self.store.insert_version(leader.id, new_text, SYNC_NOTE, "system")
            updated.append(leader.id)
            print(f"[registry] Updated DIRECT REPORTS for {leader.name} ({leader.id})")
        return updated


__all__ = ["AgentRegistry", "PREVIEW_CHARS", "REPORTS_FOOTER", "REPORTS_HEADER"]
