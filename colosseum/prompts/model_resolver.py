from __future__ import annotations

import os
from typing import Optional

from colosseum.data.agent_store import AgentStore
from colosseum.domain.errors import NoModelConfigured
from colosseum.prompts.composer import build_chain

SYSTEM_MODEL_KEY = "system_model"
DEFAULT_SYSTEM_MODEL = os.getenv("SYSTEM_MODEL") or None


class ModelResolver:
    """Nearest non-empty model override wins, then the system default.

    Walks the same chain as :class:`PromptComposer` but bottom-up and stops
    at the first hit instead of merging every level.
    """

    def __init__(self, store: AgentStore, *, default_model: Optional[str] = DEFAULT_SYSTEM_MODEL):
        self.store = store
        self.default_model = default_model

    def resolve_model(self, agent_id: str) -> str:
        nodes_by_id = {node.id: node for node in self.store.list_nodes()}
        chain = build_chain(nodes_by_id, agent_id)

        for node in reversed(chain):
            override = (node.model_override or "").strip()
            if override:
                return override

        system_model = (self.store.get_config(SYSTEM_MODEL_KEY) or "").strip()
        if system_model:
            return system_model

        if self.default_model:
            return self.default_model

        print(f"[model_resolver] No model configured for '{agent_id}'")
        raise NoModelConfigured(agent_id)

    def system_model(self) -> Optional[str]:
        value = (self.store.get_config(SYSTEM_MODEL_KEY) or "").strip()
        return value or self.default_model


__all__ = ["ModelResolver", "SYSTEM_MODEL_KEY"]
