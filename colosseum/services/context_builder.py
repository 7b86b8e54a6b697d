"""Helpers to assemble the shared collaborators used by trade and news rounds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.data.seed import seed_agents
from colosseum.prompts.composer import PromptComposer
from colosseum.prompts.model_resolver import ModelResolver
from colosseum.services.completion import CompletionCapability, OpenRouterCompletion


@dataclass(frozen=True)
class RoundContext:
    """Bundle of registry and model access shared by every round flow."""

    store: SqliteAgentStore
    composer: PromptComposer
    resolver: ModelResolver
    completion: CompletionCapability

    @property
    def completion_available(self) -> bool:
        return bool(getattr(self.completion, "is_configured", True))


def build_round_context(
    *,
    db_path: Optional[str] = None,
    completion: Optional[CompletionCapability] = None,
    seed: bool = True,
) -> RoundContext:
    """Open the registry (seeding defaults on first use) and wire the round collaborators."""

    store = SqliteAgentStore(db_path)
    if seed:
        seed_agents(store)
    return RoundContext(
        store=store,
        composer=PromptComposer(store),
        resolver=ModelResolver(store),
        completion=completion or OpenRouterCompletion(),
    )


__all__ = ["RoundContext", "build_round_context"]
