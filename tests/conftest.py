"""
Pytest configuration and fixtures
"""
from typing import Optional

import pytest

from colosseum.data.agent_store import SqliteAgentStore
from colosseum.data.seed import seed_agents
from colosseum.domain.models import StockInfo
from colosseum.prompts.composer import PromptComposer
from colosseum.prompts.model_resolver import ModelResolver
from colosseum.services.completion import CompletionResult
from colosseum.services.context_builder import RoundContext


class FakeCompletion:
    """Scripted completion capability; records every call it receives."""

    def __init__(self, results=None, *, configured: bool = True):
        self.results = list(results or [])
        self.calls = []
        self.is_configured = configured

    async def complete(self, model, messages, max_tokens, temperature) -> CompletionResult:
        self.calls.append(
            {
                "model": model,
                "messages": list(messages),
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if not self.results:
            return CompletionResult(content=None, model=model, error="no scripted result")
        result = self.results.pop(0)
        if isinstance(result, str):
            return CompletionResult(content=result, model=model)
        return result


@pytest.fixture
def store(tmp_path) -> SqliteAgentStore:
    """Empty registry backed by a fresh sqlite file"""
    return SqliteAgentStore(str(tmp_path / "registry.sqlite3"))


@pytest.fixture
def seeded_store(store) -> SqliteAgentStore:
    seed_agents(store)
    return store


@pytest.fixture
def stocks() -> list:
    return [
        StockInfo(ticker="AAA", name="Alpha Chips", sector="Tech", beta=1.2, price=100.0),
        StockInfo(ticker="BBB", name="Beta Systems", sector="Tech", beta=1.2, price=50.0),
        StockInfo(ticker="CCC", name="Gamma Energy", sector="Energy", beta=0.8, price=25.0),
    ]


def make_context(store, completion: Optional[FakeCompletion] = None) -> RoundContext:
    return RoundContext(
        store=store,
        composer=PromptComposer(store),
        resolver=ModelResolver(store, default_model=None),
        completion=completion or FakeCompletion(),
    )
