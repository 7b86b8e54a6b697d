"""
Tests for round context assembly
"""
from colosseum.data.seed import SEED_AGENTS
from colosseum.services.context_builder import build_round_context
from conftest import FakeCompletion


def test_build_round_context_seeds_registry(tmp_path):
    fake = FakeCompletion()
    ctx = build_round_context(db_path=str(tmp_path / "ctx.sqlite3"), completion=fake)

    assert len(ctx.store.list_nodes()) == len(SEED_AGENTS)
    assert ctx.completion is fake
    assert ctx.completion_available is True
    assert ctx.composer.compose("macro_news").sections[0].agent_id == "the_general"


def test_build_round_context_without_seed(tmp_path):
    ctx = build_round_context(
        db_path=str(tmp_path / "ctx.sqlite3"), completion=FakeCompletion(configured=False), seed=False
    )
    assert ctx.store.list_nodes() == []
    assert ctx.completion_available is False
