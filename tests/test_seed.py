"""
Tests for the default hierarchy seed
"""
from colosseum.data.seed import SEED_AGENTS, seed_agents


def test_seed_is_idempotent(store):
    assert seed_agents(store) == len(SEED_AGENTS)
    assert seed_agents(store) == 0
    assert len(store.list_nodes()) == len(SEED_AGENTS)


def test_seed_activates_version_one(store):
    seed_agents(store)
    for seed in SEED_AGENTS:
        active = store.get_active_version(seed["id"])
        assert active.version == 1
        assert active.created_by == "system"


def test_seed_keeps_admin_edits(store):
    seed_agents(store)
    store.insert_version("contrarian", "edited by admin")
    seed_agents(store)
    assert store.get_active_version("contrarian").prompt_text == "edited by admin"
