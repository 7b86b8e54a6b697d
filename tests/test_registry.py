"""
Tests for administrative registry operations
"""
import pytest

from colosseum.domain.errors import AgentNotFound, PromptVersionNotFound, RegistryError
from colosseum.services.registry import REPORTS_FOOTER, REPORTS_HEADER, AgentRegistry


@pytest.fixture
def registry(seeded_store):
    return AgentRegistry(seeded_store)


def test_create_agent_places_after_siblings(registry, seeded_store):
    node = registry.create_agent(
        "blitz", "Blitz Trader", "soldier", "trading", "trading_lt", "Fast hands", "Trade fast."
    )
    assert node.sort_order == 4
    assert seeded_store.get_active_version("blitz").version == 1


@pytest.mark.parametrize(
    "rank, parent_id",
    [
        ("general", "the_general"),
        ("general", None),
        ("soldier", None),
        ("soldier", "ghost"),
        ("lieutenant", "trading_lt"),
        ("soldier", "momentum_trader"),
    ],
)
def test_create_agent_rejects_invalid_placement(registry, rank, parent_id):
    with pytest.raises(RegistryError):
        registry.create_agent("new_one", "New", rank, "trading", parent_id, None, "prompt")


def test_create_agent_rejects_duplicate_and_bad_rank(registry):
    with pytest.raises(RegistryError):
        registry.create_agent("contrarian", "Dup", "soldier", "trading", "trading_lt", None, "p")
    with pytest.raises(ValueError):
        registry.create_agent("x", "X", "colonel", "trading", "the_general", None, "p")


def test_prompt_versions_and_rollback(registry, seeded_store):
    v2 = registry.create_prompt_version("contrarian", "Fade harder.", "tuning")
    assert v2.version == 2 and v2.is_active
    registry.activate_prompt_version("contrarian", 1)
    assert seeded_store.get_active_version("contrarian").version == 1
    with pytest.raises(PromptVersionNotFound):
        registry.activate_prompt_version("contrarian", 9)
    with pytest.raises(AgentNotFound):
        registry.activate_prompt_version("ghost", 1)


def test_model_overrides(registry, seeded_store):
    registry.set_model_override("contrarian", "openai/gpt-4o")
    assert seeded_store.get_node("contrarian").model_override == "openai/gpt-4o"
    registry.set_model_override("contrarian", "  ")
    assert seeded_store.get_node("contrarian").model_override is None
    count = registry.set_all_model_overrides("x/model")
    assert count == len(seeded_store.list_nodes())


def test_deactivate_refuses_leaders(registry):
    with pytest.raises(RegistryError):
        registry.deactivate_agent("the_general")
    with pytest.raises(RegistryError):
        registry.deactivate_agent("market_lt")
    assert registry.deactivate_agent("yolo_trader").is_active is False


def test_update_metadata(registry):
    node = registry.update_agent_metadata("contrarian", description="Buys fear")
    assert node.description == "Buys fear"
    assert node.name == "Contrarian"


def test_agent_tree_nests_children(registry, seeded_store):
    seeded_store.update_model_override("trading_lt", "lt/model")
    roots = registry.agent_tree()

    assert [r.id for r in roots] == ["the_general"]
    general = roots[0]
    assert [c.id for c in general.children] == ["trading_lt", "market_lt"]
    trading = general.children[0]
    assert [c.id for c in trading.children] == [
        "momentum_trader",
        "contrarian",
        "yolo_trader",
        "custom_trader",
    ]
    assert trading.children[0].effective_model == "lt/model"
    assert general.effective_model == "google/gemini-2.5-flash"
    assert general.active_version == 1
    assert general.prompt_preview.endswith("...")
    assert len(general.prompt_preview) == 103


def test_direct_reports_block(registry):
    assert registry.direct_reports_block("contrarian") is None

    lt_block = registry.direct_reports_block("market_lt")
    assert REPORTS_HEADER in lt_block and lt_block.endswith(REPORTS_FOOTER)
    assert "1. Macro News Agent (id: macro_news)" in lt_block

    general_block = registry.direct_reports_block("the_general")
    assert "DIVISION: Trading Lieutenant (id: trading_lt)" in general_block
    assert "  - YOLO Trader (id: yolo_trader)" in general_block


def test_sync_chain_of_command_is_idempotent(registry, seeded_store):
    updated = registry.sync_chain_of_command()
    assert sorted(updated) == ["market_lt", "the_general", "trading_lt"]
    assert registry.sync_chain_of_command() == []

    text = seeded_store.get_active_version("trading_lt").prompt_text
    assert text.count(REPORTS_HEADER) == 1
    assert "Contrarian (id: contrarian)" in text


def test_sync_chain_reflects_deactivation(registry, seeded_store):
    registry.sync_chain_of_command()
    registry.deactivate_agent("yolo_trader")

    assert registry.sync_chain_of_command() == ["the_general", "trading_lt"]
    text = seeded_store.get_active_version("trading_lt").prompt_text
    assert "yolo_trader" not in text
    assert text.count(REPORTS_HEADER) == 1


def test_first_general_can_be_created_on_empty_registry(store):
    registry = AgentRegistry(store)
    registry.create_agent("boss", "Boss", "general", "command", None, None, "Lead.")
    with pytest.raises(RegistryError):
        registry.create_agent("boss2", "Boss 2", "general", "command", None, None, "Lead too.")
    assert [r.id for r in registry.agent_tree()] == ["boss"]
