"""
Tests for the sqlite-backed agent store
"""
import pytest

from colosseum.domain.errors import AgentNotFound, PromptVersionNotFound, RegistryError
from colosseum.domain.models import AgentNode


def _add(store, agent_id, rank="soldier", parent_id=None):
    return store.insert_node(AgentNode(id=agent_id, name=agent_id.title(), rank=rank, parent_id=parent_id))


def test_bootstrap_inserts_default_config(store):
    assert store.get_config("system_model") == "google/gemini-2.5-flash"
    assert store.get_config("auto_approve") == "false"
    assert store.get_config("missing", "fallback") == "fallback"


def test_set_and_delete_config(store):
    store.set_config("system_model", "openai/gpt-4o")
    assert store.get_config("system_model") == "openai/gpt-4o"
    store.delete_config("system_model")
    assert store.get_config("system_model") is None


def test_insert_node_rejects_duplicate_id(store):
    _add(store, "boss", rank="general")
    with pytest.raises(RegistryError):
        _add(store, "boss", rank="general")


def test_versions_increment_and_only_one_is_active(store):
    _add(store, "boss", rank="general")
    v1 = store.insert_version("boss", "first")
    v2 = store.insert_version("boss", "second")
    v3 = store.insert_version("boss", "third")

    assert (v1.version, v2.version, v3.version) == (1, 2, 3)
    active = [v for v in store.list_versions("boss") if v.is_active]
    assert [v.version for v in active] == [3]
    assert store.get_active_version("boss").prompt_text == "third"


def test_activate_version_rolls_back(store):
    _add(store, "boss", rank="general")
    store.insert_version("boss", "first")
    store.insert_version("boss", "second")

    activated = store.activate_version("boss", 1)

    assert activated.is_active
    assert store.get_active_version("boss").version == 1
    assert sum(1 for v in store.list_versions("boss") if v.is_active) == 1


def test_activate_unknown_version_raises(store):
    _add(store, "boss", rank="general")
    store.insert_version("boss", "first")
    with pytest.raises(PromptVersionNotFound):
        store.activate_version("boss", 7)


def test_insert_version_validates_input(store):
    with pytest.raises(AgentNotFound):
        store.insert_version("ghost", "text")
    _add(store, "boss", rank="general")
    with pytest.raises(ValueError):
        store.insert_version("boss", "   ")


def test_insert_inactive_version_keeps_current(store):
    _add(store, "boss", rank="general")
    store.insert_version("boss", "live")
    draft = store.insert_version("boss", "draft", activate=False)
    assert not draft.is_active
    assert store.get_active_version("boss").prompt_text == "live"


def test_versions_frame_newest_first(store):
    _add(store, "boss", rank="general")
    store.insert_version("boss", "a")
    store.insert_version("boss", "b")
    df = store.versions_frame("boss")
    assert list(df["version"]) == [2, 1]


def test_node_updates(store):
    _add(store, "boss", rank="general")
    _add(store, "grunt", parent_id="boss")

    store.update_model_override("grunt", "openai/gpt-4o")
    store.update_node_metadata("grunt", name="Grunt Prime")
    store.set_node_active("grunt", False)

    node = store.get_node("grunt")
    assert node.model_override == "openai/gpt-4o"
    assert node.name == "Grunt Prime"
    assert node.is_active is False
    assert [n.id for n in store.list_nodes(include_inactive=False)] == ["boss"]
    assert store.max_child_sort_order("boss") == 0
    assert store.max_child_sort_order("nobody") is None

    with pytest.raises(AgentNotFound):
        store.update_model_override("ghost", None)
