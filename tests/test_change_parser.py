"""
Tests for reading proposed agent changes out of lieutenant replies
"""
import pytest

from colosseum.domain.models import ChangeAction, ProposedChange
from colosseum.parsing.change_parser import extract_agent_metadata, parse_proposed_changes


def test_wrapped_changes_are_parsed_with_defaults():
    text = (
        'Here you go:\n```json\n{"summary": "tightened", "changes": ['
        '{"agent_id": "contrarian", "new_prompt": "Buy fear."},'
        '{"agentId": "yolo_trader", "agentName": "YOLO", "whatChanged": "Calmer", "newPrompt": "Size down."}'
        "]}\n```"
    )
    changes = parse_proposed_changes(text)
    assert [c.agent_id for c in changes] == ["contrarian", "yolo_trader"]
    assert changes[0].agent_name == "contrarian"
    assert changes[0].what_changed == "Updated"
    assert changes[0].action is ChangeAction.UPDATE_PROMPT
    assert changes[1].agent_name == "YOLO"
    assert changes[1].what_changed == "Calmer"
    assert changes[1].new_prompt == "Size down."


def test_bare_array_of_changes_is_accepted():
    text = 'Changes: [{"agent_id": "contrarian", "new_prompt": "Buy fear."}]'
    changes = parse_proposed_changes(text)
    assert [c.agent_id for c in changes] == ["contrarian"]


def test_single_change_object_is_accepted():
    changes = parse_proposed_changes('{"agent_id": "contrarian", "new_prompt": "Buy fear."}')
    assert len(changes) == 1
    assert changes[0].new_prompt == "Buy fear."


def test_change_list_under_other_key_is_accepted():
    text = '{"updates": [{"agent_id": "contrarian", "new_prompt": "Buy fear."}], "note": "ok"}'
    assert [c.agent_id for c in parse_proposed_changes(text)] == ["contrarian"]


def test_entries_without_id_or_prompt_are_dropped():
    text = (
        '{"changes": [{"agent_id": "contrarian"}, {"new_prompt": "orphan"}, "junk",'
        '{"agent_id": "yolo_trader", "new_prompt": "Size down."}]}'
    )
    assert [c.agent_id for c in parse_proposed_changes(text)] == ["yolo_trader"]


def test_entry_with_unknown_rank_is_dropped():
    text = '{"changes": [{"agent_id": "x", "new_prompt": "p", "action": "create_agent", "rank": "captain"}]}'
    assert parse_proposed_changes(text) == []


@pytest.mark.parametrize("text", [None, "", "no json here", '{"changes": []}', '{"summary": "nothing"}'])
def test_replies_without_changes_yield_empty_list(text):
    assert parse_proposed_changes(text) == []


def test_create_agent_fields_are_carried():
    text = (
        '{"changes": [{"agent_id": "blitz", "action": "create_agent", "rank": "soldier",'
        '"type": "trading", "parent_id": "trading_lt", "new_name": "Blitz",'
        '"description": "Fast hands", "new_prompt": "Trade fast."}]}'
    )
    (change,) = parse_proposed_changes(text)
    assert change.action is ChangeAction.CREATE_AGENT
    assert change.rank.value == "soldier"
    assert change.parent_id == "trading_lt"
    assert change.new_name == "Blitz"
    assert change.new_description == "Fast hands"


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"new_name": "Explicit"}, "Explicit"),
        ({"new_prompt": "You are 'Steady Eddie', a calm trader."}, "Steady Eddie"),
        ({"what_changed": "Agent renamed to 'Bold Bob'"}, "Bold Bob"),
        ({"what_changed": "New name: Quiet Quinn"}, "Quiet Quinn"),
        ({"what_changed": "Tweaked risk"}, None),
    ],
)
def test_extract_agent_metadata_name(fields, expected):
    base = {"agent_id": "contrarian", "new_prompt": "Buy fear."}
    base.update(fields)
    name, description = extract_agent_metadata(ProposedChange(**base))
    assert name == expected
    assert description is None


def test_extract_agent_metadata_description():
    change = ProposedChange(agent_id="contrarian", new_prompt="p", new_description="Buys dips")
    assert extract_agent_metadata(change) == (None, "Buys dips")
