"""
Tests for the admin CLI
"""
from colosseum.data.agent_store import SqliteAgentStore
from colosseum.orchestrator import main
from colosseum.services.orders import OrderDesk


def test_tree_and_compose(tmp_path, capsys):
    db = str(tmp_path / "cli.sqlite3")
    assert main(["--db", db, "tree"]) == 0
    out = capsys.readouterr().out
    assert "The General <the_general>" in out

    assert main(["--db", db, "compose", "custom_trader", "--custom", "Buy oil"]) == 0
    assert "Buy oil" in capsys.readouterr().out


def test_set_prompt_and_activate(tmp_path):
    db = str(tmp_path / "cli.sqlite3")
    prompt_file = tmp_path / "prompt.txt"
    prompt_file.write_text("Sharper contrarian.", encoding="utf-8")

    assert main(["--db", db, "set-prompt", "contrarian", str(prompt_file)]) == 0
    store = SqliteAgentStore(db)
    assert store.get_active_version("contrarian").prompt_text == "Sharper contrarian."

    assert main(["--db", db, "activate", "contrarian", "1"]) == 0
    assert store.get_active_version("contrarian").version == 1


def test_set_model_and_errors(tmp_path, capsys):
    db = str(tmp_path / "cli.sqlite3")
    assert main(["--db", db, "set-model", "contrarian", "openai/gpt-4o"]) == 0
    assert main(["--db", db, "model", "contrarian"]) == 0
    assert capsys.readouterr().out.strip().endswith("openai/gpt-4o")

    assert main(["--db", db, "activate", "contrarian", "42"]) == 1
    assert "[orchestrator] Error" in capsys.readouterr().out


def test_set_prompt_with_missing_file_reports_error(tmp_path, capsys):
    db = str(tmp_path / "cli.sqlite3")
    missing = str(tmp_path / "nope.txt")
    assert main(["--db", db, "set-prompt", "contrarian", missing]) == 1
    assert "[orchestrator] Error" in capsys.readouterr().out
    assert SqliteAgentStore(db).get_active_version("contrarian").version == 1


def test_order_commands(tmp_path, capsys, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    db = str(tmp_path / "cli.sqlite3")
    assert main(["--db", db, "order", "trading_lt", "Be bolder"]) == 0
    assert "Be bolder -> (no changes)" in capsys.readouterr().out

    store = SqliteAgentStore(db)
    desk = OrderDesk(store)
    reply = '{"changes": [{"agent_id": "contrarian", "new_prompt": "Fade harder."}]}'
    to_approve = desk.record_proposal("Fade harder", "trading_lt", reply)
    to_reject = desk.record_proposal("Fade less", "trading_lt", reply)

    assert main(["--db", db, "orders", "--agent", "contrarian"]) == 0
    out = capsys.readouterr().out
    assert f"#{to_reject.id} [pending]" in out
    assert f"#{to_approve.id} [pending]" in out

    assert main(["--db", db, "approve", str(to_approve.id)]) == 0
    assert "status executed" in capsys.readouterr().out
    assert store.get_active_version("contrarian").prompt_text == "Fade harder."

    assert main(["--db", db, "reject", str(to_reject.id)]) == 0
    assert main(["--db", db, "approve", str(to_reject.id)]) == 1
    assert "already rejected" in capsys.readouterr().out
