import os
import sqlite3
from typing import Any, Iterable, Optional

import pandas as pd


DB_PATH = os.getenv("DB_PATH", "colosseum.sqlite3")

DEFAULT_SYSTEM_CONFIG = {
    "system_model": "google/gemini-2.5-flash",
    "auto_approve": "false",
}


def get_connection(path: Optional[str] = None) -> sqlite3.Connection:
    """Return a sqlite3 connection with sensible defaults."""
    db_path = path or DB_PATH
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables if they do not exist."""
    cur = conn.cursor()
    # Agent hierarchy (one row per node, parent_id null only for the general)
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS agents (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            rank TEXT NOT NULL,
            type TEXT NOT NULL,
            parent_id TEXT,
            description TEXT,
            model_override TEXT,
            is_active INTEGER DEFAULT 1,
            sort_order INTEGER DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        );
        """
    )
    # Append-only prompt history (at most one active row per agent)
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS agent_prompts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            agent_id TEXT NOT NULL,
            version INTEGER NOT NULL,
            prompt_text TEXT NOT NULL,
            notes TEXT,
            created_by TEXT DEFAULT 'admin',
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            is_active INTEGER DEFAULT 0,
            UNIQUE(agent_id, version)
        );
        """
    )
    # Admin orders: one row per command, proposed changes stored as JSON
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS agent_orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_text TEXT NOT NULL,
            lieutenant_id TEXT,
            lieutenant_response TEXT,
            affected_agents TEXT,
            proposed_changes TEXT,
            status TEXT DEFAULT 'pending',
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            executed_at TEXT
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS agent_system_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );
        """
    )
    cur.executemany(
        "INSERT OR IGNORE INTO agent_system_config (key, value) VALUES (?, ?)",
        list(DEFAULT_SYSTEM_CONFIG.items()),
    )
    conn.commit()


def bootstrap_db(path: Optional[str] = None) -> None:
    """Ensure the SQLite database exists with the expected schema."""
    conn = get_connection(path)
    try:
        init_db(conn)
    finally:
        conn.close()


def df_from_query(
    sql: str,
    params: Iterable[Any] | None = None,
    *,
    path: Optional[str] = None,
) -> pd.DataFrame:
    conn = get_connection(path)
    try:
        df = pd.read_sql_query(sql, conn, params=list(params or []))
        return df
    finally:
        conn.close()
