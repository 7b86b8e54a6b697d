"""Persistence for agent nodes, prompt versions, admin orders and system config."""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Optional, Protocol

import pandas as pd

from colosseum.data.db import bootstrap_db, df_from_query, get_connection
from colosseum.domain.errors import (
    AgentNotFound,
    OrderNotFound,
    PromptVersionNotFound,
    RegistryError,
)
from colosseum.domain.models import AgentNode, AgentOrder, OrderStatus, PromptVersion, ProposedChange

_NODE_COLUMNS = (
    "id, name, rank, type, parent_id, description, model_override, "
    "is_active, sort_order, created_at"
)
_VERSION_COLUMNS = (
    "agent_id, version, prompt_text, notes, created_by, created_at, is_active"
)
_ORDER_COLUMNS = (
    "id, order_text, lieutenant_id, lieutenant_response, affected_agents, "
    "proposed_changes, status, created_at, executed_at"
)
_ORDER_UPDATABLE = (
    "lieutenant_id",
    "lieutenant_response",
    "affected_agents",
    "proposed_changes",
    "status",
)


class AgentStore(Protocol):
    """Logical read/write operations the registry needs from storage."""

    def get_node(self, agent_id: str) -> Optional[AgentNode]: ...

    def list_nodes(self) -> list[AgentNode]: ...

    def get_active_version(self, agent_id: str) -> Optional[PromptVersion]: ...

    def list_versions(self, agent_id: str) -> list[PromptVersion]: ...

    def insert_version(
        self, agent_id: str, text: str, note: str, author: str
    ) -> PromptVersion: ...

    def activate_version(self, agent_id: str, version: int) -> PromptVersion: ...

    def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def set_config(self, key: str, value: str) -> None: ...


def _clean(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _node_from_row(row: Any) -> AgentNode:
    return AgentNode(
        id=str(row["id"]),
        name=str(row["name"]),
        rank=str(row["rank"]),
        type=str(row["type"]),
        parent_id=_clean(row["parent_id"]) or None,
        description=_clean(row["description"]),
        model_override=_clean(row["model_override"]),
        is_active=bool(_clean(row["is_active"]) or 0),
        sort_order=int(_clean(row["sort_order"]) or 0),
        created_at=_clean(row["created_at"]),
    )


def _version_from_row(row: Any) -> PromptVersion:
    return PromptVersion(
        agent_id=str(row["agent_id"]),
        version=int(row["version"]),
        prompt_text=str(row["prompt_text"]),
        notes=_clean(row["notes"]),
        created_by=_clean(row["created_by"]) or "admin",
        created_at=_clean(row["created_at"]),
        is_active=bool(_clean(row["is_active"]) or 0),
    )


def _json_list(value: Any) -> list:
    value = _clean(value)
    if not value:
        return []
    try:
        decoded = json.loads(value)
    except (TypeError, ValueError):
        return []
    return decoded if isinstance(decoded, list) else []


def _order_from_row(row: Any) -> AgentOrder:
    return AgentOrder(
        id=int(row["id"]),
        order_text=str(row["order_text"]),
        lieutenant_id=_clean(row["lieutenant_id"]),
        lieutenant_response=_clean(row["lieutenant_response"]),
        affected_agents=[str(a) for a in _json_list(row["affected_agents"])],
        proposed_changes=[ProposedChange(**c) for c in _json_list(row["proposed_changes"]) if isinstance(c, dict)],
        status=_clean(row["status"]) or OrderStatus.PENDING.value,
        created_at=_clean(row["created_at"]),
        executed_at=_clean(row["executed_at"]),
    )


class SqliteAgentStore:
    """AgentStore backed by the SQLite tables created in :mod:`colosseum.data.db`."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        bootstrap_db(path)

    def _connect(self) -> sqlite3.Connection:
        return get_connection(self.path)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def get_node(self, agent_id: str) -> Optional[AgentNode]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_NODE_COLUMNS} FROM agents WHERE id = ?", (agent_id,)
            ).fetchone()
        finally:
            conn.close()
        return _node_from_row(row) if row is not None else None

    def list_nodes(self, *, include_inactive: bool = True) -> list[AgentNode]:
        query = f"SELECT {_NODE_COLUMNS} FROM agents"
        if not include_inactive:
            query += " WHERE is_active = 1"
        query += " ORDER BY sort_order, id"
        df = df_from_query(query, path=self.path)
        if df.empty:
            return []
        return [_node_from_row(row) for row in df.to_dict(orient="records")]

    def insert_node(self, node: AgentNode) -> AgentNode:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO agents(
                    id, name, rank, type, parent_id, description,
                    model_override, is_active, sort_order
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    node.id,
                    node.name,
                    node.rank.value,
                    node.type,
                    node.parent_id,
                    node.description,
                    node.model_override,
                    1 if node.is_active else 0,
                    node.sort_order,
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError as exc:
            raise RegistryError(f"Agent '{node.id}' already exists") from exc
        finally:
            conn.close()
        return self.get_node(node.id)

    def max_child_sort_order(self, parent_id: Optional[str]) -> Optional[int]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT MAX(sort_order) AS m FROM agents WHERE parent_id IS ?",
                (parent_id,),
            ).fetchone()
        finally:
            conn.close()
        return None if row is None or row["m"] is None else int(row["m"])

    def update_model_override(self, agent_id: str, model: Optional[str]) -> None:
        self._update_node(agent_id, "UPDATE agents SET model_override = ? WHERE id = ?", (model, agent_id))

    def update_all_model_overrides(self, model: Optional[str]) -> int:
        conn = self._connect()
        try:
            cur = conn.execute("UPDATE agents SET model_override = ?", (model,))
            conn.commit()
            return cur.rowcount
        finally:
            conn.close()

    def set_node_active(self, agent_id: str, active: bool) -> None:
        self._update_node(
            agent_id,
            "UPDATE agents SET is_active = ? WHERE id = ?",
            (1 if active else 0, agent_id),
        )

    def update_node_metadata(
        self,
        agent_id: str,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        sets: list[str] = []
        values: list[Any] = []
        if name:
            sets.append("name = ?")
            values.append(name)
        if description:
            sets.append("description = ?")
            values.append(description)
        if not sets:
            return
        values.append(agent_id)
        self._update_node(agent_id, f"UPDATE agents SET {', '.join(sets)} WHERE id = ?", values)

    def _update_node(self, agent_id: str, sql: str, params) -> None:
        conn = self._connect()
        try:
            cur = conn.execute(sql, tuple(params))
            conn.commit()
            if cur.rowcount == 0:
                raise AgentNotFound(agent_id)
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Prompt versions
    # ------------------------------------------------------------------

    def get_active_version(self, agent_id: str) -> Optional[PromptVersion]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"""
                SELECT {_VERSION_COLUMNS} FROM agent_prompts
                WHERE agent_id = ? AND is_active = 1
                ORDER BY version DESC LIMIT 1
                """,
                (agent_id,),
            ).fetchone()
        finally:
            conn.close()
        return _version_from_row(row) if row is not None else None

    def get_version(self, agent_id: str, version: int) -> Optional[PromptVersion]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_VERSION_COLUMNS} FROM agent_prompts WHERE agent_id = ? AND version = ?",
                (agent_id, int(version)),
            ).fetchone()
        finally:
            conn.close()
        return _version_from_row(row) if row is not None else None

    def versions_frame(self, agent_id: str) -> pd.DataFrame:
        """Prompt history for one agent, newest first."""
        return df_from_query(
            f"SELECT {_VERSION_COLUMNS} FROM agent_prompts WHERE agent_id = ? ORDER BY version DESC",
            params=[agent_id],
            path=self.path,
        )

    def list_versions(self, agent_id: str) -> list[PromptVersion]:
        df = self.versions_frame(agent_id)
        if df.empty:
            return []
        return [_version_from_row(row) for row in df.to_dict(orient="records")]

    def insert_version(
        self,
        agent_id: str,
        text: str,
        note: str = "",
        author: str = "admin",
        *,
        activate: bool = True,
    ) -> PromptVersion:
        """Append a new prompt version (max + 1), optionally making it the active one."""
        if text is None or not str(text).strip():
            raise ValueError("prompt text must be a non-empty string")
        if self.get_node(agent_id) is None:
            raise AgentNotFound(agent_id)

        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT MAX(version) AS max_v FROM agent_prompts WHERE agent_id = ?",
                (agent_id,),
            ).fetchone()
            next_version = (row["max_v"] or 0) + 1
            if activate:
                conn.execute(
                    "UPDATE agent_prompts SET is_active = 0 WHERE agent_id = ?",
                    (agent_id,),
                )
            conn.execute(
                """
                INSERT INTO agent_prompts(agent_id, version, prompt_text, notes, created_by, is_active)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (agent_id, next_version, str(text), note, author, 1 if activate else 0),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_version(agent_id, next_version)

    def activate_version(self, agent_id: str, version: int) -> PromptVersion:
        """Flip the active flag to ``version`` and off for every sibling in one statement."""
        if self.get_version(agent_id, version) is None:
            raise PromptVersionNotFound(agent_id, version)
        conn = self._connect()
        try:
            conn.execute(
                """
                UPDATE agent_prompts
                SET is_active = CASE WHEN version = ? THEN 1 ELSE 0 END
                WHERE agent_id = ?
                """,
                (int(version), agent_id),
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_version(agent_id, version)

    # ------------------------------------------------------------------
    # System config
    # ------------------------------------------------------------------

    def get_config(self, key: str, default: Optional[str] = None) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value FROM agent_system_config WHERE key = ?", (key,)
            ).fetchone()
        finally:
            conn.close()
        return default if row is None else row["value"]

    def set_config(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO agent_system_config(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_config(self, key: str) -> None:
        conn = self._connect()
        try:
            conn.execute("DELETE FROM agent_system_config WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def create_order(self, order_text: str) -> AgentOrder:
        conn = self._connect()
        try:
            cur = conn.execute(
                "INSERT INTO agent_orders(order_text, status) VALUES (?, ?)",
                (order_text, OrderStatus.PENDING.value),
            )
            order_id = cur.lastrowid
            conn.commit()
        finally:
            conn.close()
        return self.get_order(order_id)

    def update_order(self, order_id: int, **fields: Any) -> AgentOrder:
        """Set the given columns; list values are stored as JSON text."""
        unknown = set(fields) - set(_ORDER_UPDATABLE)
        if unknown:
            raise ValueError(f"Unknown order fields: {sorted(unknown)}")
        if not fields:
            return self.require_order(order_id)

        values = []
        for key, value in fields.items():
            if key == "proposed_changes":
                value = json.dumps([c.model_dump(mode="json") for c in value])
            elif key == "affected_agents":
                value = json.dumps(list(value))
            elif key == "status":
                value = OrderStatus(value).value
            values.append(value)
        assignments = ", ".join(f"{key} = ?" for key in fields)
        self._update_order(
            order_id, f"UPDATE agent_orders SET {assignments} WHERE id = ?", (*values, int(order_id))
        )
        return self.require_order(order_id)

    def mark_order_executed(self, order_id: int) -> AgentOrder:
        self._update_order(
            order_id,
            "UPDATE agent_orders SET status = ?, executed_at = CURRENT_TIMESTAMP WHERE id = ?",
            (OrderStatus.EXECUTED.value, int(order_id)),
        )
        return self.require_order(order_id)

    def _update_order(self, order_id: int, sql: str, params) -> None:
        conn = self._connect()
        try:
            cur = conn.execute(sql, tuple(params))
            conn.commit()
            if cur.rowcount == 0:
                raise OrderNotFound(order_id)
        finally:
            conn.close()

    def get_order(self, order_id: int) -> Optional[AgentOrder]:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {_ORDER_COLUMNS} FROM agent_orders WHERE id = ?", (int(order_id),)
            ).fetchone()
        finally:
            conn.close()
        return _order_from_row(row) if row is not None else None

    def require_order(self, order_id: int) -> AgentOrder:
        order = self.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def orders_frame(self, limit: int = 20) -> pd.DataFrame:
        """Most recent orders first."""
        return df_from_query(
            f"SELECT {_ORDER_COLUMNS} FROM agent_orders ORDER BY id DESC LIMIT ?",
            params=[int(limit)],
            path=self.path,
        )

    def list_orders(self, limit: int = 20) -> list[AgentOrder]:
        df = self.orders_frame(limit)
        if df.empty:
            return []
        return [_order_from_row(row) for row in df.to_dict(orient="records")]

    def orders_for_agent(self, agent_id: str, limit: int = 10) -> list[AgentOrder]:
        # LIKE narrows the scan; the decoded list decides membership
        df = df_from_query(
            f"SELECT {_ORDER_COLUMNS} FROM agent_orders "
            "WHERE affected_agents LIKE ? ORDER BY id DESC",
            params=[f"%{agent_id}%"],
            path=self.path,
        )
        if df.empty:
            return []
        orders = [_order_from_row(row) for row in df.to_dict(orient="records")]
        return [o for o in orders if agent_id in o.affected_agents][: int(limit)]


__all__ = [
    "AgentStore",
    "SqliteAgentStore",
]
