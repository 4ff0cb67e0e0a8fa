"""
history_store.py - Read-only access to the recorded command history.

The browser never writes history; it only asks two questions of a store:

1.  Which commands ran inside a time range? (`get_commands_by_date_range`)
2.  What ran around one command in the same shell session? (`get_command_with_context`)

`SQLiteCommandStore` answers them against a `commands` table, `MemoryCommandStore`
answers them over a plain list.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class Command:
    """One executed shell command. Never mutated after load."""

    id: int
    timestamp: int
    exit_status: int
    command_text: str
    working_dir: str
    git_repo: str | None = None
    git_branch: str | None = None
    duration: int | None = None  # milliseconds
    source_app: str | None = None
    source_pid: int | None = None
    source_active: bool | None = None


class StoreError(Exception):
    """Raised when the history store cannot answer a query."""


class CommandStore(Protocol):
    def get_commands_by_date_range(
        self, start_time: int, end_time: int, source_app: str | None = None
    ) -> list[Command]: ...

    def get_command_with_context(
        self, command_id: int, context_size: int
    ) -> tuple[list[Command], Command, list[Command]]: ...


# ============================================================================
# SQLITE
# ============================================================================

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS commands (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp INTEGER NOT NULL,
    exit_status INTEGER NOT NULL,
    duration INTEGER NOT NULL,
    command_text TEXT NOT NULL,
    working_dir TEXT NOT NULL,
    git_repo TEXT,
    git_branch TEXT,
    source_app TEXT,
    source_pid INTEGER,
    source_active INTEGER DEFAULT 1
)
"""

_COLUMNS = (
    "id, timestamp, exit_status, command_text, working_dir, git_repo, git_branch, "
    "duration, source_app, source_pid, source_active"
)


def _row_to_command(row: sqlite3.Row) -> Command:
    active = row["source_active"]
    return Command(
        id=row["id"],
        timestamp=row["timestamp"],
        exit_status=row["exit_status"],
        command_text=row["command_text"],
        working_dir=row["working_dir"],
        git_repo=row["git_repo"],
        git_branch=row["git_branch"],
        duration=row["duration"],
        source_app=row["source_app"],
        source_pid=row["source_pid"],
        source_active=None if active is None else bool(active),
    )


class SQLiteCommandStore:
    """Queries a shy-style history database. Each call opens its own connection."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.is_file():
            raise StoreError(f"History database not found at '{self.db_path}'")
        try:
            conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open database '{self.db_path}': {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: Iterable) -> list[Command]:
        conn = self._connect()
        try:
            rows = conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Query failed: {e}") from e
        finally:
            conn.close()
        return [_row_to_command(row) for row in rows]

    def get_commands_by_date_range(
        self, start_time: int, end_time: int, source_app: str | None = None
    ) -> list[Command]:
        """→ Commands with start_time <= timestamp < end_time, oldest first"""
        sql = f"SELECT {_COLUMNS} FROM commands WHERE timestamp >= ? AND timestamp < ?"
        params: list = [start_time, end_time]
        if source_app is not None:
            sql += " AND source_app = ?"
            params.append(source_app)
        sql += " ORDER BY timestamp ASC, id ASC"
        return self._query(sql, params)

    def get_command(self, command_id: int) -> Command:
        found = self._query(f"SELECT {_COLUMNS} FROM commands WHERE id = ?", [command_id])
        if not found:
            raise StoreError(f"Command {command_id} not found")
        return found[0]

    def get_command_with_context(
        self, command_id: int, context_size: int
    ) -> tuple[list[Command], Command, list[Command]]:
        """→ (before, target, after); neighbours come from the target's session, oldest first"""
        target = self.get_command(command_id)

        if target.source_pid is None:
            before = self._query(
                f"SELECT {_COLUMNS} FROM commands WHERE id >= ? AND id < ? ORDER BY id ASC",
                [command_id - context_size, command_id],
            )
            after = self._query(
                f"SELECT {_COLUMNS} FROM commands WHERE id > ? AND id <= ? ORDER BY id ASC",
                [command_id, command_id + context_size],
            )
            return before, target, after

        before = self._query(
            f"SELECT {_COLUMNS} FROM commands WHERE id < ? AND source_pid = ? "
            "ORDER BY id DESC LIMIT ?",
            [command_id, target.source_pid, context_size],
        )
        before.reverse()
        after = self._query(
            f"SELECT {_COLUMNS} FROM commands WHERE id > ? AND source_pid = ? "
            "ORDER BY id ASC LIMIT ?",
            [command_id, target.source_pid, context_size],
        )
        return before, target, after


# ============================================================================
# IN-MEMORY
# ============================================================================


class MemoryCommandStore:
    """Same queries as SQLiteCommandStore, answered from a list of commands."""

    def __init__(self, commands: Iterable[Command] = ()):
        self.commands: list[Command] = sorted(commands, key=lambda c: c.id)

    def get_commands_by_date_range(
        self, start_time: int, end_time: int, source_app: str | None = None
    ) -> list[Command]:
        found = [
            c
            for c in self.commands
            if start_time <= c.timestamp < end_time
            and (source_app is None or c.source_app == source_app)
        ]
        return sorted(found, key=lambda c: (c.timestamp, c.id))

    def get_command_with_context(
        self, command_id: int, context_size: int
    ) -> tuple[list[Command], Command, list[Command]]:
        target = next((c for c in self.commands if c.id == command_id), None)
        if target is None:
            raise StoreError(f"Command {command_id} not found")

        if target.source_pid is None:
            before = [c for c in self.commands if command_id - context_size <= c.id < command_id]
            after = [c for c in self.commands if command_id < c.id <= command_id + context_size]
            return before, target, after

        session = [c for c in self.commands if c.source_pid == target.source_pid]
        before = [c for c in session if c.id < command_id]
        after = [c for c in session if c.id > command_id]
        before = before[-context_size:] if context_size > 0 else []
        return before, target, after[:context_size]
