from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from loguru import logger

DEFAULT_DB_PATH = Path.home() / ".pi" / "agent" / "recorder.db"


class RecorderStore:
    """SQLite file holding recorded sessions, turns, tool calls, messages and model changes."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialize_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(query, params)

    def safe_execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor | None:
        """Run one statement, logging and swallowing any database error."""
        try:
            return self._conn.execute(query, params)
        except sqlite3.Error as ex:
            logger.error(f"[recorder] SQL error: {ex}")
            return None

    def persist(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as ex:
            logger.error(f"[recorder] Failed to persist database: {ex}")

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                session_file TEXT,
                cwd TEXT NOT NULL,
                started_at INTEGER NOT NULL,
                ended_at INTEGER,
                model_provider TEXT,
                model_id TEXT,
                total_input_tokens INTEGER DEFAULT 0,
                total_output_tokens INTEGER DEFAULT 0,
                total_cost REAL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS turns (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL REFERENCES sessions(id),
                turn_index INTEGER NOT NULL,
                started_at INTEGER NOT NULL,
                ended_at INTEGER,
                duration_ms INTEGER,
                model_provider TEXT,
                model_id TEXT,
                input_tokens INTEGER DEFAULT 0,
                output_tokens INTEGER DEFAULT 0,
                cost REAL DEFAULT 0,
                stop_reason TEXT
            );

            CREATE TABLE IF NOT EXISTS tool_calls (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL REFERENCES sessions(id),
                turn_id INTEGER,
                tool_name TEXT NOT NULL,
                input_json TEXT,
                started_at INTEGER NOT NULL,
                ended_at INTEGER,
                duration_ms INTEGER,
                is_error INTEGER DEFAULT 0,
                result_text TEXT
            );

            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL REFERENCES sessions(id),
                role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
                content TEXT,
                turn_id INTEGER,
                timestamp INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS model_changes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL REFERENCES sessions(id),
                timestamp INTEGER NOT NULL,
                from_provider TEXT,
                from_model_id TEXT,
                to_provider TEXT NOT NULL,
                to_model_id TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_turns_session ON turns(session_id);
            CREATE INDEX IF NOT EXISTS idx_tool_calls_session ON tool_calls(session_id);
            CREATE INDEX IF NOT EXISTS idx_tool_calls_name ON tool_calls(tool_name);
            CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id);
            """
        )
        self._conn.commit()
