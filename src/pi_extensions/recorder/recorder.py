from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from loguru import logger

from pi_extensions.recorder.content import cap_text, extract_text_content
from pi_extensions.recorder.context import RecorderContext
from pi_extensions.recorder.events import (
    InputEvent,
    ModelSelectEvent,
    SessionShutdownEvent,
    SessionStartEvent,
    ToolCallEvent,
    ToolResultEvent,
    TurnEndEvent,
    TurnStartEvent,
    now_ms,
)
from pi_extensions.recorder.store import DEFAULT_DB_PATH, RecorderStore


class ActivityRecorder:
    """Persists agent lifecycle events to a SQLite file.

    Handlers never raise: a failing statement is logged and skipped so that
    recording cannot abort the host. Events arriving outside a started session
    are ignored.
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self._db_path = Path(db_path)
        self._store: RecorderStore | None = None
        self._context: RecorderContext | None = None
        self._handlers: dict[type, Callable[[Any], None]] = {
            SessionStartEvent: self.on_session_start,
            SessionShutdownEvent: self.on_session_shutdown,
            InputEvent: self.on_input,
            TurnStartEvent: self.on_turn_start,
            TurnEndEvent: self.on_turn_end,
            ToolCallEvent: self.on_tool_call,
            ToolResultEvent: self.on_tool_result,
            ModelSelectEvent: self.on_model_select,
        }

    @property
    def context(self) -> RecorderContext | None:
        return self._context

    @property
    def store(self) -> RecorderStore | None:
        return self._store

    @property
    def active(self) -> bool:
        return self._store is not None and self._context is not None

    def handle(self, event: object) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.warning(f"[recorder] Unknown event type: {type(event).__name__}")
            return
        handler(event)

    def on_session_start(self, event: SessionStartEvent) -> None:
        try:
            if self._store is None:
                self._store = RecorderStore(self._db_path)
            self._context = RecorderContext(session_id=event.session_id)

            self._store.safe_execute(
                """
                INSERT OR REPLACE INTO sessions (id, session_file, cwd, started_at, model_provider, model_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.session_id,
                    event.session_file,
                    event.cwd,
                    now_ms(),
                    event.model.provider if event.model else None,
                    event.model.id if event.model else None,
                ),
            )
            self._store.persist()
            logger.info(f"[recorder] Recording session {event.session_id} to {self._db_path}")
        except Exception as ex:
            logger.error(f"[recorder] session_start error: {ex}")

    def on_input(self, event: InputEvent) -> None:
        if not self.active:
            return
        try:
            self._store.safe_execute(
                "INSERT INTO messages (session_id, role, content, timestamp) VALUES (?, 'user', ?, ?)",
                (self._context.session_id, cap_text(event.text), now_ms()),
            )
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] input error: {ex}")

    def on_turn_start(self, event: TurnStartEvent) -> None:
        if not self.active:
            return
        try:
            ctx = self._context
            ctx.current_turn_started_at = event.timestamp
            cursor = self._store.safe_execute(
                "INSERT INTO turns (session_id, turn_index, started_at) VALUES (?, ?, ?)",
                (ctx.session_id, event.turn_index, event.timestamp),
            )
            ctx.current_turn_id = cursor.lastrowid if cursor is not None else None
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] turn_start error: {ex}")

    def on_turn_end(self, event: TurnEndEvent) -> None:
        if not self.active or self._context.current_turn_id is None:
            return
        try:
            ctx = self._context
            ended_at = now_ms()
            duration_ms = ended_at - ctx.current_turn_started_at

            message = event.message or {}
            usage = message.get("usage") or {}
            input_tokens = usage.get("input") or 0
            output_tokens = usage.get("output") or 0
            cost = (usage.get("cost") or {}).get("total") or 0

            self._store.safe_execute(
                """
                UPDATE turns SET
                    ended_at = ?, duration_ms = ?,
                    model_provider = ?, model_id = ?,
                    input_tokens = ?, output_tokens = ?, cost = ?,
                    stop_reason = ?
                WHERE id = ?
                """,
                (
                    ended_at,
                    duration_ms,
                    message.get("provider"),
                    message.get("model"),
                    input_tokens,
                    output_tokens,
                    cost,
                    message.get("stopReason"),
                    ctx.current_turn_id,
                ),
            )
            self._store.safe_execute(
                """
                UPDATE sessions SET
                    total_input_tokens = total_input_tokens + ?,
                    total_output_tokens = total_output_tokens + ?,
                    total_cost = total_cost + ?
                WHERE id = ?
                """,
                (input_tokens, output_tokens, cost, ctx.session_id),
            )

            assistant_text = extract_text_content(message.get("content"))
            if assistant_text:
                self._store.safe_execute(
                    """
                    INSERT INTO messages (session_id, role, content, turn_id, timestamp)
                    VALUES (?, 'assistant', ?, ?, ?)
                    """,
                    (ctx.session_id, assistant_text, ctx.current_turn_id, ended_at),
                )

            self._store.persist()
            # Closed: a repeated turn_end must not add to the session totals twice.
            ctx.current_turn_id = None
        except Exception as ex:
            logger.error(f"[recorder] turn_end error: {ex}")

    def on_tool_call(self, event: ToolCallEvent) -> None:
        if not self.active:
            return
        try:
            ctx = self._context
            started_at = now_ms()
            ctx.tool_call_starts[event.tool_call_id] = started_at
            self._store.safe_execute(
                """
                INSERT INTO tool_calls (id, session_id, turn_id, tool_name, input_json, started_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.tool_call_id,
                    ctx.session_id,
                    ctx.current_turn_id,
                    event.tool_name,
                    json.dumps(event.input, default=str),
                    started_at,
                ),
            )
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] tool_call error: {ex}")

    def on_tool_result(self, event: ToolResultEvent) -> None:
        if not self.active:
            return
        try:
            ended_at = now_ms()
            started_at = self._context.tool_call_starts.pop(event.tool_call_id, ended_at)
            self._store.safe_execute(
                """
                UPDATE tool_calls SET
                    ended_at = ?, duration_ms = ?, is_error = ?, result_text = ?
                WHERE id = ?
                """,
                (
                    ended_at,
                    ended_at - started_at,
                    1 if event.is_error else 0,
                    extract_text_content(event.content),
                    event.tool_call_id,
                ),
            )
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] tool_result error: {ex}")

    def on_model_select(self, event: ModelSelectEvent) -> None:
        if not self.active:
            return
        try:
            previous = event.previous_model
            self._store.safe_execute(
                """
                INSERT INTO model_changes
                    (session_id, timestamp, from_provider, from_model_id, to_provider, to_model_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    self._context.session_id,
                    now_ms(),
                    previous.provider if previous else None,
                    previous.id if previous else None,
                    event.model.provider,
                    event.model.id,
                ),
            )
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] model_select error: {ex}")

    def on_session_shutdown(self, event: SessionShutdownEvent | None = None) -> None:
        if not self.active:
            return
        try:
            self._store.safe_execute(
                "UPDATE sessions SET ended_at = ? WHERE id = ?",
                (now_ms(), self._context.session_id),
            )
            self._store.persist()
        except Exception as ex:
            logger.error(f"[recorder] session_shutdown error: {ex}")
        finally:
            self._close()

    def _close(self) -> None:
        try:
            if self._store is not None:
                self._store.close()
        except Exception as ex:
            logger.error(f"[recorder] close error: {ex}")
        finally:
            self._store = None
            self._context = None
