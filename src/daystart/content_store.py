"""SQLite-backed content store.

Holds the ``content_blocks`` and ``logs`` tables. Every status change goes
through ``ContentStore.transition``, a conditional write keyed on the status
the caller last observed:

    UPDATE content_blocks SET status = <new>, ... WHERE id = ? AND status = <expected>

Zero affected rows means another worker moved the block first. That is a
benign miss reported as ``False``, not an error.
"""

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Union

from .errors import StoreUnavailableError, ValidationError
from .models import (
    LOG_STATUSES,
    ContentBlock,
    ContentType,
    LogEntry,
    parse_timestamp,
    to_timestamp,
    utc_now,
)
from .status import (
    IN_PROGRESS_STATUSES,
    ContentBlockStatus,
    StatusLike,
    ensure_legal_transition,
    parse_status,
)

logger = logging.getLogger(__name__)


def _sql_list(values) -> str:
    return ", ".join(f"'{v.value if isinstance(v, Enum) else v}'" for v in values)


SCHEMA = f"""
CREATE TABLE IF NOT EXISTS content_blocks (
    id TEXT PRIMARY KEY,
    user_id TEXT,
    date TEXT NOT NULL,
    content_type TEXT NOT NULL CHECK (content_type IN ({_sql_list(ContentType)})),
    content TEXT,
    script TEXT,
    audio_url TEXT,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ({_sql_list(ContentBlockStatus)})),
    voice TEXT,
    duration_seconds INTEGER CHECK (duration_seconds >= 0),
    retry_count INTEGER NOT NULL DEFAULT 0 CHECK (retry_count >= 0),
    content_priority INTEGER NOT NULL DEFAULT 0 CHECK (content_priority >= 0),
    expiration_date TEXT NOT NULL,
    language_code TEXT NOT NULL DEFAULT 'en-US',
    parameters TEXT NOT NULL DEFAULT '{{}}',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    script_generated_at TEXT,
    audio_generated_at TEXT,
    CHECK (expiration_date >= date)
);

CREATE INDEX IF NOT EXISTS idx_content_blocks_status_updated
    ON content_blocks(status, updated_at);
CREATE INDEX IF NOT EXISTS idx_content_blocks_expiration_date
    ON content_blocks(expiration_date);
CREATE INDEX IF NOT EXISTS idx_content_blocks_content_type_date
    ON content_blocks(content_type, date);

CREATE TABLE IF NOT EXISTS logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    event_type TEXT NOT NULL,
    user_id TEXT,
    content_block_id TEXT,
    status TEXT NOT NULL CHECK (status IN ({_sql_list(LOG_STATUSES)})),
    message TEXT,
    metadata TEXT NOT NULL DEFAULT '{{}}',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_logs_event_type_status ON logs(event_type, status);
CREATE INDEX IF NOT EXISTS idx_logs_content_block_id ON logs(content_block_id);
"""

# Model attribute -> column, for attributes whose names differ from the schema
_COLUMN_FOR = {
    "owner": "user_id",
    "raw_content": "content",
    "audio_location": "audio_url",
    "priority": "content_priority",
}

UPDATABLE_FIELDS = frozenset({
    "raw_content",
    "script",
    "audio_location",
    "voice",
    "duration_seconds",
    "retry_count",
    "priority",
    "parameters",
    "script_generated_at",
    "audio_generated_at",
})

_ORDERINGS = {
    "created_at": "created_at ASC, id ASC",
    "updated_at": "updated_at ASC, id ASC",
    "priority": "content_priority ASC, created_at ASC, id ASC",
}


def _to_db(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return value


def _row_to_block(row: sqlite3.Row) -> ContentBlock:
    return ContentBlock(
        id=row["id"],
        owner=row["user_id"],
        content_type=row["content_type"],
        date=date.fromisoformat(row["date"]),
        raw_content=row["content"],
        script=row["script"],
        audio_location=row["audio_url"],
        status=row["status"],
        voice=row["voice"],
        duration_seconds=row["duration_seconds"],
        retry_count=row["retry_count"],
        priority=row["content_priority"],
        expiration_date=date.fromisoformat(row["expiration_date"]),
        language_code=row["language_code"],
        parameters=json.loads(row["parameters"] or "{}"),
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
        script_generated_at=parse_timestamp(row["script_generated_at"]),
        audio_generated_at=parse_timestamp(row["audio_generated_at"]),
    )


class ContentStore:
    """Content block persistence with conditional status updates.

    One connection per store instance. Two stores opened on the same file
    behave like two independent workers.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        clock: Callable[[], datetime] = utc_now,
        timeout: float = 5.0,
    ):
        self.db_path = db_path
        self.clock = clock
        self.timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None

    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "ContentStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _cursor(self, action: str) -> Iterator[sqlite3.Cursor]:
        """Yield a cursor, commit on success, translate sqlite errors."""
        try:
            conn = self.connection()
            cursor = conn.cursor()
            yield cursor
            conn.commit()
        except sqlite3.IntegrityError as e:
            self._conn.rollback()
            raise ValidationError(f"Failed to {action}: {e}") from e
        except sqlite3.Error as e:
            if self._conn is not None:
                self._conn.rollback()
            raise StoreUnavailableError(f"Failed to {action}: {e}") from e

    def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        try:
            self.connection().executescript(SCHEMA)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Failed to initialize schema: {e}") from e

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_block(self, block: ContentBlock) -> ContentBlock:
        """Persist a new content block.

        Assigns an id and timestamps when missing.

        Raises:
            ValidationError: If the block violates a record invariant
            StoreUnavailableError: If the insert fails
        """
        block.validate()
        now = self.clock()
        block.id = block.id or str(uuid.uuid4())
        block.created_at = block.created_at or now
        block.updated_at = block.updated_at or now

        with self._cursor(f"insert content block {block.id}") as cursor:
            cursor.execute(
                """
                INSERT INTO content_blocks (
                    id, user_id, date, content_type, content, script, audio_url,
                    status, voice, duration_seconds, retry_count, content_priority,
                    expiration_date, language_code, parameters, created_at,
                    updated_at, script_generated_at, audio_generated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                tuple(_to_db(v) for v in (
                    block.id,
                    block.owner,
                    block.date,
                    block.content_type,
                    block.raw_content,
                    block.script,
                    block.audio_location,
                    block.status,
                    block.voice,
                    block.duration_seconds,
                    block.retry_count,
                    block.priority,
                    block.expiration_date,
                    block.language_code,
                    block.parameters,
                    block.created_at,
                    block.updated_at,
                    block.script_generated_at,
                    block.audio_generated_at,
                )),
            )
        return block

    def transition(
        self,
        block_id: str,
        expected: StatusLike,
        new: StatusLike,
        **fields: Any,
    ) -> bool:
        """Move a block from ``expected`` to ``new`` if it is still ``expected``.

        Args:
            block_id: Content block id
            expected: Status the caller observed
            new: Target status
            **fields: Other columns to set in the same write

        Returns:
            True if the row moved, False on a concurrency miss

        Raises:
            IllegalTransitionError: Before any write, if the move is illegal
            StoreUnavailableError: If the update fails
        """
        ensure_legal_transition(expected, new)
        return self._conditional_update(
            block_id, parse_status(expected), {"status": parse_status(new), **fields}
        )

    def update_fields(self, block_id: str, expected: StatusLike, **fields: Any) -> bool:
        """Set non-status columns on a block that is still in ``expected``.

        Returns:
            True if the row was updated, False on a concurrency miss
        """
        if "status" in fields:
            raise ValidationError("update_fields cannot change status; use transition()")
        return self._conditional_update(block_id, parse_status(expected), fields)

    def _conditional_update(
        self,
        block_id: str,
        expected: ContentBlockStatus,
        fields: dict[str, Any],
    ) -> bool:
        unknown = set(fields) - UPDATABLE_FIELDS - {"status"}
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        values = {_COLUMN_FOR.get(name, name): _to_db(value) for name, value in fields.items()}
        values["updated_at"] = to_timestamp(self.clock())
        assignments = ", ".join(f"{column} = ?" for column in values)

        with self._cursor(f"update content block {block_id}") as cursor:
            cursor.execute(
                f"UPDATE content_blocks SET {assignments} WHERE id = ? AND status = ?",
                (*values.values(), block_id, expected.value),
            )
            return cursor.rowcount == 1

    def insert_log(self, entry: LogEntry) -> None:
        """Append an audit log entry.

        Raises:
            StoreUnavailableError: If the insert fails
        """
        created_at = entry.created_at or self.clock()
        with self._cursor(f"insert log entry {entry.event_type}") as cursor:
            cursor.execute(
                """
                INSERT INTO logs (
                    event_type, user_id, content_block_id, status, message,
                    metadata, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.event_type,
                    entry.user_id,
                    entry.content_block_id,
                    entry.status,
                    entry.message,
                    json.dumps(entry.metadata or {}, default=str),
                    to_timestamp(created_at),
                ),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_block(self, block_id: str) -> Optional[ContentBlock]:
        with self._cursor(f"fetch content block {block_id}") as cursor:
            cursor.execute("SELECT * FROM content_blocks WHERE id = ?", (block_id,))
            row = cursor.fetchone()
        return _row_to_block(row) if row else None

    def get_status(self, block_id: str) -> Optional[ContentBlockStatus]:
        """Re-fetch only the current status of a block."""
        with self._cursor(f"fetch status of {block_id}") as cursor:
            cursor.execute("SELECT status FROM content_blocks WHERE id = ?", (block_id,))
            row = cursor.fetchone()
        return parse_status(row["status"]) if row else None

    def find_stuck_blocks(self, cutoff: datetime, limit: int) -> list[ContentBlock]:
        """In-progress blocks last updated before ``cutoff``, oldest first."""
        placeholders = ", ".join("?" for _ in IN_PROGRESS_STATUSES)
        with self._cursor("fetch stuck content blocks") as cursor:
            cursor.execute(
                f"""
                SELECT * FROM content_blocks
                WHERE status IN ({placeholders}) AND updated_at < ?
                ORDER BY updated_at ASC, id ASC
                LIMIT ?
                """,
                (*(s.value for s in IN_PROGRESS_STATUSES), to_timestamp(cutoff), limit),
            )
            rows = cursor.fetchall()
        return [_row_to_block(row) for row in rows]

    def find_expired_blocks(self, today: date, limit: int, offset: int = 0) -> list[ContentBlock]:
        """Blocks past expiration that still hold audio and are not yet expired."""
        with self._cursor("fetch expired content blocks") as cursor:
            cursor.execute(
                """
                SELECT * FROM content_blocks
                WHERE expiration_date < ?
                  AND audio_url IS NOT NULL
                  AND status != ?
                ORDER BY expiration_date ASC, id ASC
                LIMIT ? OFFSET ?
                """,
                (today.isoformat(), ContentBlockStatus.EXPIRED.value, limit, offset),
            )
            rows = cursor.fetchall()
        return [_row_to_block(row) for row in rows]

    def find_by_status(
        self,
        status: StatusLike,
        limit: int,
        order_by: str = "created_at",
        require_script: bool = False,
    ) -> list[ContentBlock]:
        """Blocks in ``status``, for synthesizer batch selection."""
        if order_by not in _ORDERINGS:
            raise ValueError(f"Unsupported ordering: {order_by}")
        script_clause = "AND script IS NOT NULL" if require_script else ""
        with self._cursor(f"fetch {status} content blocks") as cursor:
            cursor.execute(
                f"""
                SELECT * FROM content_blocks
                WHERE status = ? {script_clause}
                ORDER BY {_ORDERINGS[order_by]}
                LIMIT ?
                """,
                (parse_status(status).value, limit),
            )
            rows = cursor.fetchall()
        return [_row_to_block(row) for row in rows]

    def count_by_status(self) -> dict[str, int]:
        with self._cursor("count content blocks by status") as cursor:
            cursor.execute("SELECT status, COUNT(*) AS n FROM content_blocks GROUP BY status")
            rows = cursor.fetchall()
        return {row["status"]: row["n"] for row in rows}

    def count_stuck(self, cutoff: datetime) -> int:
        placeholders = ", ".join("?" for _ in IN_PROGRESS_STATUSES)
        with self._cursor("count stuck content blocks") as cursor:
            cursor.execute(
                f"""
                SELECT COUNT(*) AS n FROM content_blocks
                WHERE status IN ({placeholders}) AND updated_at < ?
                """,
                (*(s.value for s in IN_PROGRESS_STATUSES), to_timestamp(cutoff)),
            )
            return cursor.fetchone()["n"]

    def fetch_logs(
        self,
        event_type: Optional[str] = None,
        content_block_id: Optional[str] = None,
    ) -> list[LogEntry]:
        """Read audit entries back, oldest first."""
        clauses, params = [], []
        if event_type is not None:
            clauses.append("event_type = ?")
            params.append(event_type)
        if content_block_id is not None:
            clauses.append("content_block_id = ?")
            params.append(content_block_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._cursor("fetch log entries") as cursor:
            cursor.execute(f"SELECT * FROM logs {where} ORDER BY id ASC", params)
            rows = cursor.fetchall()

        return [
            LogEntry(
                event_type=row["event_type"],
                status=row["status"],
                message=row["message"],
                metadata=json.loads(row["metadata"] or "{}"),
                content_block_id=row["content_block_id"],
                user_id=row["user_id"],
                created_at=parse_timestamp(row["created_at"]),
            )
            for row in rows
        ]
