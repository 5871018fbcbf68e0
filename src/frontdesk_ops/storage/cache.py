"""Local persistent cache backed by SQLite.

Holds cached members, the append-only front desk records (check-ins,
incidents, announcements, knowledge base) and the cloud sync ledger.

Key design choices:

* **Connection per operation** -- each read or write opens its own
  connection, so the cache can be shared freely between threads.
* **Serialized writers** -- writes take an in-process lock and run inside
  ``BEGIN IMMEDIATE``; readers proceed concurrently thanks to WAL mode.
  Concurrent upserts of the same member therefore resolve to whichever
  write completes last.
* **Ledger in the same transaction** -- every write to a cloud-synced table
  resets its ledger row to PENDING before the transaction commits.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from ..errors import StoreWriteFailure
from ..models import (
    Announcement,
    CheckIn,
    Incident,
    KnowledgeBaseEntry,
    Member,
    MembershipStatus,
    UpsertResult,
)
from .schema import CLOUD_SYNCED_TABLES, init_schema
from .sync_tracker import record_pending

logger = logging.getLogger(__name__)

_MEMBER_COLUMNS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "membership_status",
    "membership_expiry",
    "last_synced_at",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _fold(value: str | None) -> str | None:
    return value.casefold() if value is not None else None


def _like_pattern(term: str) -> str:
    term = term.casefold()
    escaped = (
        term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    )
    return f"%{escaped}%"


def _row_to_member(row: sqlite3.Row) -> Member:
    return Member(
        id=row["id"],
        external_id=row["external_id"],
        first_name=row["first_name"] or "",
        last_name=row["last_name"] or "",
        email=row["email"] or "",
        phone=row["phone"] or "",
        membership_status=MembershipStatus.parse(row["membership_status"]),
        membership_expiry=row["membership_expiry"] or None,
        last_synced_at=row["last_synced_at"] or None,
    )


class LocalCache:
    """SQLite-backed store for members, front desk records and the sync ledger.

    Args:
        db_path: Path to the database file. Parent directories are created
            by ``initialize()``.
        clock: Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        db_path: str | Path,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.db_path = Path(db_path).expanduser()
        self._clock = clock
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.db_path, timeout=5.0, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        # LIKE folds ASCII only; fold() handles any script
        conn.create_function("fold", 1, _fold, deterministic=True)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection for read-only queries."""
        conn = self._get_conn()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a serialized write transaction.

        Commits on success and rolls back on any exception. SQLite errors
        are re-raised as ``StoreWriteFailure`` carrying the original message.
        """
        with self._write_lock:
            conn = self._get_conn()
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.error("Local store write failed: %s", e)
                raise StoreWriteFailure(str(e)) from e
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()

    def initialize(self) -> None:
        """Create the database file and schema if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Initializing local cache at %s", self.db_path)
        with self.transaction() as conn:
            init_schema(conn)

    def ping(self) -> bool:
        """Run a trivial liveness query. Returns False if the store is unusable."""
        try:
            with self.read() as conn:
                row = conn.execute("SELECT 1 AS ok").fetchone()
            return row is not None and row["ok"] == 1
        except sqlite3.Error as e:
            logger.error("Local cache liveness check failed: %s", e)
            return False

    def now_iso(self) -> str:
        return self._clock().isoformat()

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def upsert_member(self, member: Member) -> UpsertResult:
        """Insert or fully replace a member keyed by ``external_id``.

        Members without an ``external_id`` are always inserted as new local
        rows. An existing row is overwritten with the full incoming snapshot
        and its ``last_synced_at`` bumped.
        """
        with self.transaction() as conn:
            # taken under the write lock: stamps follow commit order
            now = self.now_iso()
            values = {
                "first_name": member.first_name,
                "last_name": member.last_name,
                "email": member.email,
                "phone": member.phone,
                "membership_status": member.membership_status.value,
                "membership_expiry": (
                    member.membership_expiry.isoformat()
                    if member.membership_expiry
                    else None
                ),
                "last_synced_at": now if member.external_id else None,
            }

            existing = None
            if member.external_id is not None:
                existing = conn.execute(
                    "SELECT id FROM members WHERE external_id = ?",
                    (member.external_id,),
                ).fetchone()

            if existing is not None:
                member_id = existing["id"]
                assignments = ", ".join(f"{c} = ?" for c in _MEMBER_COLUMNS)
                conn.execute(
                    f"UPDATE members SET {assignments} WHERE id = ?",
                    (*[values[c] for c in _MEMBER_COLUMNS], member_id),
                )
                created = False
            else:
                cursor = conn.execute(
                    "INSERT INTO members (external_id, "
                    + ", ".join(_MEMBER_COLUMNS)
                    + ", created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        member.external_id,
                        *[values[c] for c in _MEMBER_COLUMNS],
                        now,
                    ),
                )
                member_id = cursor.lastrowid
                created = True

            record_pending(conn, "members", member_id, now)

        logger.debug(
            "Member %s %s (local id %d)",
            member.external_id or "<local>",
            "inserted" if created else "updated",
            member_id,
        )
        return UpsertResult(id=member_id, created=created)

    def create_local_member(self, member: Member) -> Member:
        """Store a member created at the desk, not yet known to the directory."""
        if member.external_id is not None:
            raise ValueError(
                "Locally created members must not carry an external_id"
            )
        result = self.upsert_member(member)
        return self.get_member(result.id)  # type: ignore[return-value]

    def get_member(self, member_id: int) -> Member | None:
        with self.read() as conn:
            row = conn.execute(
                "SELECT * FROM members WHERE id = ?", (member_id,)
            ).fetchone()
        return _row_to_member(row) if row else None

    def get_member_by_external_id(self, external_id: str) -> Member | None:
        with self.read() as conn:
            row = conn.execute(
                "SELECT * FROM members WHERE external_id = ?", (external_id,)
            ).fetchone()
        return _row_to_member(row) if row else None

    def search_members(self, term: str, limit: int = 50) -> list[Member]:
        """Case-insensitive substring search across name, email and phone.

        Case folding is Unicode-aware ("JOSÉ" finds "José").

        A blank term matches nothing.
        """
        term = term.strip()
        if not term:
            return []
        pattern = _like_pattern(term)
        with self.read() as conn:
            rows = conn.execute(
                """
                SELECT * FROM members
                WHERE fold(first_name) LIKE :p ESCAPE '\\'
                   OR fold(last_name) LIKE :p ESCAPE '\\'
                   OR fold(first_name || ' ' || last_name) LIKE :p ESCAPE '\\'
                   OR fold(email) LIKE :p ESCAPE '\\'
                   OR phone LIKE :p ESCAPE '\\'
                ORDER BY last_name, first_name, id
                LIMIT :limit
                """,
                {"p": pattern, "limit": limit},
            ).fetchall()
        logger.info(
            "Local member search for %r returned %d result(s)", term, len(rows)
        )
        return [_row_to_member(r) for r in rows]

    def list_unreconciled_members(self) -> list[Member]:
        """Members created locally that have no directory identity yet."""
        with self.read() as conn:
            rows = conn.execute(
                "SELECT * FROM members WHERE external_id IS NULL ORDER BY id"
            ).fetchall()
        return [_row_to_member(r) for r in rows]

    # ------------------------------------------------------------------
    # Append-only records
    # ------------------------------------------------------------------

    def _insert(self, table: str, values: dict[str, Any]) -> int:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        with self.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            record_id = cursor.lastrowid
            if table in CLOUD_SYNCED_TABLES:
                record_pending(conn, table, record_id, self.now_iso())
        logger.info("Added %s record %d", table, record_id)
        return record_id

    def insert_check_in(self, check_in: CheckIn) -> int:
        """Record a check-in, filling the member name from the cache when known."""
        member_name = check_in.member_name
        if check_in.member_id:
            member = self.get_member_by_external_id(check_in.member_id)
            if member is not None and member.display_name:
                member_name = member.display_name
        timestamp = check_in.timestamp or self._clock()
        return self._insert(
            "check_ins",
            {
                "member_id": check_in.member_id,
                "member_name": member_name,
                "purpose": check_in.purpose,
                "notes": check_in.notes,
                "timestamp": timestamp.isoformat(),
            },
        )

    def recent_check_ins(self, limit: int = 10) -> list[CheckIn]:
        with self.read() as conn:
            rows = conn.execute(
                "SELECT * FROM check_ins ORDER BY timestamp DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [CheckIn(**dict(r)) for r in rows]

    def insert_incident(self, incident: Incident) -> int:
        values = incident.model_dump(exclude={"id", "created_at"})
        values["created_at"] = self.now_iso()
        return self._insert("incidents", values)

    def insert_announcement(self, announcement: Announcement) -> int:
        values = announcement.model_dump(exclude={"id", "created_at"})
        if announcement.expiry_date is not None:
            values["expiry_date"] = announcement.expiry_date.isoformat()
        values["created_at"] = self.now_iso()
        return self._insert("announcements", values)

    def list_announcements(
        self, include_expired: bool = False, today: date | None = None
    ) -> list[Announcement]:
        """Announcements, high priority first, newest first within a priority."""
        today = today or self._clock().date()
        query = "SELECT * FROM announcements"
        params: tuple = ()
        if not include_expired:
            query += " WHERE expiry_date IS NULL OR expiry_date >= ?"
            params = (today.isoformat(),)
        query += (
            " ORDER BY CASE priority WHEN 'high' THEN 0"
            " WHEN 'normal' THEN 1 ELSE 2 END, created_at DESC, id DESC"
        )
        with self.read() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Announcement(**dict(r)) for r in rows]

    def insert_knowledge_base_entry(self, entry: KnowledgeBaseEntry) -> int:
        values = entry.model_dump(exclude={"id", "created_at"})
        values["created_at"] = self.now_iso()
        return self._insert("knowledge_base", values)

    def search_knowledge_base(self, term: str) -> list[KnowledgeBaseEntry]:
        term = term.strip()
        if not term:
            return []
        with self.read() as conn:
            rows = conn.execute(
                """
                SELECT * FROM knowledge_base
                WHERE fold(title) LIKE :p ESCAPE '\\'
                   OR fold(content) LIKE :p ESCAPE '\\'
                   OR fold(category) LIKE :p ESCAPE '\\'
                ORDER BY title
                """,
                {"p": _like_pattern(term)},
            ).fetchall()
        return [KnowledgeBaseEntry(**dict(r)) for r in rows]

    def get_row(self, table: str, record_id: int) -> dict[str, Any] | None:
        """Return one raw row from a cloud-synced table as a plain dict."""
        if table not in CLOUD_SYNCED_TABLES:
            raise ValueError(f"Unknown table: {table}")
        with self.read() as conn:
            row = conn.execute(
                f"SELECT * FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
        return dict(row) if row else None

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def backup(self, backup_path: str | Path | None = None) -> Path:
        """Copy the database with SQLite's online backup API.

        Defaults to a timestamped file next to the database.
        """
        if backup_path is None:
            stamp = self._clock().strftime("%Y%m%dT%H%M%S")
            backup_path = self.db_path.parent / f"backup-{stamp}.sqlite3"
        target = Path(backup_path)
        target.parent.mkdir(parents=True, exist_ok=True)

        source = self._get_conn()
        dest = sqlite3.connect(target)
        try:
            source.backup(dest)
        finally:
            dest.close()
            source.close()
        logger.info("Local cache backed up to %s", target)
        return target

