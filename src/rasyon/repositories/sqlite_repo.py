from __future__ import annotations

import json
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional


class SqliteRepository:
    """Local document cache: one JSON document per user plus one per month."""

    def __init__(self, db_path: Path | str):
        self.db_path = str(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def init_db(self) -> None:
        self.run_migrations()

    def _migrations(self):
        return (
            (1, self._migration_v1_base),
            (2, self._migration_v2_pending_sync),
        )

    def _schema_version(self) -> int:
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)")
            cur.execute("SELECT COALESCE(MAX(version), 0) FROM schema_migrations")
            return int(cur.fetchone()[0])
        finally:
            conn.close()

    def run_migrations(self) -> None:
        current_version = self._schema_version()
        due = [(v, m) for v, m in self._migrations() if v > current_version]
        if not due:
            return

        backup_path = self._create_pre_migration_backup() if current_version else None
        conn = self._conn()
        try:
            cur = conn.cursor()
            cur.execute("BEGIN")
            for version, migration in due:
                migration(cur)
                cur.execute(
                    "INSERT INTO schema_migrations (version, applied_at) VALUES (?, datetime('now'))",
                    (version,),
                )
            conn.commit()
        except Exception as exc:
            conn.rollback()
            self._restore_pre_migration_backup(backup_path)
            raise RuntimeError(
                f"Database migration to v{due[-1][0]} failed. Original database restored from automatic backup."
            ) from exc
        finally:
            conn.close()

    def _create_pre_migration_backup(self) -> Path | None:
        db_file = Path(self.db_path)
        if not db_file.exists() or db_file.stat().st_size == 0:
            return None
        backup_file = db_file.with_name(f"{db_file.stem}.pre_migration_{datetime.now().strftime('%Y%m%d%H%M%S')}.bak")
        shutil.copy2(db_file, backup_file)
        return backup_file

    def _restore_pre_migration_backup(self, backup_path: Path | None) -> None:
        if backup_path is None or not backup_path.exists():
            return
        shutil.copy2(backup_path, self.db_path)

    def _migration_v1_base(self, cur: sqlite3.Cursor) -> None:
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS user_documents (
            user_id TEXT PRIMARY KEY,
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
        """
        )

        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS monthly_data (
            user_id TEXT NOT NULL,
            month_str TEXT NOT NULL CHECK(length(month_str) = 7),
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            PRIMARY KEY(user_id, month_str)
        )
        """
        )

    def _migration_v2_pending_sync(self, cur: sqlite3.Cursor) -> None:
        # writes the remote store has not acknowledged yet
        cur.execute(
            """
        CREATE TABLE IF NOT EXISTS pending_sync (
            user_id TEXT NOT NULL,
            kind TEXT NOT NULL CHECK(kind IN ('field', 'month')),
            key TEXT NOT NULL,
            created_at TEXT NOT NULL,
            PRIMARY KEY(user_id, kind, key)
        )
        """
        )

    @staticmethod
    def _now() -> str:
        return datetime.now().replace(microsecond=0).isoformat(sep=" ")

    # ---------- User documents ----------
    def load_user_document(self, user_id: str) -> Optional[dict]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT payload FROM user_documents WHERE user_id=?", (user_id,))
        row = cur.fetchone()
        conn.close()
        if not row:
            return None
        return json.loads(row[0])

    def save_user_document(self, user_id: str, fields: dict) -> None:
        """Merge ``fields`` into the stored document (keys not given are kept)."""
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute("SELECT payload FROM user_documents WHERE user_id=?", (user_id,))
            row = cur.fetchone()
            doc = json.loads(row[0]) if row else {}
            doc.update(fields)
            cur.execute(
                """
                INSERT INTO user_documents (user_id, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET payload=excluded.payload, updated_at=excluded.updated_at
                """,
                (user_id, json.dumps(doc, ensure_ascii=False), self._now()),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ---------- Monthly ledgers ----------
    def list_months(self, user_id: str) -> list[dict]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT payload FROM monthly_data WHERE user_id=? ORDER BY month_str",
            (user_id,),
        )
        rows = cur.fetchall()
        conn.close()
        return [json.loads(r[0]) for r in rows]

    def load_month(self, user_id: str, month_str: str) -> Optional[dict]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute(
            "SELECT payload FROM monthly_data WHERE user_id=? AND month_str=?",
            (user_id, month_str),
        )
        row = cur.fetchone()
        conn.close()
        if not row:
            return None
        return json.loads(row[0])

    def save_month(self, user_id: str, month_doc: dict) -> None:
        conn = self._conn()
        cur = conn.cursor()
        try:
            cur.execute(
                """
                INSERT INTO monthly_data (user_id, month_str, payload, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, month_str) DO UPDATE SET
                    payload=excluded.payload,
                    updated_at=excluded.updated_at
                """,
                (
                    user_id,
                    str(month_doc["monthStr"]),
                    json.dumps(month_doc, ensure_ascii=False),
                    self._now(),
                ),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def delete_month(self, user_id: str, month_str: str) -> bool:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("DELETE FROM monthly_data WHERE user_id=? AND month_str=?", (user_id, month_str))
        changed = cur.rowcount > 0
        conn.commit()
        conn.close()
        return bool(changed)

    # ---------- Pending sync ----------
    def mark_pending(self, user_id: str, kind: str, keys) -> None:
        conn = self._conn()
        try:
            conn.executemany(
                "INSERT OR IGNORE INTO pending_sync (user_id, kind, key, created_at) VALUES (?, ?, ?, ?)",
                [(user_id, kind, str(k), self._now()) for k in keys],
            )
            conn.commit()
        finally:
            conn.close()

    def list_pending(self, user_id: str) -> list[tuple[str, str]]:
        conn = self._conn()
        cur = conn.cursor()
        cur.execute("SELECT kind, key FROM pending_sync WHERE user_id=? ORDER BY created_at, key", (user_id,))
        rows = cur.fetchall()
        conn.close()
        return [(kind, key) for kind, key in rows]

    def clear_pending(self, user_id: str, entries=None) -> None:
        conn = self._conn()
        try:
            if entries is None:
                conn.execute("DELETE FROM pending_sync WHERE user_id=?", (user_id,))
            else:
                conn.executemany(
                    "DELETE FROM pending_sync WHERE user_id=? AND kind=? AND key=?",
                    [(user_id, kind, key) for kind, key in entries],
                )
            conn.commit()
        finally:
            conn.close()
