"""
Rota Store - Persistent Document Storage
========================================
Stores rota documents and generation configurations in SQLite.

Each document is one row holding its JSON payload, so saving a document
is a single atomic write. Configurations are append-only: every save adds
a revision and marks the previous one superseded.
"""
import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

from pharmrota.errors import NotFoundError
from pharmrota.models.configuration import RotaConfiguration
from pharmrota.models.schedule import RotaDocument, RotaStatus
from pharmrota.utils.logging_setup import get_logger

logger = get_logger("pharmrota.io.store")

# Default database location
DEFAULT_DB_PATH = Path("data/rotas.db")


class RotaStore:
    """
    Rota document persistence in SQLite.

    Usage:
        store = RotaStore()
        store.save_document(doc)
        drafts = store.list_documents(week_start=monday, status=RotaStatus.DRAFT)
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """Initialize with database path."""
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS rotas (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    status TEXT NOT NULL,
                    published_set_id TEXT,
                    payload TEXT NOT NULL,
                    updated_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS configurations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    week_start TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at TIMESTAMP,
                    superseded_at TIMESTAMP
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_rotas_week
                ON rotas(week_start, status)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_rotas_date
                ON rotas(date)
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_configurations_week
                ON configurations(week_start)
            """)
            conn.commit()
        logger.debug(f"Database initialized at {self.db_path}")

    # ------------------------------------------------------------------
    # Rota documents
    # ------------------------------------------------------------------

    def save_document(self, document: RotaDocument) -> str:
        """Insert or replace one document (last write wins)."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO rotas
                    (id, date, week_start, status, published_set_id, payload, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                document.id,
                document.date.isoformat(),
                document.week_start.isoformat(),
                document.status.value,
                document.published_set_id,
                json.dumps(document.to_dict(), ensure_ascii=False),
                datetime.now().isoformat(),
            ))
            conn.commit()
        logger.debug(f"Saved rota {document.id} ({document.status.value})")
        return document.id

    def save_documents(self, documents: Iterable[RotaDocument]) -> List[str]:
        """Save documents one by one; each write is atomic on its own."""
        return [self.save_document(doc) for doc in documents]

    def get_document(self, rota_id: str) -> RotaDocument:
        """Load a document by ID."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT payload FROM rotas WHERE id = ?", (rota_id,)
            ).fetchone()
        if not row:
            raise NotFoundError(f"Rota not found: {rota_id}")
        return RotaDocument.from_dict(json.loads(row[0]))

    def list_documents(
        self,
        status: Optional[RotaStatus] = None,
        week_start: Optional[date] = None,
        published_set_id: Optional[str] = None,
    ) -> List[RotaDocument]:
        """Documents matching all given filters, ordered by date."""
        query = "SELECT payload FROM rotas WHERE 1 = 1"
        params: list = []
        if status is not None:
            query += " AND status = ?"
            params.append(RotaStatus(status).value)
        if week_start is not None:
            query += " AND week_start = ?"
            params.append(week_start.isoformat())
        if published_set_id is not None:
            query += " AND published_set_id = ?"
            params.append(published_set_id)
        query += " ORDER BY date, id"

        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [RotaDocument.from_dict(json.loads(r[0])) for r in rows]

    def delete_documents(self, rota_ids: Iterable[str]) -> int:
        """Delete documents by ID; returns the number removed."""
        ids = list(rota_ids)
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(f"DELETE FROM rotas WHERE id IN ({placeholders})", ids)
            conn.commit()
            deleted = cursor.rowcount
        logger.info(f"Deleted {deleted} rotas")
        return deleted

    def clear_drafts(self, week_start: date) -> int:
        """Delete every draft document of a week."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM rotas WHERE week_start = ? AND status = ?",
                (week_start.isoformat(), RotaStatus.DRAFT.value),
            )
            conn.commit()
            deleted = cursor.rowcount
        logger.info(f"Cleared {deleted} draft rotas for week {week_start}")
        return deleted

    # ------------------------------------------------------------------
    # Configurations
    # ------------------------------------------------------------------

    def save_configuration(self, configuration: RotaConfiguration) -> int:
        """Append a configuration revision for its week; returns the revision ID."""
        now = datetime.now().isoformat()
        week = configuration.week_start.isoformat()
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                UPDATE configurations SET superseded_at = ?
                WHERE week_start = ? AND superseded_at IS NULL
            """, (now, week))
            cursor = conn.execute("""
                INSERT INTO configurations (week_start, payload, created_at)
                VALUES (?, ?, ?)
            """, (week, json.dumps(configuration.to_dict(), ensure_ascii=False), now))
            conn.commit()
            revision = cursor.lastrowid
        logger.debug(f"Saved configuration revision {revision} for week {week}")
        return revision

    def get_configuration(self, week_start: date) -> Optional[RotaConfiguration]:
        """Current (not superseded) configuration for a week, if any."""
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("""
                SELECT id, payload FROM configurations
                WHERE week_start = ? AND superseded_at IS NULL
                ORDER BY id DESC LIMIT 1
            """, (week_start.isoformat(),)).fetchone()
        if not row:
            return None
        return RotaConfiguration.from_dict(json.loads(row[1]), revision=row[0])

    def configuration_history(self, week_start: date) -> List[RotaConfiguration]:
        """All revisions for a week, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute("""
                SELECT id, payload FROM configurations
                WHERE week_start = ? ORDER BY id
            """, (week_start.isoformat(),)).fetchall()
        return [RotaConfiguration.from_dict(json.loads(r[1]), revision=r[0]) for r in rows]
