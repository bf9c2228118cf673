from datetime import datetime, timedelta, time, date
import sqlite3
from pathlib import Path
import logging
from typing import List, Dict, Optional, Any
from productivity_tracker.models.work_session import WorkSession, Interruption
from productivity_tracker.models.app_settings import AppSettings
from pydantic import ValidationError
from productivity_tracker.services.errors import ConfigError, DatabaseError, DatabaseConnectionError, QueryError

logger = logging.getLogger(__name__)

MIGRATIONS = [
    """
    -- Work sessions
    CREATE TABLE IF NOT EXISTS work_sessions (
        id TEXT PRIMARY KEY,
        start_time TIMESTAMP NOT NULL,
        end_time TIMESTAMP,
        interruption_reason TEXT
    );

    -- Interruptions belong to exactly one session
    CREATE TABLE IF NOT EXISTS interruptions (
        id TEXT PRIMARY KEY,
        session_id TEXT NOT NULL,
        start_time TIMESTAMP NOT NULL,
        end_time TIMESTAMP,
        reason TEXT,
        FOREIGN KEY (session_id) REFERENCES work_sessions(id) ON DELETE CASCADE
    );

    -- Single-row user settings
    CREATE TABLE IF NOT EXISTS app_settings (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        penalty_per_interruption_minutes INTEGER NOT NULL,
        enable_notifications INTEGER NOT NULL,
        show_time_in_menu_bar INTEGER NOT NULL,
        last_modified TIMESTAMP NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_work_sessions_start ON work_sessions(start_time);
    CREATE INDEX IF NOT EXISTS idx_work_sessions_end ON work_sessions(end_time);
    CREATE INDEX IF NOT EXISTS idx_interruptions_session ON interruptions(session_id);
    """
]

# Stays well under SQLite's bound-variable limit
QUERY_CHUNK_SIZE = 500


def _to_db(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_db(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class DatabaseManager:
    """sqlite-backed store for work sessions, interruptions and settings"""

    def __init__(self, db_path=None):
        """Initialize database manager"""
        self.db_path = str(db_path or "productivity_tracker.db")
        self.conn: Optional[sqlite3.Connection] = None
        logger.info(f"Initialized DatabaseManager with db_path: {self.db_path}")
        self.initialize()

    def initialize(self):
        """Open the connection and apply the schema"""
        try:
            if self.conn is None:
                self.conn = self.get_connection()
            for migration in MIGRATIONS:
                self.conn.executescript(migration)
            self.conn.commit()
            logger.debug("Database initialization complete")
        except sqlite3.Error as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError(f"Failed to initialize database: {e}")

    def get_connection(self) -> sqlite3.Connection:
        """Open a connection with foreign keys enforced"""
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # Web handlers use the connection from the event loop thread
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"Could not open {self.db_path}: {e}")
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        if self.db_path != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        return conn

    def close(self):
        """Close database connection"""
        if self.conn:
            try:
                self.conn.close()
                logger.debug("Database connection closed.")
            except sqlite3.Error as e:
                logger.error(f"Error closing database: {e}")
            finally:
                self.conn = None

    def _require_connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise DatabaseConnectionError("Database connection is closed")
        return self.conn

    # Sessions

    def insert_session(self, session: WorkSession) -> str:
        """Insert a new session and any interruptions it already carries"""
        conn = self._require_connection()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO work_sessions (id, start_time, end_time, interruption_reason) VALUES (?, ?, ?, ?)",
                    (session.id, _to_db(session.start_time), _to_db(session.end_time), session.interruption_reason)
                )
                self._write_interruptions(conn, session)
            logger.debug(f"Inserted session {session.id}")
            return session.id
        except sqlite3.Error as e:
            logger.error(f"Failed to insert session: {e}")
            raise DatabaseError(f"Failed to insert session: {e}")

    def save_session(self, session: WorkSession) -> str:
        """Upsert a session together with all of its interruptions"""
        conn = self._require_connection()
        try:
            with conn:
                conn.execute("""
                    INSERT INTO work_sessions (id, start_time, end_time, interruption_reason) VALUES (?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        start_time = excluded.start_time,
                        end_time = excluded.end_time,
                        interruption_reason = excluded.interruption_reason
                """, (session.id, _to_db(session.start_time), _to_db(session.end_time), session.interruption_reason))
                self._write_interruptions(conn, session)
            logger.debug(f"Saved session {session.id} with {session.interruption_count} interruptions")
            return session.id
        except sqlite3.Error as e:
            logger.error(f"Failed to save session: {e}")
            raise DatabaseError(f"Failed to save session: {e}")

    def _write_interruptions(self, conn: sqlite3.Connection, session: WorkSession):
        kept_ids = {i.id for i in session.interruptions}
        stored_ids = {
            row[0] for row in conn.execute("SELECT id FROM interruptions WHERE session_id = ?", [session.id])
        }
        conn.executemany(
            "DELETE FROM interruptions WHERE id = ?",
            [(interruption_id,) for interruption_id in stored_ids - kept_ids]
        )

        for interruption in session.interruptions:
            conn.execute("""
                INSERT INTO interruptions (id, session_id, start_time, end_time, reason)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    start_time = excluded.start_time,
                    end_time = excluded.end_time,
                    reason = excluded.reason
            """, (
                interruption.id,
                session.id,
                _to_db(interruption.start_time),
                _to_db(interruption.end_time),
                interruption.reason
            ))

    def delete_session(self, session_id: str) -> bool:
        """Delete a session; its interruptions go with it"""
        conn = self._require_connection()
        try:
            with conn:
                cursor = conn.execute("DELETE FROM work_sessions WHERE id = ?", [session_id])
            deleted = cursor.rowcount > 0
            if deleted:
                logger.info(f"Deleted session {session_id}")
            return deleted
        except sqlite3.Error as e:
            logger.error(f"Failed to delete session: {e}")
            raise DatabaseError(f"Failed to delete session: {e}")

    def get_session(self, session_id: str) -> Optional[WorkSession]:
        sessions = self._query_sessions("WHERE id = ?", [session_id])
        return sessions[0] if sessions else None

    def fetch_sessions(self, descending: bool = True) -> List[WorkSession]:
        """All sessions ordered by start time"""
        order = "DESC" if descending else "ASC"
        return self._query_sessions(f"ORDER BY start_time {order}")

    def fetch_sessions_between(self, start: datetime, end: datetime,
                               descending: bool = True) -> List[WorkSession]:
        """Sessions whose start time falls in [start, end)"""
        order = "DESC" if descending else "ASC"
        return self._query_sessions(
            f"WHERE start_time >= ? AND start_time < ? ORDER BY start_time {order}",
            [_to_db(start), _to_db(end)]
        )

    def fetch_sessions_for_date(self, day: date) -> List[WorkSession]:
        start = datetime.combine(day, time.min)
        return self.fetch_sessions_between(start, start + timedelta(days=1))

    def fetch_active_sessions(self) -> List[WorkSession]:
        """Sessions with no end time, most recent first"""
        return self._query_sessions("WHERE end_time IS NULL ORDER BY start_time DESC")

    def _query_sessions(self, clause: str, params: Optional[List[Any]] = None) -> List[WorkSession]:
        conn = self._require_connection()
        try:
            rows = conn.execute(
                f"SELECT id, start_time, end_time, interruption_reason FROM work_sessions {clause}",
                params or []
            ).fetchall()
            sessions = [
                WorkSession(
                    id=row["id"],
                    start_time=_from_db(row["start_time"]),
                    end_time=_from_db(row["end_time"]),
                    interruption_reason=row["interruption_reason"],
                )
                for row in rows
            ]
            self._attach_interruptions(conn, sessions)
            return sessions
        except sqlite3.Error as e:
            logger.error(f"Failed to query sessions: {e}")
            raise QueryError(f"Failed to query sessions: {e}")

    def _attach_interruptions(self, conn: sqlite3.Connection, sessions: List[WorkSession]):
        if not sessions:
            return
        by_id = {s.id: s for s in sessions}
        ids = list(by_id)
        for offset in range(0, len(ids), QUERY_CHUNK_SIZE):
            chunk = ids[offset:offset + QUERY_CHUNK_SIZE]
            placeholders = ",".join("?" for _ in chunk)
            rows = conn.execute(f"""
                SELECT id, session_id, start_time, end_time, reason
                FROM interruptions
                WHERE session_id IN ({placeholders})
                ORDER BY start_time ASC
            """, chunk).fetchall()
            for row in rows:
                by_id[row["session_id"]].interruptions.append(Interruption(
                    id=row["id"],
                    start_time=_from_db(row["start_time"]),
                    end_time=_from_db(row["end_time"]),
                    reason=row["reason"],
                ))

    # Settings

    def get_settings(self) -> AppSettings:
        """Return the stored settings, creating the defaults on first use"""
        conn = self._require_connection()
        try:
            row = conn.execute("SELECT * FROM app_settings WHERE id = 1").fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to load settings: {e}")
            raise QueryError(f"Failed to load settings: {e}")

        if row is None:
            app_settings = AppSettings()
            self.save_settings(app_settings)
            logger.info("Created default settings")
            return app_settings

        return AppSettings(
            penalty_per_interruption_minutes=row["penalty_per_interruption_minutes"],
            enable_notifications=bool(row["enable_notifications"]),
            show_time_in_menu_bar=bool(row["show_time_in_menu_bar"]),
            last_modified=_from_db(row["last_modified"]),
        )

    def save_settings(self, app_settings: AppSettings) -> None:
        conn = self._require_connection()
        try:
            with conn:
                conn.execute("""
                    INSERT INTO app_settings (
                        id, penalty_per_interruption_minutes, enable_notifications,
                        show_time_in_menu_bar, last_modified
                    ) VALUES (1, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        penalty_per_interruption_minutes = excluded.penalty_per_interruption_minutes,
                        enable_notifications = excluded.enable_notifications,
                        show_time_in_menu_bar = excluded.show_time_in_menu_bar,
                        last_modified = excluded.last_modified
                """, (
                    app_settings.penalty_per_interruption_minutes,
                    int(app_settings.enable_notifications),
                    int(app_settings.show_time_in_menu_bar),
                    _to_db(app_settings.last_modified),
                ))
        except sqlite3.Error as e:
            logger.error(f"Failed to save settings: {e}")
            raise DatabaseError(f"Failed to save settings: {e}")

    def update_settings(self, **changes) -> AppSettings:
        """Apply validated changes to the stored settings

        Raises:
            ConfigError: If a value is out of range
        """
        current = self.get_settings()
        data = current.model_dump()
        data.update(changes)
        data["last_modified"] = datetime.now()
        try:
            updated = AppSettings(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e.errors()[0]['msg']}")
        self.save_settings(updated)
        logger.info(f"Settings updated: {changes}")
        return updated

    # Maintenance

    def get_database_stats(self) -> Dict[str, Any]:
        """Get database statistics"""
        conn = self._require_connection()
        try:
            tables = {}
            for table_name in ("work_sessions", "interruptions", "app_settings"):
                row_count = conn.execute(f"SELECT COUNT(*) FROM {table_name}").fetchone()[0]
                tables[table_name] = {"row_count": row_count}

            time_range = conn.execute("""
                SELECT MIN(start_time), MAX(start_time), COUNT(*)
                FROM work_sessions
            """).fetchone()
            active = conn.execute(
                "SELECT COUNT(*) FROM work_sessions WHERE end_time IS NULL"
            ).fetchone()[0]

            if self.db_path == ":memory:":
                db_size = 0
            else:
                db_size = Path(self.db_path).stat().st_size / (1024 * 1024)

            return {
                "tables": tables,
                "database_size_mb": db_size,
                "active_sessions": active,
                "time_range": {
                    "oldest": time_range[0],
                    "newest": time_range[1],
                    "total_records": time_range[2]
                }
            }
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to get database stats: {e}")
            raise DatabaseError(f"Failed to get database stats: {e}")

    def verify_database_integrity(self) -> bool:
        """Run integrity check on the database

        Returns:
            bool: True if database is healthy

        Raises:
            DatabaseError: If integrity check fails
        """
        conn = self._require_connection()
        try:
            result = conn.execute("PRAGMA integrity_check").fetchone()[0]
            if result != "ok":
                logger.error(f"Database integrity check failed: {result}")
                return False

            if conn.execute("PRAGMA foreign_key_check").fetchone() is not None:
                logger.error("Foreign key violations found")
                return False

            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to verify database integrity: {e}")
            raise DatabaseError(f"Integrity check failed: {e}")
