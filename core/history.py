"""
Analysis History Store - SQLite persistence for saved analyses.

Only saving is supported here; browsing history belongs to the calling
application.
"""

import json
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict
import logging

from core.models import AnalysisResult, ImpactProjection

log = logging.getLogger(__name__)


class AnalysisStore:
    """
    SQLite-backed store for completed analyses.

    Usage:
        store = AnalysisStore("analysis_history.db")
        record_id = store.save(user_id, coordinates, analysis, impact)
    """

    DEFAULT_DB_PATH = "analysis_history.db"

    def __init__(self, db_path: str = None):
        """
        Args:
            db_path: Path to the SQLite database. Defaults to 'analysis_history.db'
        """
        self.db_path = db_path or self.DEFAULT_DB_PATH
        self._lock = threading.RLock()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS analyses (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        coordinates_json TEXT NOT NULL,
                        analysis_json TEXT NOT NULL,
                        impact_json TEXT NOT NULL,
                        data_sources_json TEXT,
                        overall_score REAL,
                        priority_level TEXT,
                        created_at TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_analyses_user_time
                    ON analyses (user_id, created_at DESC)
                """)
                conn.commit()
            finally:
                conn.close()

    def save(
        self,
        user_id: str,
        coordinates: Dict[str, Any],
        analysis: AnalysisResult,
        impact: ImpactProjection,
    ) -> str:
        """
        Persist one analysis for a user.

        Returns:
            The new record id.

        Raises:
            ValueError: empty user id
            sqlite3.Error: the database could not be written
        """
        if not user_id:
            raise ValueError("A user id is required to save an analysis")

        record_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    """INSERT INTO analyses
                       (id, user_id, coordinates_json, analysis_json, impact_json,
                        data_sources_json, overall_score, priority_level, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        record_id,
                        str(user_id),
                        json.dumps(coordinates),
                        json.dumps(analysis.to_dict()),
                        json.dumps(impact.to_dict()),
                        json.dumps(analysis.data_sources),
                        analysis.overall_score,
                        analysis.priority_level.value,
                        now,
                    ),
                )
                conn.commit()
            finally:
                conn.close()

        log.info(f"Saved analysis {record_id} for user {user_id}")
        return record_id
