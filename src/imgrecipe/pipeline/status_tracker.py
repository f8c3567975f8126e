"""SQLite-based per-image status tracker.

Records each batch input as it moves through the run (pending, processing,
completed, failed, skipped) so the batch runner can report progress and
failures after the fact.
"""

import sqlite3
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, List
import threading

__all__ = ['ImageStatusTracker', 'STATUSES']

logger = logging.getLogger(__name__)

STATUSES = ('pending', 'processing', 'completed', 'failed', 'skipped')


class ImageStatusTracker:
    """Tracks the processing state of every image in a batch.

    **Database Schema:**

    SQLite table `image_status`:

    - input_index: Position of the image in the batch (primary key)
    - filename: Source file name
    - status: pending, processing, completed, failed, skipped
    - error_message: Failure message, if any
    - num_outputs: Deliverables produced for this image
    - num_captures: Aggregation captures produced for this image
    - started_at / finished_at: ISO timestamps

    By default the database lives in memory and disappears with the
    tracker. Pass a path to keep it next to the run's logs.

    **Thread Safety:**

    All methods are thread-safe via internal locking; batch workers mark
    images concurrently.

    Example usage::

        with ImageStatusTracker() as tracker:
            tracker.register(0, "a.jpg")
            tracker.mark(0, "processing")
            tracker.mark(0, "completed", num_outputs=1)
            print(tracker.get_statistics())
    """

    def __init__(self, db_path: Path | str = ":memory:"):
        """Initialize tracker.

        Parameters
        ----------
        db_path : Path or str, optional
            SQLite database file, created if missing. ``":memory:"``
            (default) keeps the table in memory.
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = None
        self._lock = threading.Lock()

        self._init_database()
        logger.debug("Status tracker initialized: %s", self.db_path)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_database(self):
        conn = self._get_connection()

        with self._lock:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS image_status (
                    input_index INTEGER PRIMARY KEY,
                    filename TEXT NOT NULL,
                    status TEXT DEFAULT 'pending',
                    error_message TEXT,
                    num_outputs INTEGER DEFAULT 0,
                    num_captures INTEGER DEFAULT 0,
                    started_at TEXT,
                    finished_at TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_status ON image_status(status)")
            conn.commit()

    def register(self, input_index: int, filename: str) -> bool:
        """Register an image as pending.

        Returns
        -------
        bool
            True if newly registered, False if the index was already known.
        """
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute(
                "SELECT input_index FROM image_status WHERE input_index = ?", (input_index,)
            )
            if cursor.fetchone():
                return False

            conn.execute(
                "INSERT INTO image_status (input_index, filename, status) VALUES (?, ?, 'pending')",
                (input_index, filename),
            )
            conn.commit()
            return True

    def mark(self, input_index: int, status: str, error: Optional[str] = None,
             num_outputs: Optional[int] = None, num_captures: Optional[int] = None):
        """Record a status change for a registered image.

        Parameters
        ----------
        input_index : int
            Image position (must be registered).
        status : str
            One of ``STATUSES``.
        error : str, optional
            Failure message, stored with 'failed' status.
        num_outputs, num_captures : int, optional
            Artifact counts, usually given with 'completed'.

        Raises
        ------
        ValueError
            If status is not a known status.
        """
        if status not in STATUSES:
            raise ValueError(f"Invalid status: {status}. Must be one of {list(STATUSES)}")

        conn = self._get_connection()
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            if status == 'processing':
                conn.execute(
                    "UPDATE image_status SET status = ?, started_at = ? WHERE input_index = ?",
                    (status, now, input_index),
                )
            else:
                conn.execute("""
                    UPDATE image_status
                    SET status = ?,
                        error_message = ?,
                        num_outputs = COALESCE(?, num_outputs),
                        num_captures = COALESCE(?, num_captures),
                        finished_at = ?
                    WHERE input_index = ?
                """, (status, error, num_outputs, num_captures, now, input_index))
            conn.commit()

        logger.debug("Image %d -> %s", input_index, status)

    def get_status(self, input_index: int) -> Optional[Dict]:
        """Full record for one image, or None if unknown."""
        conn = self._get_connection()

        with self._lock:
            row = conn.execute(
                "SELECT * FROM image_status WHERE input_index = ?", (input_index,)
            ).fetchone()
            return dict(row) if row else None

    def get_failed(self) -> List[Dict]:
        """Failed images in input order."""
        conn = self._get_connection()

        with self._lock:
            cursor = conn.execute(
                "SELECT * FROM image_status WHERE status = 'failed' ORDER BY input_index"
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_statistics(self) -> Dict:
        """Counts per status plus total outputs and captures.

        Returns
        -------
        dict
            ``total``, one key per status, ``total_outputs`` and
            ``total_captures``. Counts are 0 (never None) for an empty
            batch.
        """
        conn = self._get_connection()

        with self._lock:
            row = conn.execute("""
                SELECT
                    COUNT(*) as total,
                    SUM(CASE WHEN status = 'pending' THEN 1 ELSE 0 END) as pending,
                    SUM(CASE WHEN status = 'processing' THEN 1 ELSE 0 END) as processing,
                    SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed,
                    SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                    SUM(CASE WHEN status = 'skipped' THEN 1 ELSE 0 END) as skipped,
                    SUM(num_outputs) as total_outputs,
                    SUM(num_captures) as total_captures
                FROM image_status
            """).fetchone()

        return {key: (row[key] or 0) for key in row.keys()}

    def close(self):
        """Close database connection. Safe to call multiple times."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
