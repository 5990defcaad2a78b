"""
mealscan - local nutrition store and asynchronous upsert queue
"""

import json
import logging
import queue
import sqlite3
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .models import NUTRIENT_FIELDS, NutritionEstimate

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    """Barcode as digits only, whitespace stripped"""
    return ''.join(ch for ch in (code or '').strip() if ch.isdigit())


class LocalBarcodeDB:
    """sqlite-backed code -> nutrition cache, seeded from a bundled JSON list"""

    def __init__(self, database_path: Path, seed_path: Optional[Path] = None):
        self.database_path = Path(database_path)
        self.seed_path = Path(seed_path) if seed_path else None
        self._lock = threading.Lock()
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if str(self.database_path) != ':memory:':
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(str(self.database_path))

    def _ensure_schema(self, conn: sqlite3.Connection):
        if self._initialized:
            return
        columns = ', '.join(f"{name} INTEGER" for name in NUTRIENT_FIELDS)
        conn.execute(f"CREATE TABLE IF NOT EXISTS barcodes (code TEXT PRIMARY KEY, {columns})")
        count = conn.execute("SELECT COUNT(*) FROM barcodes").fetchone()[0]
        if count == 0 and self.seed_path is not None:
            self._seed(conn)
        conn.commit()
        self._initialized = True

    def _seed(self, conn: sqlite3.Connection):
        try:
            entries = json.loads(self.seed_path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read barcode seed file {self.seed_path}: {e}")
            return

        seeded = 0
        for entry in entries:
            code = normalize_code(str(entry.get('code', '')))
            if not code:
                continue
            self._write(conn, code, NutritionEstimate.from_dict(entry))
            seeded += 1
        logger.info(f"Seeded {seeded} barcodes from {self.seed_path.name}")

    def _write(self, conn: sqlite3.Connection, code: str, estimate: NutritionEstimate):
        names = ', '.join(NUTRIENT_FIELDS)
        placeholders = ', '.join('?' for _ in range(len(NUTRIENT_FIELDS) + 1))
        updates = ', '.join(f"{name} = excluded.{name}" for name in NUTRIENT_FIELDS)
        values = [code] + [getattr(estimate, name) for name in NUTRIENT_FIELDS]
        conn.execute(
            f"INSERT INTO barcodes (code, {names}) VALUES ({placeholders}) "
            f"ON CONFLICT(code) DO UPDATE SET {updates}",
            values
        )

    def lookup(self, code: str) -> Optional[NutritionEstimate]:
        normalized = normalize_code(code)
        if not normalized:
            return None

        with self._lock:
            conn = self._connect()
            try:
                self._ensure_schema(conn)
                row = conn.execute(
                    f"SELECT {', '.join(NUTRIENT_FIELDS)} FROM barcodes WHERE code = ? LIMIT 1",
                    (normalized,)
                ).fetchone()
            finally:
                conn.close()

        if row is None:
            return None
        return NutritionEstimate(**dict(zip(NUTRIENT_FIELDS, row)))

    def upsert(self, code: str, estimate: NutritionEstimate):
        """Insert or replace the entry stored under `code` as given; raises sqlite3.Error on failure"""
        key = code.strip()
        with self._lock:
            conn = self._connect()
            try:
                self._ensure_schema(conn)
                self._write(conn, key, estimate)
                conn.commit()
            finally:
                conn.close()


class UpsertQueue:
    """
    Background writer for fire-and-forget store updates.

    Jobs are `(key, estimate)` pairs drained by a single daemon thread into
    `store.upsert`. Failures never reach the submitter; they are appended to
    `errors` and handed to `on_error` if one was given. `on_success` is
    called with the key after each completed write.
    """

    _STOP = object()

    def __init__(self, store, on_error: Optional[Callable[[str, Exception], None]] = None,
                 on_success: Optional[Callable[[str], None]] = None):
        self.store = store
        self.on_error = on_error
        self.on_success = on_success
        self.errors: List[Tuple[str, Exception]] = []
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._worker = threading.Thread(target=self._run, name="mealscan-upsert", daemon=True)
        self._worker.start()

    def submit(self, key: str, estimate: NutritionEstimate):
        if self._closed:
            raise RuntimeError("UpsertQueue is closed")
        self._queue.put((key, estimate))

    def join(self):
        """Block until every submitted job has been processed"""
        self._queue.join()

    def close(self):
        if self._closed:
            return
        self._closed = True
        self._queue.put(self._STOP)
        self._worker.join()

    def _run(self):
        while True:
            job = self._queue.get()
            try:
                if job is self._STOP:
                    return
                key, estimate = job
                try:
                    self.store.upsert(key, estimate)
                except Exception as e:
                    logger.error(f"Upsert failed for {key}: {e}")
                    self.errors.append((key, e))
                    if self.on_error is not None:
                        self.on_error(key, e)
                    continue
                logger.debug(f"Upserted {key}")
                if self.on_success is not None:
                    self.on_success(key)
            finally:
                self._queue.task_done()
