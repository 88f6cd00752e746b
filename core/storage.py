import datetime
import json
import os
import sqlite3
from typing import Any, List, Optional, Tuple

import pytz

from .errors import StorageReadFailure, StorageWriteFailure
from .logger import get_logger
from .models import FilterSettings, Product

logger = get_logger(__name__)

DB_PATH = os.getenv("DB_PATH", "/data/catalog_state.sqlite3")

# Two independently keyed blobs: the merged view + filters, and the local edits.
SNAPSHOT_KEY = "productInventory"
LOCAL_PRODUCTS_KEY = "local_products"


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


class DurableStore:
    """
    Key/value persistence of whole serialized snapshots in SQLite.

    ``put``/``get`` raise on failure; the ``save_*``/``load_*`` helpers never
    do: the snapshots are a cache, so a failed write is logged and a failed
    read falls back to empty/default values.
    """

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_PATH

    def _connect(self):
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self):
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TEXT
                )
            """
            )
            con.commit()

    def put(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
            self.ensure_db()
            with self._connect() as con:
                con.execute(
                    """
                    INSERT INTO snapshots (key, value, updated_at)
                    VALUES (?,?,?)
                    ON CONFLICT(key) DO UPDATE SET
                        value=excluded.value,
                        updated_at=excluded.updated_at
                """,
                    (key, payload, now_utc_iso()),
                )
                con.commit()
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            raise StorageWriteFailure(f"Failed to write snapshot '{key}': {e}") from e

    def get(self, key: str) -> Optional[Any]:
        """Return the decoded blob stored under ``key``, or None if absent."""
        try:
            with self._connect() as con:
                cur = con.cursor()
                cur.execute("SELECT value FROM snapshots WHERE key=?", (key,))
                row = cur.fetchone()
        except sqlite3.OperationalError as e:
            if "no such table" in str(e):
                return None
            raise StorageReadFailure(f"Failed to read snapshot '{key}': {e}") from e
        except (sqlite3.Error, OSError) as e:
            raise StorageReadFailure(f"Failed to read snapshot '{key}': {e}") from e

        if row is None or row[0] is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError as e:
            raise StorageReadFailure(f"Snapshot '{key}' is not valid JSON: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self._connect() as con:
                con.execute("DELETE FROM snapshots WHERE key=?", (key,))
                con.commit()
        except sqlite3.OperationalError as e:
            if "no such table" not in str(e):
                raise StorageWriteFailure(f"Failed to delete snapshot '{key}': {e}") from e
        except (sqlite3.Error, OSError) as e:
            raise StorageWriteFailure(f"Failed to delete snapshot '{key}': {e}") from e

    # -- Snapshot A: canonical products + filter settings --

    def save_snapshot(self, products: List[Product], filters: FilterSettings) -> bool:
        blob = {"products": [p.to_dict() for p in products]}
        blob.update(filters.to_dict())
        try:
            self.put(SNAPSHOT_KEY, blob)
        except StorageWriteFailure as e:
            logger.warning("Failed to save state snapshot: %s", e)
            return False
        return True

    def load_snapshot(self) -> Tuple[List[Product], FilterSettings]:
        try:
            blob = self.get(SNAPSHOT_KEY)
        except StorageReadFailure as e:
            logger.warning("Failed to load state snapshot: %s", e)
            return [], FilterSettings()
        if not isinstance(blob, dict):
            return [], FilterSettings()

        defaults = FilterSettings()
        try:
            filters = FilterSettings(
                searchTerm=str(blob.get("searchTerm", defaults.searchTerm)),
                selectedCategory=str(blob.get("selectedCategory", defaults.selectedCategory)),
                sortBy=blob.get("sortBy", defaults.sortBy),
                sortOrder=blob.get("sortOrder", defaults.sortOrder),
            )
        except ValueError as e:
            logger.warning("Ignoring invalid filter settings in snapshot: %s", e)
            filters = defaults

        return _decode_products(blob.get("products"), "state snapshot"), filters

    # -- Snapshot B: locally authored records --

    def save_local_products(self, products: List[Product]) -> bool:
        try:
            self.put(LOCAL_PRODUCTS_KEY, [p.to_dict() for p in products])
        except StorageWriteFailure as e:
            logger.warning("Failed to save local products: %s", e)
            return False
        return True

    def load_local_products(self) -> List[Product]:
        try:
            blob = self.get(LOCAL_PRODUCTS_KEY)
        except StorageReadFailure as e:
            logger.warning("Failed to load local products: %s", e)
            return []
        return _decode_products(blob, "local products")

    def clear_local_products(self) -> bool:
        try:
            self.delete(LOCAL_PRODUCTS_KEY)
        except StorageWriteFailure as e:
            logger.warning("Failed to clear local products: %s", e)
            return False
        return True


def _decode_products(raw, label: str) -> List[Product]:
    if not isinstance(raw, list):
        return []
    out: List[Product] = []
    for entry in raw:
        try:
            out.append(Product.from_dict(entry))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping unreadable product in %s: %s", label, e)
    return out
