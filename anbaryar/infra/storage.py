# file: anbaryar/infra/storage.py
"""ذخیره‌سازی پایدار فهرست داروها در یک جدول کلید/مقدار SQLite.

هر کلید یک مقدار JSON نگه می‌دارد:

* ``anbaryad_drugs``: فهرست رکوردهای :class:`Drug` با کلیدهای camelCase؛
* ``anbaryad_last_import``: زمان آخرین ورود فایل (ISO-8601)؛
* ``anbaryad_settings``: شیء تنظیمات کاربر.

نمونهٔ استفادهٔ سریع:

>>> storage = InventoryStorage(Path("anbaryar.sqlite3"))  # doctest: +SKIP
>>> storage.save_drugs(drugs)  # doctest: +SKIP
>>> storage.load_drugs()  # doctest: +SKIP
"""
from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Iterable, List, Mapping

from anbaryar.core.common.errors import DrugValidationError
from anbaryar.core.models import Drug
from anbaryar.core.reconcile import remove_duplicate_ids
from anbaryar.infra.errors import StorageWriteError
from anbaryar.infra.sqlite_config import open_connection

DRUGS_KEY = "anbaryad_drugs"
LAST_IMPORT_KEY = "anbaryad_last_import"
SETTINGS_KEY = "anbaryad_settings"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

logger = logging.getLogger(__name__)


class InventoryStorage:
    """لایهٔ نازک روی :mod:`sqlite3` برای سه کلید ثابت برنامه.

    خواندن هرگز خطا پرتاب نمی‌کند (دادهٔ خراب → مقدار خالی)، اما شکست در
    نوشتن فهرست داروها با :class:`StorageWriteError` گزارش می‌شود.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _connect(self) -> sqlite3.Connection:
        conn = open_connection(self.path)
        conn.execute(_SCHEMA)
        return conn

    def _write(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )

    def _read(self, key: str) -> Any:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    # ------------------------------------------------------------------
    # Drugs
    # ------------------------------------------------------------------
    def save_drugs(self, drugs: Iterable[Drug]) -> None:
        """ذخیرهٔ فهرست پس از حذف شناسه‌های تکراری."""

        unique = remove_duplicate_ids(drugs)
        try:
            self._write(DRUGS_KEY, [drug.to_dict() for drug in unique])
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            logger.error("ذخیرهٔ داروها ناموفق بود: %s", exc)
            raise StorageWriteError() from exc
        logger.debug("%d دارو در %s ذخیره شد", len(unique), self.path)

    def load_drugs(self) -> List[Drug]:
        """بارگذاری فهرست؛ دادهٔ خراب یا خطای خواندن فهرست خالی برمی‌گرداند."""

        try:
            raw = self._read(DRUGS_KEY)
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.error("خواندن داروها ناموفق بود: %s", exc)
            return []
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("دادهٔ ذخیره‌شدهٔ داروها فهرست نیست؛ نادیده گرفته شد")
            return []

        drugs: List[Drug] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                logger.warning("رکورد نامعتبر در داده‌های ذخیره‌شده نادیده گرفته شد")
                continue
            try:
                drugs.append(Drug.from_dict(entry))
            except DrugValidationError as exc:
                logger.warning("رکورد نامعتبر نادیده گرفته شد: %s", exc)
        return drugs

    # ------------------------------------------------------------------
    # Last import / settings
    # ------------------------------------------------------------------
    def save_last_import_date(self, iso_timestamp: str) -> None:
        try:
            self._write(LAST_IMPORT_KEY, iso_timestamp)
        except (sqlite3.Error, OSError) as exc:
            raise StorageWriteError("خطا در ذخیره زمان آخرین ورود") from exc

    def load_last_import_date(self) -> str | None:
        try:
            value = self._read(LAST_IMPORT_KEY)
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.error("خواندن زمان آخرین ورود ناموفق بود: %s", exc)
            return None
        return value if isinstance(value, str) else None

    def save_settings(self, settings: Mapping[str, Any]) -> None:
        try:
            self._write(SETTINGS_KEY, dict(settings))
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            raise StorageWriteError("خطا در ذخیره تنظیمات") from exc

    def load_settings(self) -> dict[str, Any]:
        try:
            value = self._read(SETTINGS_KEY)
        except (sqlite3.Error, OSError, ValueError) as exc:
            logger.error("خواندن تنظیمات ناموفق بود: %s", exc)
            return {}
        return dict(value) if isinstance(value, dict) else {}

    def clear_all(self) -> None:
        """حذف هر سه کلید؛ خطا فقط ثبت می‌شود."""

        try:
            with closing(self._connect()) as conn, conn:
                conn.execute(
                    "DELETE FROM kv_store WHERE key IN (?, ?, ?)",
                    (DRUGS_KEY, LAST_IMPORT_KEY, SETTINGS_KEY),
                )
        except (sqlite3.Error, OSError) as exc:
            logger.error("پاک‌سازی داده‌ها ناموفق بود: %s", exc)


__all__ = [
    "DRUGS_KEY",
    "LAST_IMPORT_KEY",
    "SETTINGS_KEY",
    "InventoryStorage",
]
