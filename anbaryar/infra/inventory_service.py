"""سرویس هماهنگ‌کنندهٔ موجودی: ورود فایل، شمارش، ذخیره و خروجی گزارش.

سرویس مالک مجموعهٔ رکوردهای درون حافظه است و هر عملیات را به ترتیب ثابت
«تجزیه → ادغام → ذخیره → به‌روزرسانی حافظه» اجرا می‌کند. فراخوانی‌ها
هم‌زمان نیستند و فراخواننده باید عملیات‌ها را پشت سر هم اجرا کند.

مثال::

    >>> service = InventoryService(InventoryStorage(Path("inv.sqlite3")))  # doctest: +SKIP
    >>> service.load_data()  # doctest: +SKIP
    >>> result = service.import_file("stock.xlsx")  # doctest: +SKIP
    >>> result.message  # doctest: +SKIP
    '3 دارو با موفقیت اضافه شد'
"""

from __future__ import annotations

import logging
from dataclasses import replace
from os import PathLike
from pathlib import Path
from typing import Callable, List, Sequence

from anbaryar.core.common.errors import DrugNotFoundError, DrugValidationError, DuplicateDrugCodeError
from anbaryar.core.common.normalization import normalize_text
from anbaryar.core.config import InventoryConfig, get_inventory_config
from anbaryar.core.filters import FilterOptions, filter_drugs
from anbaryar.core.filters import search_drugs as _search_drugs
from anbaryar.core.models import Drug, DrugStats, ImportResult, create_drug, generate_drug_id, utc_now_iso
from anbaryar.core.reconcile import build_import_result, reconcile, remove_duplicate_ids
from anbaryar.core.row_parser import ParsedGrid, parse_grid
from anbaryar.core.stats import compute_stats
from anbaryar.infra.errors import StorageWriteError
from anbaryar.infra.excel.exporter import export_report
from anbaryar.infra.io_utils import read_workbook_file
from anbaryar.infra.logging import StepTally, correlation_scope, log_step
from anbaryar.infra.storage import InventoryStorage

__all__ = [
    "InventoryService",
    "MSG_EMPTY_FILE",
    "MSG_HEADER_NOT_FOUND",
]

_LOGGER = logging.getLogger(__name__)

MSG_EMPTY_FILE = "فایل خالی است یا داده‌ای ندارد"
MSG_HEADER_NOT_FOUND = "سطر عنوان شناسایی نشد؛ ستون‌های پیش‌فرض (کد، نام، موجودی) استفاده شد"


def _processing_error(exc: BaseException) -> ImportResult:
    return ImportResult(success=False, errors=(f"خطا در پردازش فایل: {exc}",))


class InventoryService:
    """نقطهٔ ورود یکتای عملیات موجودی برای CLI و هر رابط دیگر."""

    def __init__(
        self,
        storage: InventoryStorage,
        *,
        config: InventoryConfig | None = None,
        id_factory: Callable[[str], str] = generate_drug_id,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._storage = storage
        self._config = config or get_inventory_config()
        self._id_factory = id_factory
        self._clock = clock
        self._drugs: List[Drug] = []
        self._last_import_date: str | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def drugs(self) -> List[Drug]:
        return list(self._drugs)

    @property
    def last_import_date(self) -> str | None:
        return self._last_import_date

    @property
    def config(self) -> InventoryConfig:
        return self._config

    def load_data(self) -> None:
        """بارگذاری داروها و زمان آخرین ورود از انباره (بدون شناسه‌های تکراری)."""

        loaded = self._storage.load_drugs()
        self._drugs = remove_duplicate_ids(loaded)
        self._last_import_date = self._storage.load_last_import_date()
        dropped = len(loaded) - len(self._drugs)
        if dropped:
            _LOGGER.warning("%d رکورد با شناسهٔ تکراری هنگام بارگذاری کنار گذاشته شد", dropped)
        _LOGGER.info("%d دارو از انباره بارگذاری شد", len(self._drugs))

    def save_data(self) -> None:
        """ذخیرهٔ مجموعهٔ فعلی؛ شکست با :class:`StorageWriteError` پرتاب می‌شود."""

        self._storage.save_drugs(self._drugs)

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------
    def import_file(self, path: str | PathLike[str]) -> ImportResult:
        """ورود فایل Excel/CSV و ادغام رکوردهای تازه با مجموعهٔ فعلی.

        خطای داده هرگز پرتاب نمی‌شود و در :class:`ImportResult` برمی‌گردد.
        اگر ذخیرهٔ مجموعهٔ ادغام‌شده شکست بخورد، نتیجه ناموفق و پیام انباره
        نخستین خطا است؛ مجموعهٔ درون حافظه با این حال به‌روز می‌شود.
        """

        source = Path(path)
        with correlation_scope() as correlation_id, log_step(_LOGGER, "import_file") as tally:
            _LOGGER.info("ورود فایل %s (correlation=%s)", source, correlation_id)
            try:
                grid = read_workbook_file(source)
            except Exception as exc:
                _LOGGER.warning("خواندن فایل %s ناموفق بود: %s", source, exc)
                return _processing_error(exc)

            if not grid:
                return ImportResult(success=False, errors=(MSG_EMPTY_FILE,))

            try:
                parsed = parse_grid(
                    grid,
                    strategies=self._config.repair_strategies,
                    scan_rows=self._config.header_scan_rows,
                    default_map=self._config.default_column_map,
                )
            except Exception as exc:
                _LOGGER.exception("تجزیهٔ فایل %s ناموفق بود", source)
                return _processing_error(exc)

            return self._merge_parsed(parsed, tally)

    def _merge_parsed(self, parsed: ParsedGrid, tally: StepTally) -> ImportResult:
        _LOGGER.debug(
            "سطر عنوان=%d نگاشت=%s ردیف معتبر=%d ردیف ردشده=%d",
            parsed.header_row,
            parsed.column_map.to_dict(),
            len(parsed.rows),
            parsed.skipped_rows,
        )
        now = self._clock()
        incoming = [
            Drug(
                id="",
                code=row.code,
                name=row.name,
                system_qty=row.system_qty,
                created_at=now,
            )
            for row in parsed.rows
        ]
        result = reconcile(self._drugs, incoming, id_factory=self._id_factory)
        tally.items = result.imported_count

        extra_warnings: List[str] = []
        persist_error: StorageWriteError | None = None
        if result.imported_count and not parsed.header_matched:
            extra_warnings.append(MSG_HEADER_NOT_FOUND)
        if result.imported_count:
            try:
                self._storage.save_drugs(result.merged)
            except StorageWriteError as exc:
                _LOGGER.error("ذخیرهٔ نتیجهٔ ورود ناموفق بود: %s", exc)
                persist_error = exc
            self._drugs = list(result.merged)
            if persist_error is None:
                self._touch_last_import()

        import_result = build_import_result(
            result,
            row_errors=parsed.errors,
            extra_warnings=extra_warnings,
        )
        if persist_error is not None:
            import_result = replace(
                import_result,
                success=False,
                errors=(str(persist_error), *import_result.errors),
            )
        _LOGGER.info(
            "ورود پایان یافت: %d جدید، %d تکراری، %d خطا",
            import_result.imported_count,
            import_result.duplicate_count,
            len(import_result.errors),
        )
        return import_result

    def _touch_last_import(self) -> None:
        stamp = self._clock()
        try:
            self._storage.save_last_import_date(stamp)
        except StorageWriteError as exc:
            _LOGGER.warning("ثبت زمان آخرین ورود ناموفق بود: %s", exc)
        self._last_import_date = stamp

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def _index_of(self, drug_id: str) -> int:
        for index, drug in enumerate(self._drugs):
            if drug.id == drug_id:
                return index
        raise DrugNotFoundError(drug_id)

    def get_drug(self, drug_id: str) -> Drug:
        return self._drugs[self._index_of(drug_id)]

    def add_drug(
        self,
        code: str,
        name: str,
        system_qty: float,
        *,
        notes: str | None = None,
        category: str | None = None,
        unit: str | None = None,
        stock: float | None = None,
    ) -> Drug:
        """افزودن دستی یک قلم با اعتبارسنجی کد تکراری."""

        code = normalize_text(code)
        name = normalize_text(name)
        if not code:
            raise DrugValidationError(func="add_drug", column="code", value=code, message="کد کالا الزامی است")
        if not name:
            raise DrugValidationError(func="add_drug", column="name", value=name, message="نام دارو الزامی است")
        if system_qty is None or float(system_qty) < 0:
            raise DrugValidationError(
                func="add_drug",
                column="systemQty",
                value=system_qty,
                message="موجودی سیستم نمی‌تواند منفی باشد",
            )
        if any(normalize_text(drug.code) == code for drug in self._drugs):
            raise DuplicateDrugCodeError(
                func="add_drug",
                column="code",
                value=code,
                message=f"دارویی با کد {code} قبلاً ثبت شده است",
            )

        drug = create_drug(
            code,
            name,
            system_qty,
            notes=notes,
            category=category,
            unit=unit,
            stock=stock,
            id_factory=self._id_factory,
            created_at=self._clock(),
        )
        self._commit([*self._drugs, drug])
        return drug

    def update_physical_count(
        self,
        drug_id: str,
        physical_qty: float,
        notes: str | None = None,
    ) -> Drug:
        """ثبت شمارش فیزیکی و بازمحاسبهٔ تفاوت یک قلم."""

        if physical_qty is None or float(physical_qty) < 0:
            raise DrugValidationError(
                func="update_physical_count",
                column="physicalQty",
                value=physical_qty,
                message="شمارش فیزیکی نمی‌تواند منفی باشد",
            )
        index = self._index_of(drug_id)
        updated = self._drugs[index].with_physical_qty(physical_qty, notes=notes)
        drugs = list(self._drugs)
        drugs[index] = updated
        self._commit(drugs)
        return updated

    def remove_drug(self, drug_id: str) -> Drug:
        index = self._index_of(drug_id)
        removed = self._drugs[index]
        self._commit([drug for drug in self._drugs if drug.id != drug_id])
        return removed

    def clear_drugs(self) -> None:
        """حذف همهٔ داده‌های ذخیره‌شده و خالی کردن حافظه."""

        self._storage.clear_all()
        self._drugs = []
        self._last_import_date = None
        _LOGGER.info("همهٔ داده‌های موجودی پاک شد")

    def remove_duplicates(self) -> int:
        """حذف رکوردهای با شناسهٔ تکراری؛ تعداد حذف‌شده برگردانده می‌شود."""

        unique = remove_duplicate_ids(self._drugs)
        removed = len(self._drugs) - len(unique)
        if removed:
            self._commit(unique)
            _LOGGER.info("%d رکورد تکراری حذف شد", removed)
        return removed

    def _commit(self, drugs: Sequence[Drug]) -> None:
        self._storage.save_drugs(drugs)
        self._drugs = list(drugs)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_filtered_drugs(self, options: FilterOptions | None = None) -> List[Drug]:
        return filter_drugs(self._drugs, options)

    def search_drugs(self, query: str) -> List[Drug]:
        return _search_drugs(self._drugs, query)

    def get_stats(self) -> DrugStats:
        return compute_stats(self._drugs)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_report(
        self,
        *,
        directory: str | PathLike[str] | None = None,
        prefix: str | None = None,
        include_summary: bool | None = None,
    ) -> Path:
        """نوشتن گزارش Excel از مجموعهٔ فعلی (بدون رکوردهای شناسهٔ تکراری)."""

        return export_report(
            remove_duplicate_ids(self._drugs),
            directory=directory,
            prefix=prefix,
            include_summary=include_summary,
            config=self._config,
        )
