"""ساخت و نوشتن گزارش Excel شمارش انبار (شیت جزئیات و شیت خلاصه).

شیت جزئیات همیشه نخستین شیت فایل است تا فایل خروجی بدون تغییر دوباره قابل
ورود باشد؛ خواننده همواره شیت اول را برمی‌دارد.
"""

from __future__ import annotations

import logging
from datetime import date
from os import PathLike
from pathlib import Path
from typing import Any, List, Sequence

from anbaryar.core.common.normalization import format_number
from anbaryar.core.config import InventoryConfig, get_inventory_config
from anbaryar.core.models import Drug, DrugStats
from anbaryar.core.stats import compute_stats
from anbaryar.infra.errors import ExportError
from anbaryar.infra.io_utils import SheetSpec, write_xlsx_atomic
from anbaryar.infra.logging import correlation_scope, log_step
from anbaryar.utils.path_utils import get_export_directory

__all__ = [
    "DETAIL_HEADERS",
    "DETAIL_COLUMN_WIDTHS",
    "SUMMARY_COLUMN_WIDTHS",
    "DETAIL_SHEET_NAME",
    "PLAIN_SHEET_NAME",
    "SUMMARY_SHEET_NAME",
    "TEMPLATE_SHEET_NAME",
    "status_label",
    "build_detail_rows",
    "build_summary_rows",
    "build_report_sheets",
    "build_template_sheets",
    "report_filename",
    "export_report",
    "export_template",
]

_LOGGER = logging.getLogger(__name__)

DETAIL_HEADERS: tuple[str, ...] = (
    "ردیف",
    "کد کالا",
    "نام دارو",
    "موجودی سیستم",
    "شمارش فیزیکی",
    "تفاوت",
    "وضعیت",
    "توضیحات",
)
DETAIL_COLUMN_WIDTHS: tuple[float, ...] = (8, 15, 30, 15, 15, 12, 15, 25)
SUMMARY_COLUMN_WIDTHS: tuple[float, ...] = (20, 15)

DETAIL_SHEET_NAME = "جزئیات اقلام"
PLAIN_SHEET_NAME = "شمارش انبار"
SUMMARY_SHEET_NAME = "خلاصه گزارش"
TEMPLATE_SHEET_NAME = "الگوی ورود"

STATUS_MATCHED = "مطابق"
STATUS_SURPLUS = "مازاد"
STATUS_SHORTAGE = "کمبود"


def status_label(difference: float) -> str:
    """برچسب وضعیت یک قلم بر اساس تفاوت.

    مثال::

        >>> status_label(0), status_label(5), status_label(-2.5)
        ('مطابق', 'مازاد 5', 'کمبود 2.5')
    """

    if difference > 0:
        return f"{STATUS_SURPLUS} {format_number(abs(difference))}"
    if difference < 0:
        return f"{STATUS_SHORTAGE} {format_number(abs(difference))}"
    return STATUS_MATCHED


def _excel_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else float(value)


def build_detail_rows(drugs: Sequence[Drug]) -> List[List[Any]]:
    """ردیف‌های شیت جزئیات: سرستون ثابت و یک ردیف شماره‌دار برای هر قلم."""

    rows: List[List[Any]] = [list(DETAIL_HEADERS)]
    for index, drug in enumerate(drugs, start=1):
        rows.append(
            [
                index,
                drug.code,
                drug.name,
                _excel_number(drug.system_qty),
                _excel_number(drug.physical_qty),
                _excel_number(drug.difference),
                status_label(drug.difference),
                drug.notes or "",
            ]
        )
    return rows


def build_summary_rows(stats: DrugStats, report_date: date | None = None) -> List[List[Any]]:
    """ردیف‌های کلید/مقدار شیت خلاصه با تاریخ ISO گزارش."""

    day = report_date or date.today()
    return [
        ["گزارش شمارش انبار", ""],
        ["تاریخ گزارش", day.isoformat()],
        [""],
        ["آمار کلی", ""],
        ["کل اقلام", stats.total_items],
        ["شمارش شده", stats.counted_items],
        ["مطابق", stats.matched_items],
        ["کمبود", stats.shortage_items],
        ["مازاد", stats.surplus_items],
        ["مجموع تفاوت", _excel_number(stats.total_difference)],
        [""],
        ["جزئیات اقلام", ""],
    ]


def build_report_sheets(
    drugs: Sequence[Drug],
    *,
    include_summary: bool = True,
    report_date: date | None = None,
) -> List[SheetSpec]:
    """شیت‌های گزارش؛ بدون خلاصه فقط یک شیت «شمارش انبار» ساخته می‌شود."""

    detail_rows = build_detail_rows(drugs)
    if not include_summary:
        return [SheetSpec(PLAIN_SHEET_NAME, detail_rows, DETAIL_COLUMN_WIDTHS)]
    summary_rows = build_summary_rows(compute_stats(drugs), report_date)
    return [
        SheetSpec(DETAIL_SHEET_NAME, detail_rows, DETAIL_COLUMN_WIDTHS),
        SheetSpec(SUMMARY_SHEET_NAME, summary_rows, SUMMARY_COLUMN_WIDTHS, freeze_header=False),
    ]


def build_template_sheets() -> List[SheetSpec]:
    """الگوی خالی فایل ورود با دو ردیف نمونه."""

    rows = [
        ["ردیف", "کد کالا", "نام دارو", "موجودی سیستم"],
        [1, "ABC123", "استامینوفن ۵۰۰", 100],
        [2, "DEF456", "آسپرین ۸۰", 50],
    ]
    return [SheetSpec(TEMPLATE_SHEET_NAME, rows, (8, 15, 30, 15))]


def report_filename(prefix: str, day: date | None = None) -> str:
    """نام فایل گزارش به شکل ``<prefix>_<YYYY-MM-DD>.xlsx``.

    مثال::

        >>> report_filename("anbaryad_export", date(2024, 3, 20))
        'anbaryad_export_2024-03-20.xlsx'
    """

    return f"{prefix}_{(day or date.today()).isoformat()}.xlsx"


def export_report(
    drugs: Sequence[Drug],
    *,
    directory: str | PathLike[str] | None = None,
    prefix: str | None = None,
    include_summary: bool | None = None,
    today: date | None = None,
    config: InventoryConfig | None = None,
) -> Path:
    """نوشتن گزارش در پوشهٔ خروجی و بازگرداندن مسیر فایل.

    هر خطا در ساخت یا نوشتن فایل در قالب :class:`ExportError` بازپرتاب می‌شود.
    """

    cfg = config or get_inventory_config()
    prefix = prefix or cfg.export.prefix
    if include_summary is None:
        include_summary = cfg.export.include_summary
    day = today or date.today()

    with correlation_scope(), log_step(_LOGGER, "export_report", items=len(drugs)):
        try:
            target_dir = get_export_directory(cfg.export.subdirectory, override=directory)
            target = target_dir / report_filename(prefix, day)
            sheets = build_report_sheets(drugs, include_summary=include_summary, report_date=day)
            write_xlsx_atomic(
                sheets,
                target,
                rtl=cfg.excel.rtl,
                font_name=cfg.excel.font_name,
                font_size=cfg.excel.font_size,
            )
        except ExportError:
            raise
        except Exception as exc:
            raise ExportError(detail=str(exc) or exc.__class__.__name__) from exc

    _LOGGER.info("گزارش با %d قلم در %s ذخیره شد", len(drugs), target)
    return target


def export_template(
    path: str | PathLike[str],
    *,
    config: InventoryConfig | None = None,
) -> Path:
    """نوشتن فایل الگوی ورود در مسیر دلخواه."""

    cfg = config or get_inventory_config()
    try:
        return write_xlsx_atomic(
            build_template_sheets(),
            path,
            rtl=cfg.excel.rtl,
            font_name=cfg.excel.font_name,
            font_size=cfg.excel.font_size,
        )
    except Exception as exc:
        raise ExportError(detail=str(exc) or exc.__class__.__name__) from exc
