"""اعمال تنظیمات یکتای خروجی Excel (فونت، RTL، عرض ستون‌ها)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict

import pandas as pd

from .styles import (
    openpyxl_body_style,
    openpyxl_header_fill,
    openpyxl_header_font,
    report_style,
    xlsxwriter_formats,
)

if TYPE_CHECKING:  # pragma: no cover
    from anbaryar.infra.io_utils import SheetSpec

__all__ = ["apply_workbook_formatting"]


_LOGGER = logging.getLogger(__name__)
_FONT_WARNING_EMITTED = False


def _warn_fonts_not_embedded() -> None:
    global _FONT_WARNING_EMITTED
    if not _FONT_WARNING_EMITTED:
        _LOGGER.info(
            "فونت‌های سفارشی در فایل‌های Excel جاسازی نمی‌شوند؛ در سیستم مقصد باید نصب باشند."
        )
        _FONT_WARNING_EMITTED = True


def _column_count(spec: "SheetSpec") -> int:
    widest = max((len(row) for row in spec.rows), default=0)
    return max(widest, len(spec.column_widths))


def _format_xlsxwriter(
    writer: pd.ExcelWriter,
    sheets: Dict[str, "SheetSpec"],
    *,
    rtl: bool,
    font_name: str | None,
    font_size: int | None,
) -> None:
    workbook = writer.book  # type: ignore[attr-defined]
    worksheet_map = writer.sheets  # type: ignore[attr-defined]
    body_fmt, header_fmt = xlsxwriter_formats(workbook, report_style(font_name, font_size))

    for sheet_name, spec in sheets.items():
        worksheet = worksheet_map[sheet_name]
        if rtl:
            worksheet.right_to_left()
        if spec.freeze_header:
            worksheet.freeze_panes(1, 0)
        columns = _column_count(spec)
        for idx in range(columns):
            width = spec.column_widths[idx] if idx < len(spec.column_widths) else None
            worksheet.set_column(idx, idx, width, body_fmt)
        if spec.rows:
            worksheet.set_row(0, None, header_fmt)


def _format_openpyxl(
    writer: pd.ExcelWriter,
    sheets: Dict[str, "SheetSpec"],
    *,
    rtl: bool,
    font_name: str | None,
    font_size: int | None,
) -> None:
    from openpyxl.utils import get_column_letter

    workbook = writer.book  # type: ignore[attr-defined]
    style = report_style(font_name, font_size)
    style_name = openpyxl_body_style(workbook, style)
    header_font = openpyxl_header_font(style)
    header_fill = openpyxl_header_fill()

    for sheet_name, spec in sheets.items():
        worksheet = workbook[sheet_name]
        if rtl:
            worksheet.sheet_view.rightToLeft = True
        if spec.freeze_header:
            worksheet.freeze_panes = "A2"
        for idx, width in enumerate(spec.column_widths, start=1):
            worksheet.column_dimensions[get_column_letter(idx)].width = width
        max_col = _column_count(spec)
        max_row = len(spec.rows)
        if not (max_col and max_row):
            continue
        for row in worksheet.iter_rows(min_row=1, max_row=max_row, min_col=1, max_col=max_col):
            for cell in row:
                cell.style = style_name
        for cell in worksheet[1][:max_col]:
            cell.font = header_font
            cell.fill = header_fill


def apply_workbook_formatting(
    writer: pd.ExcelWriter,
    *,
    engine: str,
    sheets: Dict[str, "SheetSpec"],
    rtl: bool,
    font_name: str | None,
    font_size: int | None,
) -> None:
    """اعمال تنظیمات خروجی Excel پس از نوشتن شیت‌ها.

    مثال::

        >>> with pd.ExcelWriter("/tmp/out.xlsx", engine="openpyxl") as writer:
        ...     spec = SheetSpec(name="Sheet", rows=[["کد", "نام"], ["A1", "آسپرین"]], column_widths=(10, 30))
        ...     pd.DataFrame(spec.rows).to_excel(writer, sheet_name="Sheet", index=False, header=False)
        ...     apply_workbook_formatting(
        ...         writer,
        ...         engine="openpyxl",
        ...         sheets={"Sheet": spec},
        ...         rtl=True,
        ...         font_name="Vazirmatn",
        ...         font_size=11,
        ...     )  # doctest: +SKIP
    """

    _warn_fonts_not_embedded()

    if engine == "xlsxwriter":
        _format_xlsxwriter(writer, sheets, rtl=rtl, font_name=font_name, font_size=font_size)
    elif engine == "openpyxl":
        _format_openpyxl(writer, sheets, rtl=rtl, font_name=font_name, font_size=font_size)
    else:
        _LOGGER.debug("engine ناشناخته برای قالب‌بندی: %s", engine)
