"""استایل گزارش شمارش: یک قلم بدنه و یک سرستون پررنگ با پس‌زمینهٔ سبز روشن.

هر Workbook فقط یک Format/NamedStyle برای هر ترکیب فونت می‌سازد؛ استایل‌ها
روی خود Workbook کش می‌شوند تا چند شیت گزارش استایل تکراری نسازند.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

__all__ = [
    "DEFAULT_FONT_SIZE",
    "HEADER_FILL",
    "ReportStyle",
    "report_style",
    "xlsxwriter_formats",
    "openpyxl_body_style",
    "openpyxl_header_font",
    "openpyxl_header_fill",
]

DEFAULT_FONT_SIZE = 11
HEADER_FILL = "E8F5E9"
_STYLE_PREFIX = "AnbarYar"


@dataclass(frozen=True, slots=True)
class ReportStyle:
    """فونت مشترک شیت‌های گزارش."""

    font_name: str | None
    font_size: int

    @property
    def style_name(self) -> str:
        family = (self.font_name or "Default").replace(" ", "")[:20]
        return f"{_STYLE_PREFIX}_{family}_{self.font_size}"


def report_style(font_name: str | None, font_size: int | None = None) -> ReportStyle:
    """ساخت استایل گزارش؛ اندازهٔ نامعتبر یا خالی با اندازهٔ پیش‌فرض جایگزین می‌شود.

    مثال::

        >>> report_style("Vazirmatn").style_name
        'AnbarYar_Vazirmatn_11'
        >>> report_style(None, 14)
        ReportStyle(font_name=None, font_size=14)
    """

    size = font_size if font_size and font_size > 0 else DEFAULT_FONT_SIZE
    return ReportStyle(font_name=font_name or None, font_size=size)


def xlsxwriter_formats(workbook: Any, style: ReportStyle) -> Tuple[Any, Any]:
    """Formatهای (بدنه، سرستون) xlsxwriter برای یک Workbook."""

    cache: Dict[ReportStyle, Tuple[Any, Any]] = workbook.__dict__.setdefault("_anbaryar_formats", {})
    if style in cache:
        return cache[style]
    base: Dict[str, Any] = {"font_size": style.font_size}
    if style.font_name:
        base["font_name"] = style.font_name
    body = workbook.add_format(dict(base))
    header = workbook.add_format({**base, "bold": True, "bg_color": f"#{HEADER_FILL}", "border": 1})
    cache[style] = (body, header)
    return body, header


def openpyxl_body_style(workbook: Any, style: ReportStyle) -> str:
    """ثبت (یک‌باره) NamedStyle بدنه در Workbook و بازگرداندن نام آن."""

    from openpyxl.styles import Font, NamedStyle

    name = style.style_name
    if name not in workbook.named_styles:
        named = NamedStyle(name=name)
        named.font = Font(name=style.font_name, size=style.font_size)
        workbook.add_named_style(named)
    return name


def openpyxl_header_font(style: ReportStyle):
    from openpyxl.styles import Font

    return Font(name=style.font_name, size=style.font_size, bold=True)


def openpyxl_header_fill():
    from openpyxl.styles import PatternFill

    return PatternFill(fill_type="solid", start_color=HEADER_FILL, end_color=HEADER_FILL)
