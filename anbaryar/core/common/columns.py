"""تشخیص ردیف سرستون و نگاشت ستون‌ها برای فایل‌های موجودی (Core-only).

ورودی یک جدول دوبعدی از سلول‌های خام است. سرستون با جست‌وجوی واژه‌های
کلیدی فارسی/انگلیسی در چند ردیف ابتدایی پیدا می‌شود و سپس هر فیلد معنایی
(کد، نام، موجودی سیستم) به اندیس ستون متناظر نگاشت می‌شود.

مثال::

    >>> grid = [["گزارش انبار"], ["ردیف", "کد کالا", "نام دارو", "موجودی"]]
    >>> find_header_row(grid)
    1
    >>> map_columns(grid[1])
    ColumnMap(code=1, name=2, system_qty=3, is_default=False)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Tuple

from .normalization import DEFAULT_REPAIR_STRATEGIES, clean_cell_text

__all__ = [
    "HEADER_KEYWORDS",
    "FIELD_KEYWORDS",
    "DEFAULT_SCAN_ROWS",
    "ColumnMap",
    "DEFAULT_COLUMN_MAP",
    "header_text",
    "count_header_matches",
    "find_header_row",
    "map_columns",
]

HEADER_KEYWORDS: Tuple[str, ...] = (
    "کد کالا",
    "کد",
    "code",
    "itemcode",
    "item_code",
    "نام دارو",
    "نام",
    "name",
    "drug_name",
    "موجودی",
    "quantity",
    "qty",
    "systemqty",
    "system_qty",
    "ردیف",
    "row",
)

# ترتیب فیلدها مهم است: هر سلول به اولین فیلدی که با آن تطبیق دارد نسبت داده می‌شود.
FIELD_KEYWORDS: Mapping[str, Tuple[str, ...]] = {
    "code": ("کد", "code"),
    "name": ("نام", "name"),
    "system_qty": ("موجودی", "quantity", "qty", "سیستم"),
}

DEFAULT_SCAN_ROWS = 5


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """اندیس ستون‌های معنایی؛ ``None`` یعنی ستون پیدا نشده است."""

    code: int | None = None
    name: int | None = None
    system_qty: int | None = None
    is_default: bool = False

    def to_dict(self) -> dict[str, int]:
        payload = {"code": self.code, "name": self.name, "systemQty": self.system_qty}
        return {key: value for key, value in payload.items() if value is not None}


DEFAULT_COLUMN_MAP = ColumnMap(code=1, name=2, system_qty=3, is_default=True)


def header_text(cell: Any, strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES) -> str:
    """متن پاک‌شده و کوچک‌شدهٔ یک سلول سرستون."""

    return clean_cell_text(cell, strategies).lower()


def count_header_matches(
    row: Sequence[Any] | None,
    keywords: Sequence[str] = HEADER_KEYWORDS,
    strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES,
) -> int:
    """شمارش واژه‌های کلیدی سرستون که در متن ردیف دیده می‌شوند.

    مثال::

        >>> count_header_matches(["Code", "Name", "Qty"])
        3
    """

    if not row:
        return 0
    joined = " ".join(header_text(cell, strategies) for cell in row)
    return sum(1 for keyword in keywords if keyword.lower() in joined)


def find_header_row(
    grid: Sequence[Sequence[Any]],
    scan_rows: int = DEFAULT_SCAN_ROWS,
    keywords: Sequence[str] = HEADER_KEYWORDS,
    strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES,
) -> int:
    """یافتن اندیس (۰-پایه) نخستین ردیفی که دست‌کم یک واژهٔ کلیدی دارد.

    فقط ``scan_rows`` ردیف ابتدایی بررسی می‌شوند. اگر هیچ ردیفی تطبیق نداشته
    باشد، ردیف صفر به‌عنوان سرستون در نظر گرفته می‌شود؛ تشخیص جدول خالی بر
    عهدهٔ فراخواننده است.
    """

    for index, row in enumerate(grid[: max(0, scan_rows)]):
        if count_header_matches(row, keywords, strategies) > 0:
            return index
    return 0


def map_columns(
    header_row: Sequence[Any] | None,
    field_keywords: Mapping[str, Sequence[str]] = FIELD_KEYWORDS,
    default: ColumnMap = DEFAULT_COLUMN_MAP,
    strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES,
) -> ColumnMap:
    """نگاشت فیلدهای معنایی به اندیس ستون بر اساس سرستون.

    برای هر سلول، نخستین فیلدی که واژهٔ کلیدی‌اش در متن سلول باشد انتخاب
    می‌شود و فیلدی که قبلاً مقدار گرفته بازنویسی نمی‌شود. اگر هیچ فیلدی
    تطبیق نیابد، چیدمان پیش‌فرض (کد=۱، نام=۲، موجودی=۳) برگردانده می‌شود.

    مثال::

        >>> map_columns(["Code", "Item Code", "Name"])
        ColumnMap(code=0, name=2, system_qty=None, is_default=False)
        >>> map_columns(["الف", "ب"]).is_default
        True
    """

    assigned: dict[str, int] = {}
    for index, cell in enumerate(header_row or ()):
        text = header_text(cell, strategies).strip()
        if not text:
            continue
        for field, keywords in field_keywords.items():
            if any(keyword.lower() in text for keyword in keywords):
                assigned.setdefault(field, index)
                break

    if not assigned:
        return default
    return ColumnMap(
        code=assigned.get("code"),
        name=assigned.get("name"),
        system_qty=assigned.get("system_qty"),
    )
