"""تبدیل ردیف‌های خام جدول به رکوردهای معتبر دارو (Core-only).

جریان کلی :func:`parse_grid`:

1. ترمیم متن خراب‌شدهٔ همهٔ سلول‌های رشته‌ای جدول؛
2. یافتن ردیف سرستون و نگاشت ستون‌ها؛
3. تبدیل هر ردیف داده با :func:`parse_row` و کنار گذاشتن ردیف‌های نامعتبر.

ردیف نامعتبر (کد/نام خالی، موجودی منفی یا غیرعددی) بی‌صدا حذف می‌شود؛
فقط خطاهای پیش‌بینی‌نشده با قالب «خط n: ...» گزارش می‌شوند.

مثال::

    >>> grid = [["ردیف", "کد کالا", "نام دارو", "موجودی"],
    ...         [1, "ABC123", "Aspirin", 100],
    ...         [2, "GHI789", "Vitamin C", -10]]
    >>> result = parse_grid(grid)
    >>> [(row.code, row.system_qty) for row in result.rows]
    [('ABC123', 100.0)]
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from .common.columns import (
    DEFAULT_COLUMN_MAP,
    DEFAULT_SCAN_ROWS,
    ColumnMap,
    count_header_matches,
    find_header_row,
    map_columns,
)
from .common.normalization import (
    DEFAULT_REPAIR_STRATEGIES,
    cell_to_text,
    clean_cell_text,
    fold_digits,
    repair_mojibake,
)

__all__ = [
    "ParsedRow",
    "ParsedGrid",
    "parse_quantity",
    "parse_row",
    "parse_grid",
    "is_blank_row",
]

# پیشوند عددی مشابه parseFloat: علامت، ارقام، اعشار و توان اختیاری.
_RE_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_RE_THOUSANDS = re.compile(r"^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d*)?$")


@dataclass(frozen=True, slots=True)
class ParsedRow:
    """ردیف معتبر استخراج‌شده از فایل؛ ``row_number`` شمارهٔ خط ۱-پایه است."""

    row_number: int
    code: str
    name: str
    system_qty: float


@dataclass(frozen=True)
class ParsedGrid:
    """خروجی تجزیهٔ کامل یک جدول."""

    rows: Tuple[ParsedRow, ...] = ()
    errors: Tuple[str, ...] = ()
    header_row: int = 0
    column_map: ColumnMap = field(default=DEFAULT_COLUMN_MAP)
    header_matched: bool = False
    skipped_rows: int = 0


def parse_quantity(value: Any) -> float | None:
    """تفسیر مقدار موجودی مانند ``parseFloat``؛ نامعتبر → ``None``.

    مقدار غایب یا خالی صفر در نظر گرفته می‌شود. ارقام فارسی/عربی پشتیبانی
    می‌شوند و جداکنندهٔ هزارگان فقط در قالب استاندارد (1,234) حذف می‌شود.

    مثال::

        >>> parse_quantity("۱۲۰")
        120.0
        >>> parse_quantity("12abc")
        12.0
        >>> parse_quantity("abc") is None
        True
        >>> parse_quantity(None)
        0.0
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        if math.isnan(number):
            return 0.0
        return number if math.isfinite(number) else None
    text = fold_digits(cell_to_text(value)).strip()
    if not text:
        return 0.0
    if _RE_THOUSANDS.match(text):
        text = text.replace(",", "")
    match = _RE_FLOAT_PREFIX.match(text)
    if match is None:
        return None
    number = float(match.group(0))
    return number if math.isfinite(number) else None


def _cell(row: Sequence[Any], index: int | None) -> Any:
    if index is None or index < 0 or index >= len(row):
        return None
    return row[index]


def is_blank_row(row: Sequence[Any] | None) -> bool:
    if not row:
        return True
    return all(not cell_to_text(cell).strip() for cell in row)


def parse_row(
    row: Sequence[Any],
    column_map: ColumnMap,
    row_number: int,
    strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES,
) -> ParsedRow | None:
    """تبدیل یک ردیف خام به :class:`ParsedRow` یا ``None`` برای ردیف نامعتبر.

    مثال::

        >>> parse_row([3, "GHI789", "Vitamin C", -10], DEFAULT_COLUMN_MAP, 4) is None
        True
    """

    code = clean_cell_text(_cell(row, column_map.code), strategies)
    name = clean_cell_text(_cell(row, column_map.name), strategies)
    if not code or not name:
        return None

    quantity = parse_quantity(_cell(row, column_map.system_qty))
    if quantity is None or quantity < 0:
        return None

    return ParsedRow(row_number=row_number, code=code, name=name, system_qty=quantity)


def _repair_grid(
    grid: Sequence[Sequence[Any]], strategies: Sequence[str]
) -> List[List[Any]]:
    repaired: List[List[Any]] = []
    for row in grid:
        cells = list(row or ())
        repaired.append(
            [repair_mojibake(cell, strategies) if isinstance(cell, str) else cell for cell in cells]
        )
    return repaired


def parse_grid(
    grid: Sequence[Sequence[Any]],
    strategies: Sequence[str] = DEFAULT_REPAIR_STRATEGIES,
    scan_rows: int = DEFAULT_SCAN_ROWS,
    default_map: ColumnMap = DEFAULT_COLUMN_MAP,
) -> ParsedGrid:
    """تجزیهٔ کامل جدول به ردیف‌های معتبر به‌همراه خطاهای ردیفی.

    جدول خالی یک :class:`ParsedGrid` خالی برمی‌گرداند؛ تشخیص شکست ساختاری
    بر عهدهٔ لایهٔ هماهنگ‌کننده است.
    """

    if not grid:
        return ParsedGrid()

    fixed = _repair_grid(grid, strategies)
    header_index = find_header_row(fixed, scan_rows=scan_rows, strategies=strategies)
    header = fixed[header_index] if header_index < len(fixed) else []
    column_map = map_columns(header, default=default_map, strategies=strategies)
    header_matched = count_header_matches(header, strategies=strategies) > 0

    rows: List[ParsedRow] = []
    errors: List[str] = []
    skipped = 0
    for index in range(header_index + 1, len(fixed)):
        row = fixed[index]
        if is_blank_row(row):
            continue
        line_number = index + 1
        try:
            parsed = parse_row(row, column_map, line_number, strategies)
        except Exception as exc:  # خطای پیش‌بینی‌نشده در دسترسی به سلول
            errors.append(f"خط {line_number}: {exc}")
            continue
        if parsed is None:
            skipped += 1
            continue
        rows.append(parsed)

    return ParsedGrid(
        rows=tuple(rows),
        errors=tuple(errors),
        header_row=header_index,
        column_map=column_map,
        header_matched=header_matched,
        skipped_rows=skipped,
    )
