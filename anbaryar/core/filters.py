"""فیلتر، جست‌وجو و مرتب‌سازی رکوردها برای نمایش (Core-only).

هیچ I/O در این ماژول انجام نمی‌شود. پیش از هر فیلتر، رکوردهای با شناسهٔ
تکراری حذف می‌شوند چون چند مسیر مستقل ممکن است شناسهٔ تکراری ایجاد کنند.

مثال::

    >>> from anbaryar.core.models import Drug
    >>> items = [Drug(id="1", code="A-10", name="Zinc", system_qty=5, physical_qty=3),
    ...          Drug(id="2", code="A-2", name="aspirin", system_qty=5)]
    >>> [d.code for d in filter_drugs(items, FilterOptions(sort_by="code"))]
    ['A-2', 'A-10']
    >>> [d.code for d in filter_drugs(items, FilterOptions(show_only_shortage=True))]
    ['A-10']
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Literal, Tuple

from .common.normalization import normalize_text
from .models import Drug
from .reconcile import remove_duplicate_ids

__all__ = [
    "SortKey",
    "SORT_KEYS",
    "FilterOptions",
    "natural_key",
    "matches_query",
    "filter_drugs",
    "search_drugs",
    "sort_drugs",
]

SortKey = Literal["name", "code", "stock", "recent"]
SORT_KEYS: Tuple[str, ...] = ("name", "code", "stock", "recent")

_NUM = re.compile(r"(\d+)")


@dataclass(frozen=True)
class FilterOptions:
    """گزینه‌های فیلتر نمای فهرست داروها."""

    search_query: str = ""
    show_only_shortage: bool = False
    show_only_surplus: bool = False
    show_only_counted: bool = False
    show_only_uncounted: bool = False
    sort_by: SortKey | None = None

    def __post_init__(self) -> None:
        if self.sort_by is not None and self.sort_by not in SORT_KEYS:
            raise ValueError(f"sort_by must be one of {SORT_KEYS}, got {self.sort_by!r}")


def natural_key(s: str) -> Tuple[object, ...]:
    """کلید طبیعی برای sort پایدار کدها (A-2 قبل از A-10).

    مثال::

        >>> natural_key("A-2") < natural_key("A-10")
        True
    """

    text = normalize_text(s).lower()
    if not text:
        return ()
    parts: list[tuple[int, object]] = []
    for token in _NUM.split(text):
        if not token:
            continue
        if token.isdecimal():
            parts.append((0, int(token)))
        else:
            parts.append((1, token))
    return tuple(parts)


def matches_query(drug: Drug, query: str) -> bool:
    """تطبیق بدون حساسیت به حروف بزرگ/کوچک روی نام یا کد."""

    needle = normalize_text(query).lower()
    if not needle:
        return True
    return needle in normalize_text(drug.name).lower() or needle in normalize_text(drug.code).lower()


def sort_drugs(drugs: Iterable[Drug], sort_by: SortKey | None = None) -> List[Drug]:
    """مرتب‌سازی پایدار؛ ``None`` ترتیب ورودی را حفظ می‌کند."""

    items = list(drugs)
    if sort_by is None:
        return items
    if sort_by == "name":
        return sorted(items, key=lambda drug: natural_key(drug.name))
    if sort_by == "code":
        return sorted(items, key=lambda drug: natural_key(drug.code))
    if sort_by == "stock":
        # بیشترین موجودی ابتدا؛ رکورد بدون موجودی در انتها
        return sorted(items, key=lambda drug: (drug.stock is None, -(drug.stock or 0.0)))
    if sort_by == "recent":
        return sorted(items, key=lambda drug: drug.created_at or "", reverse=True)
    raise ValueError(f"Unsupported sort key: {sort_by!r}")


def filter_drugs(drugs: Iterable[Drug], options: FilterOptions | None = None) -> List[Drug]:
    """اعمال جست‌وجو، فیلترهای وضعیت و سپس مرتب‌سازی (در صورت تعیین)."""

    options = options or FilterOptions()
    result = remove_duplicate_ids(drugs)

    if options.search_query:
        result = [drug for drug in result if matches_query(drug, options.search_query)]
    if options.show_only_shortage:
        result = [drug for drug in result if drug.difference < 0]
    if options.show_only_surplus:
        result = [drug for drug in result if drug.difference > 0]
    if options.show_only_counted:
        result = [drug for drug in result if drug.physical_qty > 0]
    if options.show_only_uncounted:
        result = [drug for drug in result if drug.physical_qty == 0]

    return sort_drugs(result, options.sort_by)


def search_drugs(drugs: Iterable[Drug], query: str) -> List[Drug]:
    """جست‌وجوی ساده بدون فیلتر وضعیت و با حفظ ترتیب ورودی."""

    unique = remove_duplicate_ids(drugs)
    if not normalize_text(query):
        return unique
    return [drug for drug in unique if matches_query(drug, query)]
