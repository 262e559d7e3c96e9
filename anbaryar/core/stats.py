"""محاسبهٔ آمار تجمیعی شمارش (Core-only)."""

from __future__ import annotations

from typing import Iterable

from .models import Drug, DrugStats

__all__ = ["compute_stats"]


def compute_stats(drugs: Iterable[Drug]) -> DrugStats:
    """آمار کل، شمارش‌شده، مطابق، کمبود، مازاد و مجموع علامت‌دار تفاوت.

    رکورد شمارش‌نشده (موجودی فیزیکی صفر) حتی با تفاوت صفر «مطابق» نیست.

    مثال::

        >>> from anbaryar.core.models import Drug
        >>> items = [Drug(id="1", code="a", name="a", system_qty=100, physical_qty=80),
        ...          Drug(id="2", code="b", name="b", system_qty=50, physical_qty=70),
        ...          Drug(id="3", code="c", name="c", system_qty=200)]
        >>> stats = compute_stats(items)
        >>> (stats.counted_items, stats.shortage_items, stats.surplus_items, stats.matched_items)
        (2, 1, 1, 0)
    """

    total = counted = matched = shortage = surplus = 0
    total_difference = 0.0
    for drug in drugs:
        total += 1
        difference = drug.difference
        total_difference += difference
        if drug.physical_qty > 0:
            counted += 1
            if difference == 0:
                matched += 1
        if difference < 0:
            shortage += 1
        elif difference > 0:
            surplus += 1

    return DrugStats(
        total_items=total,
        counted_items=counted,
        matched_items=matched,
        shortage_items=shortage,
        surplus_items=surplus,
        total_difference=total_difference,
    )
