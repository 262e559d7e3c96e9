from __future__ import annotations

from anbaryar.core.common.columns import (
    DEFAULT_COLUMN_MAP,
    ColumnMap,
    count_header_matches,
    find_header_row,
    map_columns,
)

PERSIAN_HEADER = ["ردیف", "کد کالا", "نام دارو", "موجودی سیستم"]


def _latin1(text: str) -> str:
    return text.encode("utf-8").decode("latin-1")


def test_find_header_row_skips_title_rows() -> None:
    grid = [["گزارش انبار"], [""], PERSIAN_HEADER, [1, "A1", "Aspirin", 10]]
    assert find_header_row(grid) == 2


def test_find_header_row_defaults_to_first_row() -> None:
    grid = [["x", "A1", "Aspirin", 10], ["y", "B2", "Zinc", 5]]
    assert find_header_row(grid) == 0


def test_find_header_row_respects_scan_limit() -> None:
    grid = [["-"]] * 5 + [PERSIAN_HEADER]
    assert find_header_row(grid, scan_rows=5) == 0
    assert find_header_row(grid, scan_rows=6) == 5


def test_count_header_matches_is_case_insensitive() -> None:
    assert count_header_matches(["CODE", "Name", "QTY"]) == 3
    assert count_header_matches([]) == 0
    assert count_header_matches(None) == 0


def test_map_columns_for_persian_header() -> None:
    assert map_columns(PERSIAN_HEADER) == ColumnMap(code=1, name=2, system_qty=3)


def test_map_columns_for_english_header_in_custom_order() -> None:
    header = ["Quantity", "Drug Name", "Item Code"]
    assert map_columns(header) == ColumnMap(code=2, name=1, system_qty=0)


def test_map_columns_keeps_first_match() -> None:
    mapping = map_columns(["Code", "Old Code", "Name", "Qty", "Qty 2"])
    assert (mapping.code, mapping.name, mapping.system_qty) == (0, 2, 3)


def test_map_columns_repairs_garbled_header() -> None:
    header = [_latin1(cell) for cell in PERSIAN_HEADER]
    assert map_columns(header) == ColumnMap(code=1, name=2, system_qty=3)


def test_map_columns_without_keywords_returns_default() -> None:
    mapping = map_columns(["الف", "ب", "ج"])
    assert mapping is DEFAULT_COLUMN_MAP
    assert mapping.is_default


def test_column_map_to_dict_omits_missing_fields() -> None:
    assert ColumnMap(code=0, name=2).to_dict() == {"code": 0, "name": 2}
