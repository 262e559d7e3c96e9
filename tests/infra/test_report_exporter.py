from __future__ import annotations

import importlib.util
from datetime import date
from pathlib import Path

import pytest

from anbaryar.core.models import Drug
from anbaryar.core.row_parser import parse_grid
from anbaryar.core.stats import compute_stats
from anbaryar.infra.errors import ExportError
from anbaryar.infra.excel import exporter
from anbaryar.infra.excel.exporter import (
    DETAIL_HEADERS,
    DETAIL_SHEET_NAME,
    PLAIN_SHEET_NAME,
    SUMMARY_SHEET_NAME,
    build_detail_rows,
    build_report_sheets,
    build_summary_rows,
    export_report,
    export_template,
    report_filename,
    status_label,
)
from anbaryar.infra.io_utils import read_workbook_file

requires_openpyxl = pytest.mark.skipif(
    importlib.util.find_spec("openpyxl") is None, reason="openpyxl not installed"
)

REPORT_DAY = date(2024, 3, 20)


@pytest.fixture
def drugs() -> list[Drug]:
    return [
        Drug(id="1", code="ABC123", name="استامینوفن ۵۰۰", system_qty=100).with_physical_qty(80, notes="قفسه ۲"),
        Drug(id="2", code="DEF456", name="آسپرین ۸۰", system_qty=50).with_physical_qty(70),
        Drug(id="3", code="GHI789", name="Vitamin C", system_qty=200),
    ]


@pytest.mark.parametrize(
    "difference, expected",
    [(0, "مطابق"), (20, "مازاد 20"), (-20, "کمبود 20"), (-2.5, "کمبود 2.5")],
)
def test_status_label(difference: float, expected: str) -> None:
    assert status_label(difference) == expected


def test_build_detail_rows(drugs) -> None:
    rows = build_detail_rows(drugs)
    assert rows[0] == list(DETAIL_HEADERS)
    assert rows[1] == [1, "ABC123", "استامینوفن ۵۰۰", 100, 80, -20, "کمبود 20", "قفسه ۲"]
    assert rows[2] == [2, "DEF456", "آسپرین ۸۰", 50, 70, 20, "مازاد 20", ""]
    assert rows[3] == [3, "GHI789", "Vitamin C", 200, 0, 0, "مطابق", ""]


def test_build_summary_rows(drugs) -> None:
    rows = build_summary_rows(compute_stats(drugs), REPORT_DAY)
    assert rows[0] == ["گزارش شمارش انبار", ""]
    assert rows[1] == ["تاریخ گزارش", "2024-03-20"]
    as_pairs = {row[0]: row[1] for row in rows if len(row) == 2}
    assert as_pairs["کل اقلام"] == 3
    assert as_pairs["شمارش شده"] == 2
    assert as_pairs["مطابق"] == 0
    assert as_pairs["کمبود"] == 1
    assert as_pairs["مازاد"] == 1
    assert as_pairs["مجموع تفاوت"] == 0
    assert rows[-1] == ["جزئیات اقلام", ""]


def test_build_report_sheets_puts_details_first(drugs) -> None:
    sheets = build_report_sheets(drugs, report_date=REPORT_DAY)
    assert [sheet.name for sheet in sheets] == [DETAIL_SHEET_NAME, SUMMARY_SHEET_NAME]
    assert sheets[0].column_widths == (8, 15, 30, 15, 15, 12, 15, 25)
    assert sheets[1].freeze_header is False


def test_build_report_sheets_without_summary(drugs) -> None:
    sheets = build_report_sheets(drugs, include_summary=False)
    assert [sheet.name for sheet in sheets] == [PLAIN_SHEET_NAME]


def test_report_filename() -> None:
    assert report_filename("anbaryad_export", REPORT_DAY) == "anbaryad_export_2024-03-20.xlsx"


def test_export_report_wraps_failures(drugs, monkeypatch, default_config) -> None:
    def _boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(exporter, "write_xlsx_atomic", _boom)
    with pytest.raises(ExportError) as excinfo:
        export_report(drugs, today=REPORT_DAY, config=default_config)
    assert str(excinfo.value) == "خطا در ایجاد فایل اکسل: disk full"


@requires_openpyxl
def test_export_report_writes_dated_file(drugs, tmp_path: Path, default_config) -> None:
    target = export_report(drugs, directory=tmp_path / "reports", today=REPORT_DAY, config=default_config)
    assert target == tmp_path / "reports" / "anbaryad_export_2024-03-20.xlsx"
    assert target.exists()


@requires_openpyxl
def test_export_report_uses_export_dir_env(drugs, tmp_path: Path, default_config) -> None:
    target = export_report(drugs, prefix="count", today=REPORT_DAY, config=default_config)
    assert target == tmp_path / "exports" / "count_2024-03-20.xlsx"


@requires_openpyxl
def test_exported_report_reimports_the_same_items(drugs, tmp_path: Path, default_config) -> None:
    target = export_report(drugs, directory=tmp_path, today=REPORT_DAY, config=default_config)
    parsed = parse_grid(read_workbook_file(target))

    assert parsed.header_matched
    assert [(row.code, row.name, row.system_qty) for row in parsed.rows] == [
        (drug.code, drug.name, drug.system_qty) for drug in drugs
    ]


@requires_openpyxl
def test_export_template_is_importable(tmp_path: Path, default_config) -> None:
    target = export_template(tmp_path / "template.xlsx", config=default_config)
    parsed = parse_grid(read_workbook_file(target))
    assert [row.code for row in parsed.rows] == ["ABC123", "DEF456"]
