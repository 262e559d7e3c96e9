from __future__ import annotations

import importlib.util
from pathlib import Path

import pandas as pd
import pytest

from anbaryar.infra import io_utils
from anbaryar.infra.errors import WorkbookReadError
from anbaryar.infra.excel.styles import DEFAULT_FONT_SIZE, HEADER_FILL, ReportStyle, report_style
from anbaryar.infra.io_utils import (
    SheetSpec,
    parse_csv_line,
    read_csv_text,
    read_workbook,
    read_workbook_file,
    write_workbook,
    write_xlsx_atomic,
)

requires_openpyxl = pytest.mark.skipif(
    importlib.util.find_spec("openpyxl") is None, reason="openpyxl not installed"
)


@pytest.mark.parametrize(
    "line, expected",
    [
        ('ABC123,"Drug, with comma",100', ["ABC123", "Drug, with comma", "100"]),
        (' a , b ,c ', ["a", "b", "c"]),
        ('x,"say ""hi""",1', ["x", 'say "hi"', "1"]),
        ("a,,b", ["a", "", "b"]),
        ("single", ["single"]),
        ("", [""]),
    ],
)
def test_parse_csv_line(line: str, expected: list[str]) -> None:
    assert parse_csv_line(line) == expected


def test_read_csv_text_handles_mixed_line_endings_and_blank_lines() -> None:
    text = "ردیف,کد کالا,نام دارو,موجودی\r\n1,A1,Aspirin,10\r\n\n2,B2,Zinc,5\r3,C3,Iron,7"
    grid = read_csv_text(text)
    assert grid[0] == ["ردیف", "کد کالا", "نام دارو", "موجودی"]
    assert [row[1] for row in grid[1:]] == ["A1", "B2", "C3"]


def test_read_workbook_csv_strips_bom() -> None:
    data = "\ufeffکد,نام\nA1,Aspirin".encode("utf-8")
    assert read_workbook(data, is_csv=True) == [["کد", "نام"], ["A1", "Aspirin"]]


def test_read_workbook_falls_back_to_csv_for_unknown_binary() -> None:
    data = b"code,name,qty\nA1,Aspirin,10"
    assert read_workbook(data, is_csv=False)[1] == ["A1", "Aspirin", "10"]


OLE2_HEADER = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


def test_read_workbook_rejects_broken_xls_container() -> None:
    data = OLE2_HEADER + b"\0" * 512 + b"\nABC,Aspirin,1,2\n"
    with pytest.raises(WorkbookReadError) as excinfo:
        read_workbook(data, is_csv=False, source="stock.xls")
    assert "stock.xls" in str(excinfo.value)


def test_read_workbook_rejects_broken_xlsx_container() -> None:
    with pytest.raises(WorkbookReadError):
        read_workbook(b"PK\x03\x04not really a zip", is_csv=False)


def test_read_workbook_file_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_workbook_file(tmp_path / "absent.xlsx")


def test_read_workbook_file_directory_is_read_error(tmp_path: Path) -> None:
    with pytest.raises((WorkbookReadError, FileNotFoundError)):
        read_workbook_file(tmp_path)


def test_frame_to_grid_trims_trailing_empty_cells() -> None:
    frame = pd.DataFrame([["A1", "Aspirin", 10.0, None], [None, None, None, None], ["B2", "Zinc", float("nan"), ""]], dtype=object)
    assert io_utils._frame_to_grid(frame) == [["A1", "Aspirin", 10.0], ["B2", "Zinc"]]


def test_write_workbook_requires_sheets() -> None:
    with pytest.raises(ValueError):
        write_workbook([])


def test_safe_sheet_name_deduplicates_and_truncates() -> None:
    taken: set[str] = set()
    first = io_utils._safe_sheet_name("a/b", taken)
    second = io_utils._safe_sheet_name("a/b", taken)
    assert first == "a b"
    assert second == "a b (2)"
    assert len(io_utils._safe_sheet_name("x" * 40, taken)) == 31


@requires_openpyxl
@pytest.mark.parametrize("engine", ["openpyxl", "xlsxwriter"])
def test_xlsx_round_trip_through_first_sheet(tmp_path: Path, monkeypatch, engine: str) -> None:
    if importlib.util.find_spec(engine) is None:
        pytest.skip(f"engine {engine} not installed")
    monkeypatch.setenv("EXCEL_ENGINE", engine)
    rows = [["کد کالا", "نام دارو", "موجودی"], ["A1", "آسپرین", 10], ["B2", "Zinc", 2.5]]
    sheets = [SheetSpec("داروها", rows, (15, 30, 12)), SheetSpec("دوم", [["x"]])]

    target = write_xlsx_atomic(sheets, tmp_path / "out" / "stock.xlsx", font_name="Vazirmatn")

    assert target.exists()
    grid = read_workbook_file(target)
    assert grid[0] == ["کد کالا", "نام دارو", "موجودی"]
    assert grid[1] == ["A1", "آسپرین", 10]
    assert grid[2] == ["B2", "Zinc", 2.5]
    assert [path.name for path in tmp_path.joinpath("out").iterdir()] == ["stock.xlsx"]


@requires_openpyxl
def test_written_sheet_is_right_to_left(tmp_path: Path, monkeypatch) -> None:
    from openpyxl import load_workbook

    monkeypatch.setenv("EXCEL_ENGINE", "openpyxl")
    target = write_xlsx_atomic([SheetSpec("s", [["کد"], ["A1"]], (15,))], tmp_path / "rtl.xlsx", rtl=True)
    sheet = load_workbook(target).active
    assert sheet.sheet_view.rightToLeft
    assert sheet.freeze_panes == "A2"
    assert sheet.column_dimensions["A"].width == 15


def test_report_style_falls_back_to_default_size() -> None:
    assert report_style("Vazirmatn", None) == ReportStyle(font_name="Vazirmatn", font_size=DEFAULT_FONT_SIZE)
    assert report_style("", 0).style_name == f"AnbarYar_Default_{DEFAULT_FONT_SIZE}"


@requires_openpyxl
def test_written_sheet_uses_report_fonts(tmp_path: Path, monkeypatch) -> None:
    from openpyxl import load_workbook

    monkeypatch.setenv("EXCEL_ENGINE", "openpyxl")
    rows = [["کد", "نام"], ["A1", "آسپرین"]]
    target = write_xlsx_atomic(
        [SheetSpec("s", rows, (15, 30))], tmp_path / "fonts.xlsx", font_name="Vazirmatn", font_size=12
    )
    sheet = load_workbook(target).active

    header, body = sheet["A1"], sheet["A2"]
    assert header.font.b and header.font.name == "Vazirmatn"
    assert header.fill.start_color.rgb.endswith(HEADER_FILL)
    assert body.font.name == "Vazirmatn" and body.font.sz == 12
    assert not body.font.b
