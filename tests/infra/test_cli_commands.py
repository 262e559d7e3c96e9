from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest

from anbaryar.infra import cli
from anbaryar.infra.storage import InventoryStorage

requires_openpyxl = pytest.mark.skipif(
    importlib.util.find_spec("openpyxl") is None, reason="openpyxl not installed"
)

STOCK_CSV = [
    "ردیف,کد کالا,نام دارو,موجودی سیستم",
    "1,ABC123,استامینوفن ۵۰۰,100",
    "2,DEF456,آسپرین ۸۰,50",
]


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cli.sqlite3"


def _run(db_path: Path, *args: str) -> int:
    return cli.main(["--db", str(db_path), *args], configure_logs=False)


def test_import_then_stats_json(db_path: Path, write_csv, capsys) -> None:
    assert _run(db_path, "import", str(write_csv(STOCK_CSV))) == 0
    assert "2 دارو با موفقیت اضافه شد" in capsys.readouterr().out

    assert _run(db_path, "stats", "--json") == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["totalItems"] == 2
    assert payload["countedItems"] == 0
    assert payload["lastImportDate"]


def test_reimport_exits_with_failure(db_path: Path, write_csv, capsys) -> None:
    path = str(write_csv(STOCK_CSV))
    _run(db_path, "import", path)
    capsys.readouterr()

    assert _run(db_path, "import", path) == 1
    assert "همه داروهای فایل قبلاً موجود هستند" in capsys.readouterr().out


def test_count_list_and_remove(db_path: Path, write_csv, capsys) -> None:
    _run(db_path, "import", str(write_csv(STOCK_CSV)))
    drug_id = InventoryStorage(db_path).load_drugs()[0].id
    capsys.readouterr()

    assert _run(db_path, "count", drug_id, "80", "--notes", "قفسه ۲") == 0
    assert "کمبود 20" in capsys.readouterr().out

    assert _run(db_path, "list", "--shortage") == 0
    out = capsys.readouterr().out
    assert "ABC123" in out and "DEF456" not in out

    assert _run(db_path, "list", "--uncounted", "--sort", "code") == 0
    assert "DEF456" in capsys.readouterr().out

    assert _run(db_path, "remove", drug_id) == 0
    assert [drug.code for drug in InventoryStorage(db_path).load_drugs()] == ["DEF456"]


def test_unknown_id_exits_with_error(db_path: Path, capsys) -> None:
    assert _run(db_path, "count", "missing", "3") == 2
    assert "missing" in capsys.readouterr().err


def test_clear_and_dedupe(db_path: Path, write_csv, capsys) -> None:
    _run(db_path, "import", str(write_csv(STOCK_CSV)))
    assert _run(db_path, "dedupe") == 0
    assert "0 رکورد تکراری حذف شد" in capsys.readouterr().out

    assert _run(db_path, "clear") == 0
    assert InventoryStorage(db_path).load_drugs() == []


def test_stats_text_output(db_path: Path, capsys) -> None:
    assert _run(db_path, "stats") == 0
    assert "کل اقلام: 0" in capsys.readouterr().out


def test_list_rejects_conflicting_filters(db_path: Path) -> None:
    with pytest.raises(SystemExit):
        _run(db_path, "list", "--shortage", "--surplus")


@requires_openpyxl
def test_export_and_template(db_path: Path, write_csv, tmp_path: Path, capsys) -> None:
    _run(db_path, "import", str(write_csv(STOCK_CSV)))

    assert _run(db_path, "export", "--out", str(tmp_path / "reports"), "--prefix", "count", "--no-summary") == 0
    assert len(list((tmp_path / "reports").glob("count_*.xlsx"))) == 1

    template = tmp_path / "template.xlsx"
    assert _run(db_path, "template", "--out", str(template)) == 0
    assert template.exists()


def test_main_configures_logging_under_user_dir(db_path: Path, tmp_path: Path) -> None:
    assert cli.main(["--db", str(db_path), "--log-level", "INFO", "stats"]) == 0
    assert (tmp_path / "home" / "logs").is_dir()
