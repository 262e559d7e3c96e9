from __future__ import annotations

import re
from pathlib import Path

CORE_DIR = Path(__file__).resolve().parents[2] / "anbaryar" / "core"
FORBIDDEN_IO = re.compile(r"(read_excel|to_excel|ExcelWriter|open\(|sqlite3)")


def test_core_has_no_io_patterns() -> None:
    offenders: list[str] = []
    for py_file in CORE_DIR.rglob("*.py"):
        match = FORBIDDEN_IO.search(py_file.read_text(encoding="utf-8"))
        if match:
            offenders.append(f"{py_file.relative_to(CORE_DIR)} -> {match.group(1)}")
    assert not offenders, "Forbidden I/O patterns detected in core: " + ", ".join(offenders)


def test_core_modules_do_not_import_logging() -> None:
    offenders = [
        path
        for path in CORE_DIR.rglob("*.py")
        if "logging." in path.read_text(encoding="utf-8") or "import logging" in path.read_text(encoding="utf-8")
    ]
    assert not offenders, f"logging usage found in core modules: {offenders}"


def test_core_does_not_depend_on_infra() -> None:
    offenders = [
        path for path in CORE_DIR.rglob("*.py") if "anbaryar.infra" in path.read_text(encoding="utf-8")
    ]
    assert not offenders, f"core modules import infra: {offenders}"
