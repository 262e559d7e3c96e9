from __future__ import annotations

import itertools
from pathlib import Path
from typing import Callable

import pytest

from anbaryar.core.config import InventoryConfig, parse_inventory_config
from anbaryar.core.models import Drug
from anbaryar.infra.inventory_service import InventoryService
from anbaryar.infra.storage import InventoryStorage


FIXED_NOW = "2024-03-20T08:30:00.000Z"


@pytest.fixture(autouse=True)
def _isolated_user_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """هدایت پوشهٔ دادهٔ کاربر و خروجی گزارش به پوشهٔ موقت هر تست."""

    monkeypatch.setenv("ANBARYAR_HOME", str(tmp_path / "home"))
    monkeypatch.setenv("ANBARYAR_EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.delenv("ANBARYAR_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ANBARYAR_LOG_CONFIG", raising=False)


@pytest.fixture
def default_config() -> InventoryConfig:
    return parse_inventory_config({})


@pytest.fixture
def make_drug() -> Callable[..., Drug]:
    """کارخانهٔ رکورد آزمایشی با شناسهٔ ترتیبی."""

    counter = itertools.count(1)

    def _make(code: str = "A1", name: str = "Aspirin", system_qty: float = 100, **kwargs) -> Drug:
        drug_id = kwargs.pop("id", f"drug_{code}_{next(counter)}")
        return Drug(id=drug_id, code=code, name=name, system_qty=system_qty, **kwargs)

    return _make


@pytest.fixture
def storage(tmp_path: Path) -> InventoryStorage:
    return InventoryStorage(tmp_path / "db" / "anbaryar.sqlite3")


@pytest.fixture
def service(storage: InventoryStorage, default_config: InventoryConfig) -> InventoryService:
    counter = itertools.count(1)
    return InventoryService(
        storage,
        config=default_config,
        id_factory=lambda code: f"drug_{code}_{next(counter)}",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """نوشتن خطوط CSV با UTF-8 در پوشهٔ موقت."""

    def _write(lines: list[str], name: str = "stock.csv") -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines), encoding="utf-8")
        return path

    return _write
