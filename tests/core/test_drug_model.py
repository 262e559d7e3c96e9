from __future__ import annotations

import random
import re

import pytest

from anbaryar.core.common.errors import DrugNotFoundError, DrugValidationError
from anbaryar.core.models import Drug, ImportResult, create_drug, generate_drug_id, utc_now_iso


def test_uncounted_drug_has_zero_difference() -> None:
    drug = Drug(id="d1", code="A1", name="Aspirin", system_qty=100)
    assert drug.physical_qty == 0
    assert drug.difference == 0
    assert not drug.is_counted


def test_with_physical_qty_recomputes_difference() -> None:
    drug = Drug(id="d1", code="A1", name="Aspirin", system_qty=100)
    counted = drug.with_physical_qty(80, notes="قفسه ۲")
    assert counted.difference == -20
    assert counted.notes == "قفسه ۲"
    assert drug.physical_qty == 0
    assert counted.with_physical_qty(130).difference == 30


def test_explicit_zero_count_keeps_shortage() -> None:
    drug = Drug(id="d1", code="A1", name="Aspirin", system_qty=100).with_physical_qty(0)
    assert drug.difference == -100


def test_inconsistent_difference_is_settled() -> None:
    assert Drug(id="d", code="c", name="n", system_qty=10, physical_qty=4, difference=99).difference == -6
    assert Drug(id="d", code="c", name="n", system_qty=10, difference=7).difference == 0


@pytest.mark.parametrize("bad", ["abc", None, float("nan"), True])
def test_invalid_quantity_raises(bad) -> None:
    with pytest.raises(DrugValidationError):
        Drug(id="d", code="c", name="n", system_qty=bad)


def test_to_dict_and_from_dict_use_camel_case() -> None:
    drug = Drug(
        id="d1",
        code="A1",
        name="Aspirin",
        system_qty=100,
        category="مسکن",
        created_at="2024-03-20T08:30:00.000Z",
    ).with_physical_qty(90)
    payload = drug.to_dict()

    assert payload["systemQty"] == 100
    assert payload["physicalQty"] == 90
    assert payload["difference"] == -10
    assert payload["createdAt"] == "2024-03-20T08:30:00.000Z"
    assert "notes" not in payload
    assert Drug.from_dict(payload) == drug


def test_from_dict_requires_identity_fields() -> None:
    with pytest.raises(DrugValidationError):
        Drug.from_dict({"code": "A1", "name": "x", "systemQty": 1})


def test_generate_drug_id_format() -> None:
    drug_id = generate_drug_id("A1", now_ms=1700000000000, rng=random.Random(1))
    assert re.fullmatch(r"drug_A1_1700000000000_[0-9a-z]{9}", drug_id)
    assert generate_drug_id("A1") != generate_drug_id("A1")


def test_create_drug_assigns_id_and_timestamp() -> None:
    drug = create_drug("B2", "Zinc", 5, id_factory=lambda code: f"id_{code}")
    assert drug.id == "id_B2"
    assert drug.created_at is not None and drug.created_at.endswith("Z")
    assert utc_now_iso().endswith("Z")


def test_import_result_message_variants() -> None:
    assert ImportResult(success=True, imported_count=3).message == "3 دارو با موفقیت اضافه شد"
    assert ImportResult(success=False, errors=("خطا",)).message == "خطا"


def test_drug_not_found_is_key_error() -> None:
    error = DrugNotFoundError("x1")
    assert isinstance(error, KeyError)
    assert "x1" in str(error)
