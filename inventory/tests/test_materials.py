from decimal import Decimal

import pytest

from inventory.models import Material
from inventory.services import MaterialService, UnitService, ValidationError, NotFoundError

pytestmark = pytest.mark.django_db


def test_code_is_identity(flour):
    assert flour.code == str(flour.id)


def test_create_serializes_base_unit(kg):
    result = MaterialService.create(name="Butter", base_unit_id=kg.id, price="85000.50")

    material = result["material"]
    assert material["base_unit_name"] == "kg"
    assert Decimal(material["price"]) == Decimal("85000.50")
    assert material["code"] == str(material["id"])


def test_validation_collects_every_field(db):
    with pytest.raises(ValidationError) as exc:
        MaterialService.create(name=" ", base_unit_id=0, min_stock_level="-1", price="-5")

    assert set(exc.value.errors) == {"name", "base_unit_id", "min_stock_level", "price"}


def test_duplicate_name_rejected(flour, kg):
    with pytest.raises(ValidationError) as exc:
        MaterialService.create(name="flour", base_unit_id=kg.id)
    assert "name" in exc.value.errors


def test_deleted_base_unit_rejected(kg, pcs):
    UnitService.delete(pcs.id)
    with pytest.raises(ValidationError) as exc:
        MaterialService.create(name="Egg", base_unit_id=pcs.id)
    assert "base_unit_id" in exc.value.errors


def test_update_keeps_code_and_changes_unit(flour, pcs):
    result = MaterialService.update(flour.id, base_unit_id=pcs.id, price="21000")

    assert result["material"]["code"] == flour.code
    assert result["material"]["base_unit_id"] == pcs.id
    assert Decimal(result["material"]["price"]) == Decimal("21000")


def test_update_allows_same_name(flour):
    result = MaterialService.update(flour.id, name="Flour", description="Wheat, type 550")
    assert result["material"]["description"] == "Wheat, type 550"


def test_list_search_filter_and_order(kg, pcs, material_factory):
    material_factory("Sugar", kg)
    material_factory("Egg", pcs)
    material_factory("Almonds", kg)

    names = [m["name"] for m in MaterialService.list()["materials"]]
    assert names == ["Almonds", "Egg", "Sugar"]

    by_unit = [m["name"] for m in MaterialService.list(unit_id=kg.id)["materials"]]
    assert by_unit == ["Almonds", "Sugar"]

    found = MaterialService.list(search="eg")["materials"]
    assert [m["name"] for m in found] == ["Egg"]


def test_list_is_paginated(kg, material_factory):
    for i in range(5):
        material_factory(f"Spice {i}", kg)

    result = MaterialService.list(page=2, per_page=2)
    assert len(result["materials"]) == 2
    assert result["pagination"]["total_items"] == 5
    assert result["pagination"]["has_next"]


def test_delete_is_soft(flour):
    MaterialService.delete(flour.id)

    assert Material.objects.filter(id=flour.id, is_deleted=True).exists()
    with pytest.raises(NotFoundError):
        MaterialService.get(flour.id)


def test_unit_can_be_deleted_after_material_is(flour, kg):
    MaterialService.delete(flour.id)
    UnitService.delete(kg.id)
    kg.refresh_from_db()
    assert kg.is_deleted


@pytest.mark.parametrize("field, value", [
    ("price", "1e30"),
    ("price", "10.005"),
    ("min_stock_level", "0.00001"),
    ("min_stock_level", "100000000000000"),
])
def test_amounts_must_fit_their_columns(kg, field, value):
    with pytest.raises(ValidationError) as exc:
        MaterialService.create(name="Saffron", base_unit_id=kg.id, **{field: value})

    assert set(exc.value.errors) == {field}
    assert not Material.objects.filter(name="Saffron").exists()
