import pytest

from inventory.models import Unit, Material, Warehouse
from inventory.services import UnitService, MaterialService, WarehouseService


def make_unit(name, conversions=None):
    result = UnitService.create(name=name, conversions=conversions or [])
    return Unit.objects.get(id=result["unit"]["id"])


def make_material(name, unit, price="0", min_stock_level="0"):
    result = MaterialService.create(
        name=name, base_unit_id=unit.id, price=price, min_stock_level=min_stock_level
    )
    return Material.objects.get(id=result["material"]["id"])


@pytest.fixture
def kg(db):
    return make_unit("kg")


@pytest.fixture
def g(kg):
    return make_unit("g", [{"to_unit_id": kg.id, "rate": "0.001", "description": "gram"}])


@pytest.fixture
def pcs(db):
    return make_unit("pcs")


@pytest.fixture
def flour(kg):
    return make_material("Flour", kg, price="20000", min_stock_level="5")


@pytest.fixture
def sugar(kg):
    return make_material("Sugar", kg, price="15000")


@pytest.fixture
def warehouse(db):
    result = WarehouseService.create(code="MAIN", name="Main warehouse")
    return Warehouse.objects.get(id=result["warehouse"]["id"])


@pytest.fixture
def unit_factory(db):
    return make_unit


@pytest.fixture
def material_factory(db):
    return make_material
