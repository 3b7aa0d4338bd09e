from decimal import Decimal

import pytest

from inventory.models import Recipe, RecipeDetail, RecipeStep, ConversionEdge
from inventory.services import RecipeService, UnitService, ValidationError

pytestmark = pytest.mark.django_db


@pytest.fixture
def bread(kg, g, pcs, flour, sugar):
    result = RecipeService.create(
        name="Bread",
        output_unit_id=pcs.id,
        preparation_time=45,
        details=[
            {"material_id": flour.id, "unit_id": g.id, "quantity": "500"},
            {"material_id": sugar.id, "unit_id": kg.id, "quantity": "0.02"},
        ],
        steps=["Mix", "Knead", "Bake"],
    )
    return Recipe.objects.get(id=result["recipe"]["id"])


def line_for(recipe_data, material):
    return next(d for d in recipe_data["details"] if d["material_id"] == material.id)


def test_flour_line_cost(bread, flour):
    data = RecipeService.get(bread.id)["recipe"]
    line = line_for(data, flour)

    assert Decimal(line["conversion_rate"]) == Decimal("0.001")
    assert Decimal(line["converted_quantity"]) == Decimal("0.5")
    assert Decimal(line["cost"]) == Decimal("10000")
    assert line["base_unit_name"] == "kg"


def test_total_is_sum_of_lines(bread):
    data = RecipeService.get(bread.id)["recipe"]

    line_total = sum(Decimal(d["cost"]) for d in data["details"])
    assert Decimal(data["total_cost"]) == line_total
    assert Decimal(data["total_cost"]) == Decimal("10300")


def test_quantity_change_moves_total_by_exact_delta(bread, flour, sugar, g, kg, pcs):
    before = Decimal(RecipeService.get(bread.id)["recipe"]["total_cost"])
    flour_line = bread.details.get(material=flour)
    sugar_line = bread.details.get(material=sugar)

    RecipeService.update(
        bread.id,
        name="Bread",
        output_unit_id=pcs.id,
        details=[
            {"id": flour_line.id, "material_id": flour.id, "unit_id": g.id, "quantity": "750"},
            {"id": sugar_line.id, "material_id": sugar.id, "unit_id": kg.id, "quantity": "0.02"},
        ],
    )

    after = Decimal(RecipeService.get(bread.id)["recipe"]["total_cost"])
    assert after - before == Decimal("250") * Decimal("0.001") * flour.price


def test_cost_follows_current_price(bread, flour):
    before = Decimal(RecipeService.get(bread.id)["recipe"]["total_cost"])
    flour.price = Decimal("30000")
    flour.save()

    after = Decimal(RecipeService.get(bread.id)["recipe"]["total_cost"])
    assert after - before == Decimal("5000")


def test_costing_uses_reverse_edge(unit_factory, material_factory, pcs):
    dozen = unit_factory("dozen")
    egg_unit = unit_factory("egg")
    ConversionEdge.objects.create(from_unit=dozen, to_unit=egg_unit, rate=Decimal("12"))
    eggs = material_factory("Eggs", dozen, price="24000")

    result = RecipeService.preview_cost([
        {"material_id": eggs.id, "unit_id": egg_unit.id, "quantity": "3"},
    ])

    assert abs(Decimal(result["total_cost"]) - Decimal("6000")) < Decimal("0.0001")


def test_unconvertible_line_blocks_save(flour, pcs):
    with pytest.raises(ValidationError) as exc:
        RecipeService.create(
            name="Odd",
            output_unit_id=pcs.id,
            details=[{"material_id": flour.id, "unit_id": pcs.id, "quantity": "1"}],
        )

    assert exc.value.errors["details[0].unit_id"] == [
        "cannot convert the chosen unit to the material's base unit"
    ]
    assert not Recipe.objects.filter(name="Odd").exists()


def test_metadata_validation(flour, kg):
    with pytest.raises(ValidationError) as exc:
        RecipeService.create(
            name="x" * 201,
            output_unit_id=None,
            preparation_time=-1,
            description="d" * 1001,
            details=[],
        )

    assert set(exc.value.errors) == {
        "name", "output_unit_id", "preparation_time", "description", "details",
    }


def test_line_validation(flour, kg, pcs):
    with pytest.raises(ValidationError) as exc:
        RecipeService.create(
            name="Broken",
            output_unit_id=pcs.id,
            details=[
                {"material_id": 999, "unit_id": kg.id, "quantity": "1"},
                {"material_id": flour.id, "unit_id": 999, "quantity": "1"},
                {"material_id": flour.id, "unit_id": kg.id, "quantity": "0"},
            ],
        )

    assert set(exc.value.errors) == {
        "details[0].material_id", "details[1].unit_id", "details[2].quantity",
    }


def test_update_matches_rows_and_soft_deletes_missing(bread, flour, sugar, g, pcs):
    flour_line = bread.details.get(material=flour)
    sugar_line = bread.details.get(material=sugar)

    RecipeService.update(
        bread.id,
        name="Bread v2",
        output_unit_id=pcs.id,
        details=[
            {"id": flour_line.id, "material_id": flour.id, "unit_id": g.id, "quantity": "450"},
        ],
    )

    flour_line.refresh_from_db()
    sugar_line.refresh_from_db()
    assert flour_line.quantity == Decimal("450")
    assert not flour_line.is_deleted
    assert sugar_line.is_deleted
    assert RecipeDetail.objects.filter(recipe=bread).count() == 2


def test_update_rejects_foreign_detail_id(bread, flour, g, pcs, kg):
    other = RecipeService.create(
        name="Cake",
        output_unit_id=pcs.id,
        details=[{"material_id": flour.id, "unit_id": kg.id, "quantity": "1"}],
    )
    foreign_id = other["recipe"]["details"][0]["id"]

    with pytest.raises(ValidationError) as exc:
        RecipeService.update(
            bread.id,
            name="Bread",
            output_unit_id=pcs.id,
            details=[{"id": foreign_id, "material_id": flour.id, "unit_id": g.id, "quantity": "1"}],
        )
    assert "details[0].id" in exc.value.errors


def test_steps_are_renumbered(bread, flour, g, pcs):
    steps = list(bread.steps.live().order_by("step_number"))
    assert [s.step_number for s in steps] == [1, 2, 3]

    RecipeService.update(
        bread.id,
        name="Bread",
        output_unit_id=pcs.id,
        details=[{"material_id": flour.id, "unit_id": g.id, "quantity": "500"}],
        steps=[{"id": steps[2].id, "description": "Bake"}, {"description": "Cool"}],
    )

    data = RecipeService.get(bread.id)["recipe"]
    assert [(s["step_number"], s["description"]) for s in data["steps"]] == [(1, "Bake"), (2, "Cool")]
    assert data["steps"][0]["id"] == steps[2].id
    assert RecipeStep.objects.filter(recipe=bread, is_deleted=True).count() == 2


def test_preview_persists_nothing(flour, g):
    details_before = RecipeDetail.objects.count()

    result = RecipeService.preview_cost([
        {"material_id": flour.id, "unit_id": g.id, "quantity": "250"},
    ])

    assert Decimal(result["total_cost"]) == Decimal("5000")
    assert result["details"][0]["id"] is None
    assert RecipeDetail.objects.count() == details_before
    assert Recipe.objects.count() == 0


def test_delete_soft_deletes_children(bread):
    RecipeService.delete(bread.id)

    bread.refresh_from_db()
    assert bread.is_deleted
    assert not bread.details.live().exists()
    assert not bread.steps.live().exists()
    assert RecipeService.list()["pagination"]["total_items"] == 0


def test_list_summary(bread):
    summary = RecipeService.list(search="brea")["recipes"][0]
    assert summary["detail_count"] == 2
    assert Decimal(summary["total_cost"]) == Decimal("10300")
    assert "details" not in summary


def test_line_without_conversion_costs_nothing(bread, flour, g, kg):
    UnitService.update(g.id, name="g", conversions=[])

    data = RecipeService.get(bread.id)["recipe"]
    line = line_for(data, flour)
    assert line["convertible"] is False
    assert Decimal(data["total_cost"]) == Decimal("300")


def test_preview_checks_output_unit_when_given(flour, g):
    with pytest.raises(ValidationError) as exc:
        RecipeService.preview_cost(
            [{"material_id": flour.id, "unit_id": g.id, "quantity": "1"}],
            output_unit_id=404,
        )
    assert set(exc.value.errors) == {"output_unit_id"}


@pytest.mark.parametrize("quantity", ["0.00001", "1.23456"])
def test_quantity_finer_than_storage_rejected(flour, kg, pcs, quantity):
    with pytest.raises(ValidationError) as exc:
        RecipeService.create(
            name="Dust",
            output_unit_id=pcs.id,
            details=[{"material_id": flour.id, "unit_id": kg.id, "quantity": quantity}],
        )

    assert set(exc.value.errors) == {"details[0].quantity"}
    assert not Recipe.objects.filter(name="Dust").exists()


def test_oversized_quantity_rejected(flour, kg, pcs):
    with pytest.raises(ValidationError) as exc:
        RecipeService.create(
            name="Mountain",
            output_unit_id=pcs.id,
            details=[{"material_id": flour.id, "unit_id": kg.id, "quantity": "1e30"}],
        )
    assert exc.value.errors["details[0].quantity"] == ["Quantity is too large"]


def test_repeated_detail_id_rejected(bread, flour, sugar, kg, pcs):
    flour_line = bread.details.get(material=flour)

    with pytest.raises(ValidationError) as exc:
        RecipeService.update(
            bread.id,
            name="Bread",
            output_unit_id=pcs.id,
            details=[
                {"id": flour_line.id, "material_id": flour.id, "unit_id": kg.id, "quantity": "1"},
                {"id": flour_line.id, "material_id": sugar.id, "unit_id": kg.id, "quantity": "2"},
            ],
        )

    assert exc.value.errors["details[1].id"] == ["Ingredient is listed more than once"]
    assert bread.details.live().count() == 2


def test_repeated_step_id_rejected(bread, flour, g, pcs):
    first_step = bread.steps.live().order_by("step_number").first()

    with pytest.raises(ValidationError) as exc:
        RecipeService.update(
            bread.id,
            name="Bread",
            output_unit_id=pcs.id,
            details=[{"material_id": flour.id, "unit_id": g.id, "quantity": "500"}],
            steps=[
                {"id": first_step.id, "description": "Mix"},
                {"id": first_step.id, "description": "Mix again"},
            ],
        )

    assert "steps[1].id" in exc.value.errors
    assert bread.steps.live().count() == 3
