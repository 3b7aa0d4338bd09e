from decimal import Decimal

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from inventory.models import Inventory

pytestmark = pytest.mark.django_db


@pytest.fixture
def api():
    return APIClient()


def test_create_unit(api, kg):
    response = api.post(
        reverse("inventory:unit-list"),
        {"name": "lb", "conversions": [{"to_unit_id": kg.id, "rate": "0.453592"}]},
        format="json",
    )

    assert response.status_code == 201
    assert response.data["success"]
    assert response.data["unit"]["conversions"][0]["to_unit_name"] == "kg"


def test_validation_errors_are_400(api, kg):
    response = api.post(
        reverse("inventory:unit-list"),
        {"name": "lb", "conversions": [{"to_unit_id": kg.id, "rate": "0"}]},
        format="json",
    )

    assert response.status_code == 400
    error = response.data["error"]
    assert error["code"] == "validation_error"
    assert "conversions[0].rate" in error["details"]["errors"]


def test_unit_delete_conflict_is_409(api, kg, flour):
    response = api.delete(reverse("inventory:unit-detail", args=[kg.id]))

    assert response.status_code == 409
    assert response.data["error"]["details"]["material_ids"] == [flour.id]


def test_missing_unit_is_404(api, db):
    response = api.get(reverse("inventory:unit-detail", args=[404]))
    assert response.status_code == 404


def test_convert(api, kg, g):
    response = api.post(
        reverse("inventory:unit-convert"),
        {"quantity": "1.5", "from_unit_id": kg.id, "to_unit_id": g.id},
        format="json",
    )

    assert response.status_code == 200
    assert Decimal(response.data["result"]) == Decimal("1500")


def test_recipe_cost_preview(api, flour, g):
    response = api.post(
        reverse("inventory:recipe-cost-preview"),
        {"details": [{"material_id": flour.id, "unit_id": g.id, "quantity": "500"}]},
        format="json",
    )

    assert response.status_code == 200
    assert Decimal(response.data["total_cost"]) == Decimal("10000")


def test_receiving_flow(api, flour, kg, warehouse):
    created = api.post(
        reverse("inventory:receiving-list"),
        {
            "receiving_date": "2024-03-01",
            "warehouse_id": warehouse.id,
            "details": [{"material_id": flour.id, "unit_id": kg.id, "quantity": "10"}],
        },
        format="json",
    )
    assert created.status_code == 201
    note_id = created.data["receiving_note"]["id"]

    url = reverse("inventory:receiving-action", args=[note_id, "complete"])
    assert api.post(url).status_code == 200
    assert api.post(url).status_code == 200
    assert Inventory.objects.get(material=flour).current_stock == Decimal("10")

    listed = api.get(reverse("inventory:inventory-list"), {"below_minimum": "true"})
    assert listed.data["inventory"] == []


def test_cancelled_note_complete_is_400(api, flour, kg):
    created = api.post(
        reverse("inventory:receiving-list"),
        {
            "receiving_date": "2024-03-01",
            "details": [{"material_id": flour.id, "unit_id": kg.id, "quantity": "1"}],
        },
        format="json",
    )
    note_id = created.data["receiving_note"]["id"]
    api.post(reverse("inventory:receiving-action", args=[note_id, "cancel"]))

    response = api.post(reverse("inventory:receiving-action", args=[note_id, "complete"]))

    assert response.status_code == 400
    assert response.data["error"]["code"] == "business_rule"


def test_unknown_receiving_action_is_404(api, db):
    response = api.post(reverse("inventory:receiving-action", args=[1, "approve"]))
    assert response.status_code == 404


def test_oversized_quantity_is_400(api, flour, kg):
    response = api.post(
        reverse("inventory:receiving-list"),
        {
            "receiving_date": "2024-03-01",
            "details": [{"material_id": flour.id, "unit_id": kg.id, "quantity": "1e30"}],
        },
        format="json",
    )

    assert response.status_code == 400
    assert "details[0].quantity" in response.data["error"]["details"]["errors"]
