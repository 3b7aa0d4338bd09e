from django.urls import path
from . import views

app_name = "inventory"

urlpatterns = [
    path("units/", views.UnitListView.as_view(), name="unit-list"),
    path("units/lookup/", views.UnitLookupView.as_view(), name="unit-lookup"),
    path("units/convert/", views.UnitConvertView.as_view(), name="unit-convert"),
    path("units/<int:unit_id>/", views.UnitDetailView.as_view(), name="unit-detail"),

    path("materials/", views.MaterialListView.as_view(), name="material-list"),
    path("materials/<int:material_id>/", views.MaterialDetailView.as_view(), name="material-detail"),

    path("warehouses/", views.WarehouseListView.as_view(), name="warehouse-list"),
    path("warehouses/<int:warehouse_id>/", views.WarehouseDetailView.as_view(), name="warehouse-detail"),

    path("recipes/", views.RecipeListView.as_view(), name="recipe-list"),
    path("recipes/calculate-cost/", views.RecipeCostPreviewView.as_view(), name="recipe-cost-preview"),
    path("recipes/<int:recipe_id>/", views.RecipeDetailView.as_view(), name="recipe-detail"),

    path("receiving/", views.ReceivingListView.as_view(), name="receiving-list"),
    path("receiving/<int:note_id>/", views.ReceivingDetailView.as_view(), name="receiving-detail"),
    path("receiving/<int:note_id>/<str:action>/", views.ReceivingActionView.as_view(), name="receiving-action"),

    path("inventory/", views.InventoryListView.as_view(), name="inventory-list"),
    path("inventory/<int:inventory_id>/", views.InventoryDetailView.as_view(), name="inventory-detail"),
]
