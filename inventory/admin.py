from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateFilter, RangeNumericFilter

from .models import (
    Unit, ConversionEdge, Material, Warehouse,
    Recipe, RecipeDetail, RecipeStep,
    ReceivingNote, ReceivingDetail, Inventory,
)
from .services import RecipeService


class ConversionEdgeInline(TabularInline):
    model = ConversionEdge
    fk_name = "from_unit"
    extra = 0
    fields = ("to_unit", "rate", "description", "is_deleted")
    readonly_fields = fields
    can_delete = False


@admin.register(Unit)
class UnitAdmin(ModelAdmin):
    list_display = ("name", "description", "is_deleted", "updated_at")
    list_filter = ("is_deleted",)
    search_fields = ("name",)
    readonly_fields = ("created_by", "created_at", "updated_at", "deleted_at")
    inlines = [ConversionEdgeInline]

    def has_delete_permission(self, request, obj=None):
        # Deleting must run through UnitService to keep edges consistent
        return False


@admin.register(ConversionEdge)
class ConversionEdgeAdmin(ModelAdmin):
    list_display = ("from_unit", "to_unit", "rate", "is_deleted")
    list_filter = ("is_deleted",)
    search_fields = ("from_unit__name", "to_unit__name")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Material)
class MaterialAdmin(ModelAdmin):
    list_display = ("code", "name", "base_unit", "price_display", "min_stock_level", "is_deleted")
    list_filter = ("is_deleted", "base_unit", ("price", RangeNumericFilter))
    list_filter_submit = True
    search_fields = ("code", "name")
    readonly_fields = ("code", "created_by", "created_at", "updated_at", "deleted_at")

    @display(description=_("Price"))
    def price_display(self, obj):
        return f"{obj.price:,.2f}"


@admin.register(Warehouse)
class WarehouseAdmin(ModelAdmin):
    list_display = ("code", "name", "contact_person", "phone", "is_deleted")
    list_filter = ("is_deleted",)
    search_fields = ("code", "name")


class RecipeDetailInline(TabularInline):
    model = RecipeDetail
    extra = 0
    fields = ("material", "quantity", "unit", "is_deleted")


class RecipeStepInline(TabularInline):
    model = RecipeStep
    extra = 0
    fields = ("step_number", "description", "is_deleted")


@admin.register(Recipe)
class RecipeAdmin(ModelAdmin):
    list_display = ("name", "output_unit", "preparation_time", "total_cost", "is_deleted")
    list_filter = ("is_deleted",)
    search_fields = ("name",)
    inlines = [RecipeDetailInline, RecipeStepInline]

    @display(description=_("Total cost"))
    def total_cost(self, obj):
        return f"{RecipeService.calculate_cost(obj)['total_cost']:,.2f}"


class ReceivingDetailInline(TabularInline):
    model = ReceivingDetail
    extra = 0
    fields = ("material", "quantity", "unit", "unit_price", "base_quantity")
    readonly_fields = fields
    can_delete = False


@admin.register(ReceivingNote)
class ReceivingNoteAdmin(ModelAdmin):
    list_display = ("note_number", "receiving_date", "supplier_name", "warehouse", "status_badge", "is_stock_applied")
    list_filter = ("status", "is_stock_applied", ("receiving_date", RangeDateFilter))
    list_filter_submit = True
    search_fields = ("note_number", "supplier_name", "supplier_code")
    readonly_fields = ("status", "is_stock_applied", "completed_at", "created_by", "created_at", "updated_at")
    inlines = [ReceivingDetailInline]

    @display(
        description=_("Status"),
        label={
            ReceivingNote.Status.DRAFT: "warning",
            ReceivingNote.Status.COMPLETED: "success",
            ReceivingNote.Status.CANCELLED: "danger",
        },
    )
    def status_badge(self, obj):
        return obj.status

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Inventory)
class InventoryAdmin(ModelAdmin):
    list_display = ("material", "warehouse", "current_stock", "below_minimum", "last_updated")
    list_filter = ("warehouse",)
    search_fields = ("material__name", "material__code")
    readonly_fields = ("material", "warehouse", "current_stock", "last_updated")

    @display(description=_("Below minimum"), boolean=True)
    def below_minimum(self, obj):
        return obj.is_below_minimum

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
