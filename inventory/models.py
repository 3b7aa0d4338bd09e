from django.db import models
from django.conf import settings
from django.utils import timezone


class LiveQuerySet(models.QuerySet):
    """QuerySet with soft-delete aware helpers."""

    def live(self):
        return self.filter(is_deleted=False)

    def deleted(self):
        return self.filter(is_deleted=True)


class AuditedModel(models.Model):
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Soft delete flag - rows are never removed",
    )

    objects = LiveQuerySet.as_manager()

    class Meta:
        abstract = True

    def soft_delete(self, save: bool = True):
        self.is_deleted = True
        self.deleted_at = timezone.now()
        if save:
            self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])

    def restore(self, save: bool = True):
        self.is_deleted = False
        self.deleted_at = None
        if save:
            self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])


# =============================================================================
# UNITS
# =============================================================================

class Unit(AuditedModel):
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class ConversionEdge(AuditedModel):
    """
    Directed conversion: quantity_in_to_unit = quantity_in_from_unit * rate.
    Every live edge has a live reciprocal maintained by UnitService.
    """

    from_unit = models.ForeignKey(
        Unit, on_delete=models.CASCADE, related_name="conversions"
    )
    to_unit = models.ForeignKey(
        Unit, on_delete=models.CASCADE, related_name="incoming_conversions"
    )
    rate = models.DecimalField(max_digits=18, decimal_places=6)
    description = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["from_unit_id", "to_unit_id"]
        indexes = [
            models.Index(fields=["from_unit", "to_unit"], name="inventory_edge_pair_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["from_unit", "to_unit"],
                condition=models.Q(is_deleted=False),
                name="inventory_edge_live_pair_uniq",
            ),
        ]

    def __str__(self):
        return f"{self.from_unit} → {self.to_unit} × {self.rate}"


# =============================================================================
# MATERIALS & WAREHOUSES
# =============================================================================

class Material(AuditedModel):
    code = models.CharField(max_length=100, blank=True, default="", db_index=True)
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    base_unit = models.ForeignKey(
        Unit, on_delete=models.PROTECT, related_name="materials"
    )
    min_stock_level = models.DecimalField(
        max_digits=18, decimal_places=4, default=0
    )
    price = models.DecimalField(
        max_digits=18, decimal_places=2, default=0,
        help_text="Price per base unit",
    )

    class Meta:
        ordering = ["name", "code"]

    def __str__(self):
        return f"{self.code} - {self.name}"


class Warehouse(AuditedModel):
    code = models.CharField(max_length=50)
    name = models.CharField(max_length=200)
    contact_person = models.CharField(max_length=100, blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    email = models.EmailField(blank=True, default="")
    address = models.CharField(max_length=255, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"


# =============================================================================
# RECIPES
# =============================================================================

class Recipe(AuditedModel):
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    output_unit = models.ForeignKey(
        Unit, on_delete=models.PROTECT, related_name="+"
    )
    preparation_time = models.PositiveIntegerField(
        default=0, help_text="Minutes"
    )

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class RecipeDetail(AuditedModel):
    recipe = models.ForeignKey(
        Recipe, on_delete=models.CASCADE, related_name="details"
    )
    material = models.ForeignKey(
        Material, on_delete=models.PROTECT, related_name="recipe_details"
    )
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name="+")
    quantity = models.DecimalField(max_digits=18, decimal_places=4)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.material.name} × {self.quantity} {self.unit.name}"


class RecipeStep(AuditedModel):
    recipe = models.ForeignKey(
        Recipe, on_delete=models.CASCADE, related_name="steps"
    )
    step_number = models.PositiveIntegerField()
    description = models.TextField()

    class Meta:
        ordering = ["step_number"]

    def __str__(self):
        return f"{self.recipe.name} #{self.step_number}"


# =============================================================================
# RECEIVING & INVENTORY
# =============================================================================

class ReceivingNote(AuditedModel):
    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        COMPLETED = "COMPLETED", "Completed"
        CANCELLED = "CANCELLED", "Cancelled"

    note_number = models.CharField(max_length=50, db_index=True)
    receiving_date = models.DateField()
    supplier_code = models.CharField(max_length=100, blank=True, default="")
    supplier_name = models.CharField(max_length=200, blank=True, default="")
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="receiving_notes",
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )
    # One-way latch; flipped in the same transaction as the stock increments
    is_stock_applied = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-receiving_date", "-id"]

    def __str__(self):
        return self.note_number


class ReceivingDetail(AuditedModel):
    note = models.ForeignKey(
        ReceivingNote, on_delete=models.CASCADE, related_name="details"
    )
    material = models.ForeignKey(
        Material, on_delete=models.PROTECT, related_name="receiving_details"
    )
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    unit = models.ForeignKey(Unit, on_delete=models.PROTECT, related_name="+")
    unit_price = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Frozen at note creation; never recomputed
    base_quantity = models.DecimalField(max_digits=18, decimal_places=4)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.material.name} × {self.quantity}"


class Inventory(AuditedModel):
    """
    Current stock per material per warehouse, in the material's base unit.
    Only mutated by InventoryLedger.
    """

    material = models.ForeignKey(
        Material, on_delete=models.PROTECT, related_name="inventories"
    )
    warehouse = models.ForeignKey(
        Warehouse,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="inventories",
    )
    current_stock = models.DecimalField(max_digits=18, decimal_places=4, default=0)
    last_updated = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["material__name", "material_id", "warehouse_id"]
        verbose_name_plural = "inventories"
        # One live row per (material, warehouse); a NULL warehouse needs its own constraint
        constraints = [
            models.UniqueConstraint(
                fields=["material", "warehouse"],
                condition=models.Q(is_deleted=False, warehouse__isnull=False),
                name="inventory_live_stock_uniq",
            ),
            models.UniqueConstraint(
                fields=["material"],
                condition=models.Q(is_deleted=False, warehouse__isnull=True),
                name="inventory_live_unassigned_stock_uniq",
            ),
        ]

    def __str__(self):
        return f"{self.material.name} @ {self.warehouse or '-'}: {self.current_stock}"

    @property
    def is_below_minimum(self) -> bool:
        return self.current_stock < self.material.min_stock_level
