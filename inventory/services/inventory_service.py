import logging
from typing import Dict, Any, Optional
from decimal import Decimal
from django.db import transaction, IntegrityError
from django.db.models import Q, F
from django.utils import timezone

from inventory.models import Inventory, ReceivingNote
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, atomic_operation,
    NotFoundError
)

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Sole writer of Inventory rows. Stock only moves through receiving
    notes, and each note is applied at most once.
    """

    @classmethod
    @atomic_operation
    def apply_receiving(cls, note: ReceivingNote) -> bool:
        """
        Add every live detail's base quantity to its (material, warehouse)
        row and latch the note. Returns False when there was nothing to do.
        """
        if note.is_stock_applied or note.status != ReceivingNote.Status.COMPLETED:
            return False

        now = timezone.now()
        details = note.details.live().order_by("id")

        for detail in details:
            cls._add_stock(
                detail.material_id, note.warehouse_id, detail.base_quantity,
                now, note.created_by_id,
            )

        note.is_stock_applied = True
        note.completed_at = now
        note.save(update_fields=["is_stock_applied", "completed_at", "updated_at"])

        logger.info(f"Receiving note {note.note_number}: stock applied for {len(details)} lines")
        return True

    @classmethod
    def _locked_row(cls, material_id: int, warehouse_id: Optional[int]) -> Optional[Inventory]:
        return (
            Inventory.objects.live()
            .select_for_update()
            .filter(material_id=material_id, warehouse_id=warehouse_id)
            .order_by("id")
            .first()
        )

    @classmethod
    def _add_stock(cls, material_id: int, warehouse_id: Optional[int],
                   quantity: Decimal, now, user_id: int = None):
        row = cls._locked_row(material_id, warehouse_id)
        if row is None:
            try:
                with transaction.atomic():
                    Inventory.objects.create(
                        material_id=material_id,
                        warehouse_id=warehouse_id,
                        current_stock=quantity,
                        last_updated=now,
                        created_by_id=user_id,
                    )
                return
            except IntegrityError:
                # A concurrent receiving inserted the row first
                logger.warning(
                    f"Inventory row for material {material_id} / warehouse {warehouse_id} "
                    f"created concurrently; adding to it"
                )
                row = cls._locked_row(material_id, warehouse_id)
                if row is None:
                    raise

        row.current_stock = F("current_stock") + quantity
        row.last_updated = now
        row.save(update_fields=["current_stock", "last_updated", "updated_at"])


class InventoryService(BaseService):
    model = Inventory

    @classmethod
    def serialize(cls, row: Inventory) -> Dict[str, Any]:
        material = row.material
        warehouse = row.warehouse
        return {
            "id": row.id,
            "material_id": material.id,
            "material_code": material.code,
            "material_name": material.name,
            "warehouse_id": row.warehouse_id,
            "warehouse_code": warehouse.code if warehouse else None,
            "warehouse_name": warehouse.name if warehouse else None,
            "current_stock": str(row.current_stock),
            "base_unit_id": material.base_unit_id,
            "base_unit_name": material.base_unit.name,
            "min_stock_level": str(material.min_stock_level),
            "is_below_minimum": row.is_below_minimum,
            "last_updated": row.last_updated.isoformat(),
        }

    @classmethod
    def _queryset(cls):
        return cls.get_active().select_related(
            "material", "material__base_unit", "warehouse"
        )

    @classmethod
    def list(cls,
             material_id: int = None,
             warehouse_id: int = None,
             below_minimum: bool = False,
             search: str = None,
             page: int = 1,
             per_page: int = None) -> Dict[str, Any]:
        queryset = cls._queryset()

        if material_id:
            queryset = queryset.filter(material_id=material_id)

        if warehouse_id:
            queryset = queryset.filter(warehouse_id=warehouse_id)

        if below_minimum:
            queryset = queryset.filter(current_stock__lt=F("material__min_stock_level"))

        if search:
            search = search.strip()
            queryset = queryset.filter(
                Q(material__name__icontains=search) | Q(material__code__icontains=search)
            )

        queryset = queryset.order_by("material__name", "material_id", "warehouse_id")
        items, pagination = paginate_queryset(queryset, page, per_page)

        return success_response({
            "inventory": [cls.serialize(row) for row in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, inventory_id: int) -> Dict[str, Any]:
        try:
            row = cls._queryset().get(id=inventory_id)
        except (Inventory.DoesNotExist, ValueError, TypeError):
            row = None
        if row is None:
            raise NotFoundError("Inventory", inventory_id)
        return success_response({"inventory": cls.serialize(row)})
