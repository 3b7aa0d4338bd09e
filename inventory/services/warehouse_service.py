import logging
from typing import Dict, Any
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db.models import Q

from inventory.models import Warehouse, Inventory
from inventory.services.base_service import (
    BaseService, success_response, atomic_operation,
    ConflictError, FieldErrors
)

logger = logging.getLogger(__name__)

FIELDS = ("code", "name", "contact_person", "phone", "email", "address", "notes")


class WarehouseService(BaseService):
    model = Warehouse

    @classmethod
    def serialize(cls, warehouse: Warehouse) -> Dict[str, Any]:
        data = {"id": warehouse.id}
        for field in FIELDS:
            data[field] = getattr(warehouse, field)
        data["created_at"] = warehouse.created_at.isoformat()
        return data

    @classmethod
    def list(cls, search: str = None) -> Dict[str, Any]:
        queryset = cls.get_active()
        if search:
            queryset = queryset.filter(
                Q(code__icontains=search) | Q(name__icontains=search)
            )
        warehouses = [cls.serialize(w) for w in queryset.order_by("code")]
        return success_response({
            "warehouses": warehouses,
            "count": len(warehouses),
        })

    @classmethod
    def get(cls, warehouse_id: int) -> Dict[str, Any]:
        warehouse = cls.get_or_404(warehouse_id)
        return success_response({"warehouse": cls.serialize(warehouse)})

    @classmethod
    def _validate(cls, data: Dict[str, Any], warehouse_id: int = None) -> Dict[str, Any]:
        errors = FieldErrors()
        cleaned = {f: str(data.get(f) or "").strip() for f in FIELDS}

        if not cleaned["code"]:
            errors.add("code", "Code is required")
        elif len(cleaned["code"]) > 50:
            errors.add("code", "Code must be at most 50 characters")
        else:
            duplicates = cls.get_active().filter(code__iexact=cleaned["code"])
            if warehouse_id:
                duplicates = duplicates.exclude(id=warehouse_id)
            if duplicates.exists():
                errors.add("code", f"Warehouse '{cleaned['code']}' already exists")

        if not cleaned["name"]:
            errors.add("name", "Name is required")
        elif len(cleaned["name"]) > 200:
            errors.add("name", "Name must be at most 200 characters")

        if cleaned["email"]:
            try:
                validate_email(cleaned["email"])
            except DjangoValidationError:
                errors.add("email", "Enter a valid email address")

        errors.raise_if_any("Invalid warehouse")
        return cleaned

    @classmethod
    @atomic_operation
    def create(cls, created_by_id: int = None, **data) -> Dict[str, Any]:
        cleaned = cls._validate(data)
        warehouse = cls.model.objects.create(created_by_id=created_by_id, **cleaned)
        logger.info(f"Warehouse {warehouse.code} created")
        return success_response({
            "warehouse": cls.serialize(warehouse)
        }, "Warehouse created")

    @classmethod
    @atomic_operation
    def update(cls, warehouse_id: int, **data) -> Dict[str, Any]:
        warehouse = cls.get_or_404(warehouse_id)
        merged = {f: getattr(warehouse, f) for f in FIELDS}
        merged.update({k: v for k, v in data.items() if k in FIELDS})
        cleaned = cls._validate(merged, warehouse_id=warehouse.id)

        for field, value in cleaned.items():
            setattr(warehouse, field, value)
        warehouse.save()

        return success_response({
            "warehouse": cls.serialize(warehouse)
        }, "Warehouse updated")

    @classmethod
    @atomic_operation
    def delete(cls, warehouse_id: int) -> Dict[str, Any]:
        warehouse = cls.get_or_404(warehouse_id)

        stocked = list(
            Inventory.objects.live()
            .filter(warehouse=warehouse)
            .exclude(current_stock=0)
            .values_list("id", flat=True)
        )
        if stocked:
            raise ConflictError(
                f"Warehouse '{warehouse.code}' still holds stock",
                {"resource": "Warehouse", "identifier": str(warehouse.id), "inventory_ids": stocked},
            )

        warehouse.soft_delete()
        logger.info(f"Warehouse {warehouse.code} deleted")
        return success_response({"id": warehouse.id}, "Warehouse deleted")
