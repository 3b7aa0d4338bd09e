import logging
from typing import Dict, Any
from decimal import Decimal
from django.db.models import Q

from inventory.models import Material, Unit
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, atomic_operation,
    FieldErrors, parse_int, clean_amount, QUANTITY_PLACES, PRICE_PLACES
)

logger = logging.getLogger(__name__)


class MaterialService(BaseService):
    model = Material

    @classmethod
    def serialize(cls, material: Material) -> Dict[str, Any]:
        return {
            "id": material.id,
            "code": material.code,
            "name": material.name,
            "description": material.description,
            "base_unit_id": material.base_unit_id,
            "base_unit_name": material.base_unit.name,
            "min_stock_level": str(material.min_stock_level),
            "price": str(material.price),
            "created_by_id": material.created_by_id,
            "created_at": material.created_at.isoformat(),
            "updated_at": material.updated_at.isoformat(),
        }

    @classmethod
    def list(cls,
             search: str = None,
             unit_id: int = None,
             page: int = 1,
             per_page: int = None) -> Dict[str, Any]:
        queryset = cls.get_active().select_related("base_unit")

        if search:
            search = search.strip()
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(code__icontains=search)
            )

        if unit_id:
            queryset = queryset.filter(base_unit_id=unit_id)

        queryset = queryset.order_by("name", "code")
        items, pagination = paginate_queryset(queryset, page, per_page)

        return success_response({
            "materials": [cls.serialize(m) for m in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, material_id: int) -> Dict[str, Any]:
        material = cls.get_or_404(material_id)
        return success_response({"material": cls.serialize(material)})

    @classmethod
    def _validate(cls, data: Dict[str, Any], material_id: int = None) -> Dict[str, Any]:
        errors = FieldErrors()

        name = data.get("name")
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            errors.add("name", "Name is required")
        elif len(name) > 200:
            errors.add("name", "Name must be at most 200 characters")
        else:
            duplicates = cls.get_active().filter(name__iexact=name)
            if material_id:
                duplicates = duplicates.exclude(id=material_id)
            if duplicates.exists():
                errors.add("name", f"Material '{name}' already exists")

        base_unit_id = parse_int(data.get("base_unit_id"))
        if not base_unit_id or base_unit_id <= 0:
            errors.add("base_unit_id", "Base unit is required")
        elif not Unit.objects.live().filter(id=base_unit_id).exists():
            errors.add("base_unit_id", "Base unit does not exist")

        min_stock_level = clean_amount(
            errors, "min_stock_level", data.get("min_stock_level", 0),
            QUANTITY_PLACES, "Minimum stock level",
        )
        price = clean_amount(errors, "price", data.get("price", 0), PRICE_PLACES, "Price")

        errors.raise_if_any("Invalid material")

        return {
            "name": name,
            "description": str(data.get("description") or "").strip(),
            "base_unit_id": base_unit_id,
            "min_stock_level": min_stock_level,
            "price": price,
        }

    @classmethod
    @atomic_operation
    def create(cls,
               name: str,
               base_unit_id: int,
               description: str = "",
               min_stock_level: Decimal = Decimal("0"),
               price: Decimal = Decimal("0"),
               created_by_id: int = None) -> Dict[str, Any]:
        cleaned = cls._validate({
            "name": name,
            "base_unit_id": base_unit_id,
            "description": description,
            "min_stock_level": min_stock_level,
            "price": price,
        })

        material = cls.model.objects.create(created_by_id=created_by_id, **cleaned)
        # Code mirrors the identity, so it can only be set after the insert
        material.code = str(material.id)
        material.save(update_fields=["code"])

        logger.info(f"Material {material.code} '{material.name}' created")
        return success_response({
            "material": cls.serialize(material)
        }, "Material created")

    @classmethod
    @atomic_operation
    def update(cls, material_id: int, **data) -> Dict[str, Any]:
        material = cls.get_or_404(material_id)

        merged = {
            "name": material.name,
            "base_unit_id": material.base_unit_id,
            "description": material.description,
            "min_stock_level": material.min_stock_level,
            "price": material.price,
        }
        merged.update({k: v for k, v in data.items() if k in merged})
        cleaned = cls._validate(merged, material_id=material.id)

        for field, value in cleaned.items():
            setattr(material, field, value)
        material.save()
        material.refresh_from_db()

        return success_response({
            "material": cls.serialize(material)
        }, "Material updated")

    @classmethod
    @atomic_operation
    def delete(cls, material_id: int) -> Dict[str, Any]:
        material = cls.get_or_404(material_id)
        material.soft_delete()
        logger.info(f"Material {material.code} deleted")
        return success_response({"id": material.id}, "Material deleted")
