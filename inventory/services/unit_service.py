import logging
from typing import Dict, Any, Optional, List, Set
from decimal import Decimal
from django.db.models import Q

from inventory.models import Unit, ConversionEdge, Material
from inventory.services.base_service import (
    BaseService, success_response, atomic_operation,
    ValidationError, ConflictError, FieldErrors,
    parse_decimal, parse_int, round_decimal, within_column
)

logger = logging.getLogger(__name__)

RATE_PLACES = 6


class ConversionResolver:
    """
    Shared unit conversion lookup. Checks the direct edge, then the
    opposite edge inverted. Never walks through a third unit.
    """

    @classmethod
    def resolve(cls, from_unit_id: int, to_unit_id: int) -> Optional[Decimal]:
        if from_unit_id == to_unit_id:
            return Decimal("1")

        direct = ConversionEdge.objects.live().filter(
            from_unit_id=from_unit_id, to_unit_id=to_unit_id
        ).values_list("rate", flat=True).first()
        if direct is not None:
            return direct

        reverse = ConversionEdge.objects.live().filter(
            from_unit_id=to_unit_id, to_unit_id=from_unit_id
        ).values_list("rate", flat=True).first()
        if reverse:
            return Decimal("1") / reverse

        return None

    @classmethod
    def is_convertible(cls, from_unit_id: int, to_unit_id: int) -> bool:
        return cls.resolve(from_unit_id, to_unit_id) is not None

    @classmethod
    def convert(cls, quantity: Any, from_unit_id: int, to_unit_id: int) -> Dict[str, Any]:
        errors = FieldErrors()
        qty = parse_decimal(quantity)
        if qty is None:
            errors.add("quantity", "Quantity must be a number")
        from_unit = UnitService.get_by_id(from_unit_id)
        if not from_unit:
            errors.add("from_unit_id", "Unit does not exist")
        to_unit = UnitService.get_by_id(to_unit_id)
        if not to_unit:
            errors.add("to_unit_id", "Unit does not exist")
        errors.raise_if_any()

        rate = cls.resolve(from_unit.id, to_unit.id)
        if rate is None:
            raise ValidationError(
                f"Cannot convert {from_unit.name} to {to_unit.name}", "to_unit_id"
            )

        return success_response({
            "from_unit": {"id": from_unit.id, "name": from_unit.name},
            "to_unit": {"id": to_unit.id, "name": to_unit.name},
            "quantity": str(qty),
            "rate": str(rate),
            "result": str(qty * rate),
        })


class UnitService(BaseService):
    model = Unit

    @classmethod
    def serialize(cls, unit: Unit, include_conversions: bool = False) -> Dict[str, Any]:
        data = {
            "id": unit.id,
            "name": unit.name,
            "description": unit.description,
            "created_by_id": unit.created_by_id,
            "created_at": unit.created_at.isoformat(),
            "updated_at": unit.updated_at.isoformat(),
        }

        if include_conversions:
            edges = unit.conversions.live().select_related("to_unit").order_by("to_unit__name")
            data["conversions"] = [cls.serialize_edge(edge) for edge in edges]

        return data

    @classmethod
    def serialize_edge(cls, edge: ConversionEdge) -> Dict[str, Any]:
        return {
            "id": edge.id,
            "to_unit_id": edge.to_unit_id,
            "to_unit_name": edge.to_unit.name,
            "rate": str(edge.rate),
            "description": edge.description,
        }

    @classmethod
    def list(cls, include_conversions: bool = False) -> Dict[str, Any]:
        units = cls.get_active().order_by("name")
        if include_conversions:
            units = units.prefetch_related("conversions__to_unit")

        data = [cls.serialize(u, include_conversions=include_conversions) for u in units]
        return success_response({
            "units": data,
            "count": len(data),
        })

    @classmethod
    def lookup(cls) -> Dict[str, Any]:
        units = cls.get_active().order_by("name").values("id", "name")
        return success_response({"units": list(units)})

    @classmethod
    def get(cls, unit_id: int) -> Dict[str, Any]:
        unit = cls.get_or_404(unit_id)
        return success_response({
            "unit": cls.serialize(unit, include_conversions=True)
        })

    @classmethod
    def _validate(cls, name: Any, description: Any, conversions: Any,
                  unit_id: int = None) -> List[Dict[str, Any]]:
        errors = FieldErrors()

        name = name.strip() if isinstance(name, str) else ""
        if not name:
            errors.add("name", "Name is required")
        elif len(name) > 100:
            errors.add("name", "Name must be at most 100 characters")
        else:
            duplicates = cls.get_active().filter(name__iexact=name)
            if unit_id:
                duplicates = duplicates.exclude(id=unit_id)
            if duplicates.exists():
                errors.add("name", f"Unit '{name}' already exists")

        if description and len(description) > 255:
            errors.add("description", "Description must be at most 255 characters")

        if conversions is None:
            conversions = []
        if not isinstance(conversions, list):
            errors.add("conversions", "Conversions must be a list")
            conversions = []

        cleaned = []
        seen: Set[int] = set()
        requested_ids = {parse_int(c.get("to_unit_id")) for c in conversions if isinstance(c, dict)}
        live_targets = set(
            cls.get_active().filter(id__in=[i for i in requested_ids if i]).values_list("id", flat=True)
        )

        for index, conv in enumerate(conversions):
            prefix = f"conversions[{index}]"
            if not isinstance(conv, dict):
                errors.add(prefix, "Invalid conversion")
                continue

            to_unit_id = parse_int(conv.get("to_unit_id"))
            if not to_unit_id or to_unit_id <= 0:
                errors.add(f"{prefix}.to_unit_id", "Target unit is required")
            elif unit_id and to_unit_id == unit_id:
                errors.add(f"{prefix}.to_unit_id", "A unit cannot convert to itself")
            elif to_unit_id in seen:
                errors.add(f"{prefix}.to_unit_id", "Target unit is listed more than once")
            elif to_unit_id not in live_targets:
                errors.add(f"{prefix}.to_unit_id", "Target unit does not exist")
            if to_unit_id:
                seen.add(to_unit_id)

            rate = parse_decimal(conv.get("rate"))
            if rate is None or rate <= 0:
                errors.add(f"{prefix}.rate", "Rate must be greater than 0")
            elif not within_column(rate, RATE_PLACES):
                errors.add(f"{prefix}.rate", "Rate is too large")
            elif round_decimal(rate, RATE_PLACES) <= 0 or round_decimal(Decimal("1") / rate, RATE_PLACES) <= 0:
                errors.add(f"{prefix}.rate", "Rate or its reciprocal is too small to store")

            conv_description = str(conv.get("description") or "").strip()
            if len(conv_description) > 255:
                errors.add(f"{prefix}.description", "Description must be at most 255 characters")

            cleaned.append({
                "to_unit_id": to_unit_id,
                "rate": rate,
                "description": conv_description,
            })

        errors.raise_if_any("Invalid unit")
        return cleaned

    @classmethod
    @atomic_operation
    def create(cls,
               name: str,
               description: str = "",
               conversions: List[Dict[str, Any]] = None,
               created_by_id: int = None) -> Dict[str, Any]:
        cleaned = cls._validate(name, description, conversions)

        unit = cls.model.objects.create(
            name=name.strip(),
            description=(description or "").strip(),
            created_by_id=created_by_id,
        )
        cls._sync_conversions(unit, cleaned, created_by_id)

        logger.info(f"Unit {unit.id} '{unit.name}' created with {len(cleaned)} conversions")
        return success_response({
            "unit": cls.serialize(unit, include_conversions=True)
        }, "Unit created")

    @classmethod
    @atomic_operation
    def update(cls,
               unit_id: int,
               name: str,
               description: str = "",
               conversions: List[Dict[str, Any]] = None,
               updated_by_id: int = None) -> Dict[str, Any]:
        unit = cls.get_or_404(unit_id)
        cleaned = cls._validate(name, description, conversions, unit_id=unit.id)

        unit.name = name.strip()
        unit.description = (description or "").strip()
        unit.save(update_fields=["name", "description", "updated_at"])
        cls._sync_conversions(unit, cleaned, updated_by_id)

        logger.info(f"Unit {unit.id} '{unit.name}' updated with {len(cleaned)} conversions")
        return success_response({
            "unit": cls.serialize(unit, include_conversions=True)
        }, "Unit updated")

    @classmethod
    def _sync_conversions(cls, unit: Unit, requested: List[Dict[str, Any]],
                          user_id: int = None):
        """Reconcile the unit's outgoing edges, then mirror every live one."""
        # Keep the first row per target: live rows sort ahead of deleted ones
        existing = {}
        for edge in ConversionEdge.objects.filter(from_unit=unit).order_by("is_deleted", "-id"):
            existing.setdefault(edge.to_unit_id, edge)

        requested_by_target = {conv["to_unit_id"]: conv for conv in requested}
        removed_targets = []

        for to_unit_id, edge in existing.items():
            if to_unit_id not in requested_by_target and not edge.is_deleted:
                edge.soft_delete()
                removed_targets.append(to_unit_id)

        for to_unit_id, conv in requested_by_target.items():
            rate = round_decimal(conv["rate"], RATE_PLACES)
            edge = existing.get(to_unit_id)
            if edge:
                edge.rate = rate
                edge.description = conv["description"]
                edge.restore(save=False)
                edge.save(update_fields=["rate", "description", "is_deleted", "deleted_at", "updated_at"])
            else:
                ConversionEdge.objects.create(
                    from_unit=unit,
                    to_unit_id=to_unit_id,
                    rate=rate,
                    description=conv["description"],
                    created_by_id=user_id,
                )

        if removed_targets:
            for reciprocal in ConversionEdge.objects.live().filter(
                from_unit_id__in=removed_targets, to_unit=unit
            ):
                reciprocal.soft_delete()

        for edge in ConversionEdge.objects.live().filter(from_unit=unit):
            cls._mirror(edge, user_id)

        if removed_targets:
            logger.info(f"Unit {unit.id}: removed conversions to {removed_targets}")

    @classmethod
    def _mirror(cls, edge: ConversionEdge, user_id: int = None) -> ConversionEdge:
        """Create or refresh the reciprocal of a live edge."""
        rate = round_decimal(Decimal("1") / edge.rate, RATE_PLACES)
        candidates = ConversionEdge.objects.filter(
            from_unit_id=edge.to_unit_id, to_unit_id=edge.from_unit_id
        ).order_by("is_deleted", "-id")
        reciprocal = candidates.first()

        if reciprocal is None:
            return ConversionEdge.objects.create(
                from_unit_id=edge.to_unit_id,
                to_unit_id=edge.from_unit_id,
                rate=rate,
                description=edge.description,
                created_by_id=user_id,
            )

        reciprocal.rate = rate
        reciprocal.description = edge.description
        reciprocal.restore(save=False)
        reciprocal.save(update_fields=["rate", "description", "is_deleted", "deleted_at", "updated_at"])
        return reciprocal

    @classmethod
    @atomic_operation
    def delete(cls, unit_id: int) -> Dict[str, Any]:
        unit = cls.get_or_404(unit_id)

        blocking = list(
            Material.objects.live().filter(base_unit=unit).values_list("id", flat=True)
        )
        if blocking:
            logger.warning(f"Unit {unit.id} delete blocked by materials {blocking}")
            raise ConflictError(
                f"Unit '{unit.name}' is used as base unit by {len(blocking)} material(s)",
                {"resource": "Unit", "identifier": str(unit.id), "material_ids": blocking},
            )

        edges = ConversionEdge.objects.live().filter(Q(from_unit=unit) | Q(to_unit=unit))
        removed = 0
        for edge in edges:
            edge.soft_delete()
            removed += 1

        unit.soft_delete()
        logger.info(f"Unit {unit.id} deleted with {removed} conversion edges")

        return success_response({"id": unit.id}, "Unit deleted")
