import logging
from typing import Dict, Any, List
from datetime import date
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from inventory.models import (
    ReceivingNote, ReceivingDetail, Material, Unit, Warehouse
)
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, atomic_operation,
    ValidationError, NotFoundError, ConflictError, BusinessRuleError, FieldErrors,
    parse_int, round_decimal, generate_note_number,
    clean_amount, within_column, QUANTITY_PLACES, PRICE_PLACES
)
from inventory.services.unit_service import ConversionResolver
from inventory.services.inventory_service import InventoryLedger

logger = logging.getLogger(__name__)


class ReceivingNoteService(BaseService):
    model = ReceivingNote
    resource_name = "Receiving note"

    @classmethod
    def serialize_detail(cls, detail: ReceivingDetail) -> Dict[str, Any]:
        return {
            "id": detail.id,
            "material_id": detail.material_id,
            "material_code": detail.material.code,
            "material_name": detail.material.name,
            "quantity": str(detail.quantity),
            "unit_id": detail.unit_id,
            "unit_name": detail.unit.name,
            "unit_price": str(detail.unit_price),
            "base_quantity": str(detail.base_quantity),
            "base_unit_id": detail.material.base_unit_id,
        }

    @classmethod
    def serialize_brief(cls, note: ReceivingNote) -> Dict[str, Any]:
        warehouse = note.warehouse
        return {
            "id": note.id,
            "note_number": note.note_number,
            "receiving_date": note.receiving_date.isoformat(),
            "supplier_code": note.supplier_code,
            "supplier_name": note.supplier_name,
            "warehouse_id": note.warehouse_id,
            "warehouse_code": warehouse.code if warehouse else None,
            "warehouse_name": warehouse.name if warehouse else None,
            "status": note.status,
            "status_display": note.get_status_display(),
            "is_stock_applied": note.is_stock_applied,
            "completed_at": note.completed_at.isoformat() if note.completed_at else None,
        }

    @classmethod
    def serialize(cls, note: ReceivingNote) -> Dict[str, Any]:
        data = cls.serialize_brief(note)
        details = note.details.live().select_related("material", "unit").order_by("id")
        data.update({
            "notes": note.notes,
            "details": [cls.serialize_detail(d) for d in details],
            "created_by_id": note.created_by_id,
            "created_at": note.created_at.isoformat(),
            "updated_at": note.updated_at.isoformat(),
        })
        return data

    @classmethod
    def list(cls,
             search: str = None,
             status: str = None,
             warehouse_id: int = None,
             page: int = 1,
             per_page: int = None) -> Dict[str, Any]:
        queryset = cls.get_active().select_related("warehouse")

        if search:
            search = search.strip()
            queryset = queryset.filter(
                Q(note_number__icontains=search) |
                Q(supplier_name__icontains=search) |
                Q(supplier_code__icontains=search)
            )

        if status:
            valid = [c[0] for c in ReceivingNote.Status.choices]
            if status not in valid:
                raise ValidationError(f"Invalid status. Valid: {valid}", "status")
            queryset = queryset.filter(status=status)

        if warehouse_id:
            queryset = queryset.filter(warehouse_id=warehouse_id)

        queryset = queryset.order_by("-receiving_date", "-id")
        items, pagination = paginate_queryset(queryset, page, per_page)

        return success_response({
            "receiving_notes": [cls.serialize_brief(n) for n in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, note_id: int) -> Dict[str, Any]:
        note = cls.get_or_404(note_id)
        return success_response({"receiving_note": cls.serialize(note)})

    @classmethod
    def _validate_details(cls, details: Any, errors: FieldErrors) -> List[Dict[str, Any]]:
        if not isinstance(details, list) or not details:
            errors.add("details", "At least one line is required")
            return []

        rows = [d for d in details if isinstance(d, dict)]
        materials = Material.objects.live().in_bulk(
            [i for i in (parse_int(d.get("material_id")) for d in rows) if i]
        )
        units = Unit.objects.live().in_bulk(
            [i for i in (parse_int(d.get("unit_id")) for d in rows) if i]
        )

        cleaned = []
        for index, raw in enumerate(details):
            prefix = f"details[{index}]"
            if not isinstance(raw, dict):
                errors.add(prefix, "Invalid line")
                continue

            material = materials.get(parse_int(raw.get("material_id")))
            if material is None:
                errors.add(f"{prefix}.material_id", "Material does not exist")

            unit = units.get(parse_int(raw.get("unit_id")))
            if unit is None:
                errors.add(f"{prefix}.unit_id", "Unit does not exist")

            quantity = clean_amount(
                errors, f"{prefix}.quantity", raw.get("quantity"),
                QUANTITY_PLACES, "Quantity", positive=True,
            )
            unit_price = clean_amount(
                errors, f"{prefix}.unit_price", raw.get("unit_price", 0),
                PRICE_PLACES, "Unit price",
            )

            if material is None or unit is None or quantity is None:
                continue

            rate = ConversionResolver.resolve(unit.id, material.base_unit_id)
            if rate is None:
                errors.add(
                    f"{prefix}.unit_id",
                    f"Line {index + 1}: cannot convert {unit.name} to the base unit of {material.name}"
                )
                continue

            converted = quantity * rate
            if not within_column(converted, QUANTITY_PLACES):
                errors.add(f"{prefix}.quantity", "Quantity is too large in the base unit")
                continue
            base_quantity = round_decimal(converted, QUANTITY_PLACES)
            if base_quantity <= 0:
                errors.add(f"{prefix}.quantity", "Quantity is too small to record in the base unit")
                continue

            cleaned.append({
                "material": material,
                "unit": unit,
                "quantity": quantity,
                "unit_price": unit_price,
                "base_quantity": base_quantity,
            })

        return cleaned

    @classmethod
    @atomic_operation
    def create(cls,
               receiving_date: Any,
               details: List[Dict[str, Any]],
               note_number: str = None,
               supplier_code: str = "",
               supplier_name: str = "",
               warehouse_id: int = None,
               status: str = ReceivingNote.Status.DRAFT,
               notes: str = "",
               created_by_id: int = None) -> Dict[str, Any]:
        errors = FieldErrors()

        if isinstance(receiving_date, date):
            parsed_date = receiving_date
        elif receiving_date:
            try:
                parsed_date = parse_date(str(receiving_date))
            except ValueError:
                parsed_date = None
        else:
            parsed_date = timezone.localdate()
        if parsed_date is None:
            errors.add("receiving_date", "Date must be YYYY-MM-DD")

        valid_statuses = [c[0] for c in ReceivingNote.Status.choices]
        if status not in valid_statuses:
            errors.add("status", f"Invalid status. Valid: {valid_statuses}")

        note_number = (note_number or "").strip()
        if len(note_number) > 50:
            errors.add("note_number", "Note number must be at most 50 characters")

        cleaned = cls._validate_details(details, errors)
        errors.raise_if_any("Invalid receiving note")

        warehouse = None
        if warehouse_id:
            warehouse = Warehouse.objects.live().filter(id=warehouse_id).first()
            if warehouse is None:
                raise NotFoundError("Warehouse", warehouse_id)

        if not note_number:
            note_number = generate_note_number()
        if cls.get_active().filter(note_number=note_number).exists():
            logger.warning(f"Duplicate receiving note number {note_number}")
            raise ConflictError(
                f"Receiving note number '{note_number}' already exists",
                {"resource": "ReceivingNote", "note_number": note_number},
            )

        note = cls.model.objects.create(
            note_number=note_number,
            receiving_date=parsed_date,
            supplier_code=(supplier_code or "").strip(),
            supplier_name=(supplier_name or "").strip(),
            warehouse=warehouse,
            status=status,
            notes=notes or "",
            created_by_id=created_by_id,
        )

        ReceivingDetail.objects.bulk_create([
            ReceivingDetail(
                note=note,
                material=line["material"],
                unit=line["unit"],
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                base_quantity=line["base_quantity"],
                created_by_id=created_by_id,
            )
            for line in cleaned
        ])

        logger.info(f"Receiving note {note.note_number} created ({note.status}, {len(cleaned)} lines)")

        InventoryLedger.apply_receiving(note)

        return success_response({
            "receiving_note": cls.serialize(note)
        }, "Receiving note created")

    @classmethod
    def _lock(cls, note_id: int) -> ReceivingNote:
        note = (
            cls.get_active()
            .select_for_update()
            .filter(id=note_id)
            .first()
        )
        if note is None:
            raise NotFoundError(cls.get_resource_name(), note_id)
        return note

    @classmethod
    def _check_targets_live(cls, note: ReceivingNote):
        """Raise NotFoundError when the warehouse or a line material was deleted after drafting."""
        if note.warehouse_id and not Warehouse.objects.live().filter(id=note.warehouse_id).exists():
            raise NotFoundError("Warehouse", note.warehouse_id)

        material_ids = set(note.details.live().values_list("material_id", flat=True))
        live_ids = set(
            Material.objects.live().filter(id__in=material_ids).values_list("id", flat=True)
        )
        missing = sorted(material_ids - live_ids)
        if missing:
            raise NotFoundError("Material", missing[0])

    @classmethod
    @atomic_operation
    def complete(cls, note_id: int) -> Dict[str, Any]:
        note = cls._lock(note_id)

        if note.status == ReceivingNote.Status.CANCELLED:
            raise BusinessRuleError(
                f"Receiving note {note.note_number} is cancelled", "cancelled_note"
            )

        if note.status == ReceivingNote.Status.COMPLETED and note.is_stock_applied:
            return success_response({
                "receiving_note": cls.serialize(note)
            }, "Receiving note already completed")

        cls._check_targets_live(note)

        note.status = ReceivingNote.Status.COMPLETED
        note.save(update_fields=["status", "updated_at"])
        InventoryLedger.apply_receiving(note)

        logger.info(f"Receiving note {note.note_number} completed")
        return success_response({
            "receiving_note": cls.serialize(note)
        }, "Receiving note completed")

    @classmethod
    @atomic_operation
    def cancel(cls, note_id: int) -> Dict[str, Any]:
        note = cls._lock(note_id)

        if note.status == ReceivingNote.Status.CANCELLED:
            return success_response({
                "receiving_note": cls.serialize(note)
            }, "Receiving note already cancelled")

        # Applied stock stays; the latch is one-way
        note.status = ReceivingNote.Status.CANCELLED
        note.save(update_fields=["status", "updated_at"])

        logger.info(f"Receiving note {note.note_number} cancelled")
        return success_response({
            "receiving_note": cls.serialize(note)
        }, "Receiving note cancelled")
