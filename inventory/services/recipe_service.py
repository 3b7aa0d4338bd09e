import logging
from typing import Dict, Any, Optional, List
from decimal import Decimal
from django.db.models import Q

from inventory.models import Recipe, RecipeDetail, RecipeStep, Material, Unit
from inventory.services.base_service import (
    BaseService, success_response, paginate_queryset, atomic_operation,
    FieldErrors, parse_int, clean_amount, QUANTITY_PLACES
)
from inventory.services.unit_service import ConversionResolver

logger = logging.getLogger(__name__)

NOT_CONVERTIBLE = "cannot convert the chosen unit to the material's base unit"


class RecipeService(BaseService):
    model = Recipe

    @classmethod
    def line_cost(cls, material: Material, unit: Unit, quantity: Decimal,
                  rate: Optional[Decimal], detail_id: int = None) -> Dict[str, Any]:
        """
        Cost of one ingredient line in the material's base unit.
        rate is None when the unit no longer resolves; such lines cost nothing.
        """
        if rate is None:
            converted = None
            cost = Decimal("0")
        else:
            converted = quantity * rate
            cost = converted * material.price

        return {
            "id": detail_id,
            "material_id": material.id,
            "material_code": material.code,
            "material_name": material.name,
            "quantity": quantity,
            "unit_id": unit.id,
            "unit_name": unit.name,
            "conversion_rate": rate,
            "converted_quantity": converted,
            "base_unit_id": material.base_unit_id,
            "base_unit_name": material.base_unit.name,
            "material_price": material.price,
            "cost": cost,
            "convertible": rate is not None,
        }

    @classmethod
    def _stringify(cls, line: Dict[str, Any]) -> Dict[str, Any]:
        return {
            key: str(value) if isinstance(value, Decimal) else value
            for key, value in line.items()
        }

    @classmethod
    def calculate_cost(cls, recipe: Recipe) -> Dict[str, Any]:
        lines = []
        details = recipe.details.live().select_related(
            "material", "material__base_unit", "unit"
        ).order_by("material__name", "id")

        for detail in details:
            rate = ConversionResolver.resolve(detail.unit_id, detail.material.base_unit_id)
            lines.append(cls.line_cost(
                detail.material, detail.unit, detail.quantity, rate, detail.id
            ))

        return {
            "lines": lines,
            "total_cost": sum((line["cost"] for line in lines), Decimal("0")),
        }

    @classmethod
    def serialize(cls, recipe: Recipe, include_details: bool = True) -> Dict[str, Any]:
        costing = cls.calculate_cost(recipe)

        data = {
            "id": recipe.id,
            "name": recipe.name,
            "description": recipe.description,
            "output_unit_id": recipe.output_unit_id,
            "output_unit_name": recipe.output_unit.name,
            "preparation_time": recipe.preparation_time,
            "total_cost": str(costing["total_cost"]),
            "created_by_id": recipe.created_by_id,
            "created_at": recipe.created_at.isoformat(),
            "updated_at": recipe.updated_at.isoformat(),
        }

        if include_details:
            data["details"] = [cls._stringify(line) for line in costing["lines"]]
            data["steps"] = [
                {"id": s.id, "step_number": s.step_number, "description": s.description}
                for s in recipe.steps.live().order_by("step_number")
            ]
        else:
            data["detail_count"] = len(costing["lines"])

        return data

    @classmethod
    def list(cls,
             search: str = None,
             output_unit_id: int = None,
             page: int = 1,
             per_page: int = None) -> Dict[str, Any]:
        queryset = cls.get_active().select_related("output_unit")

        if search:
            search = search.strip()
            queryset = queryset.filter(
                Q(name__icontains=search) | Q(description__icontains=search)
            )

        if output_unit_id:
            queryset = queryset.filter(output_unit_id=output_unit_id)

        items, pagination = paginate_queryset(queryset.order_by("name", "id"), page, per_page)

        return success_response({
            "recipes": [cls.serialize(r, include_details=False) for r in items],
            "pagination": pagination,
        })

    @classmethod
    def get(cls, recipe_id: int) -> Dict[str, Any]:
        recipe = cls.get_or_404(recipe_id)
        return success_response({"recipe": cls.serialize(recipe)})

    # ==================== VALIDATION ====================

    @classmethod
    def _validate_details(cls, details: Any, errors: FieldErrors,
                          recipe: Recipe = None) -> List[Dict[str, Any]]:
        if not isinstance(details, list) or not details:
            errors.add("details", "At least one ingredient is required")
            return []

        material_ids = [parse_int(d.get("material_id")) for d in details if isinstance(d, dict)]
        unit_ids = [parse_int(d.get("unit_id")) for d in details if isinstance(d, dict)]
        materials = Material.objects.live().select_related("base_unit").in_bulk(
            [i for i in material_ids if i]
        )
        units = Unit.objects.live().in_bulk([i for i in unit_ids if i])
        owned_ids = set()
        if recipe is not None:
            owned_ids = set(recipe.details.live().values_list("id", flat=True))
        seen_ids = set()

        cleaned = []
        for index, raw in enumerate(details):
            prefix = f"details[{index}]"
            if not isinstance(raw, dict):
                errors.add(prefix, "Invalid ingredient")
                continue

            detail_id = parse_int(raw.get("id"))
            if detail_id and detail_id not in owned_ids:
                errors.add(f"{prefix}.id", "Ingredient does not belong to this recipe")
            elif detail_id and detail_id in seen_ids:
                errors.add(f"{prefix}.id", "Ingredient is listed more than once")
            if detail_id:
                seen_ids.add(detail_id)

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

            rate = None
            if material is not None and unit is not None:
                rate = ConversionResolver.resolve(unit.id, material.base_unit_id)
                if rate is None:
                    errors.add(f"{prefix}.unit_id", NOT_CONVERTIBLE)

            cleaned.append({
                "id": detail_id,
                "material": material,
                "unit": unit,
                "quantity": quantity,
                "rate": rate,
            })

        return cleaned

    @classmethod
    def _validate_steps(cls, steps: Any, errors: FieldErrors,
                        recipe: Recipe = None) -> Optional[List[Dict[str, Any]]]:
        if steps is None:
            return None
        if not isinstance(steps, list):
            errors.add("steps", "Steps must be a list")
            return None

        owned_ids = set()
        if recipe is not None:
            owned_ids = set(recipe.steps.live().values_list("id", flat=True))
        seen_ids = set()

        cleaned = []
        for index, raw in enumerate(steps):
            prefix = f"steps[{index}]"
            if isinstance(raw, str):
                raw = {"description": raw}
            if not isinstance(raw, dict):
                errors.add(prefix, "Invalid step")
                continue

            step_id = parse_int(raw.get("id"))
            if step_id and step_id not in owned_ids:
                errors.add(f"{prefix}.id", "Step does not belong to this recipe")
            elif step_id and step_id in seen_ids:
                errors.add(f"{prefix}.id", "Step is listed more than once")
            if step_id:
                seen_ids.add(step_id)

            description = str(raw.get("description") or "").strip()
            if not description:
                errors.add(f"{prefix}.description", "Step description is required")
            elif len(description) > 2000:
                errors.add(f"{prefix}.description", "Step description must be at most 2000 characters")

            cleaned.append({"id": step_id, "description": description})

        return cleaned

    @classmethod
    def _validate(cls, data: Dict[str, Any], recipe: Recipe = None) -> Dict[str, Any]:
        errors = FieldErrors()

        name = data.get("name")
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            errors.add("name", "Name is required")
        elif len(name) > 200:
            errors.add("name", "Name must be at most 200 characters")

        description = str(data.get("description") or "").strip()
        if len(description) > 1000:
            errors.add("description", "Description must be at most 1000 characters")

        preparation_time = parse_int(data.get("preparation_time", 0))
        if preparation_time is None or preparation_time < 0:
            errors.add("preparation_time", "Preparation time must be 0 or greater")

        output_unit_id = parse_int(data.get("output_unit_id"))
        if not output_unit_id:
            errors.add("output_unit_id", "Output unit is required")
        elif not Unit.objects.live().filter(id=output_unit_id).exists():
            errors.add("output_unit_id", "Output unit does not exist")

        details = cls._validate_details(data.get("details"), errors, recipe)
        steps = cls._validate_steps(data.get("steps"), errors, recipe)

        errors.raise_if_any("Invalid recipe")

        return {
            "fields": {
                "name": name,
                "description": description,
                "preparation_time": preparation_time,
                "output_unit_id": output_unit_id,
            },
            "details": details,
            "steps": steps,
        }

    # ==================== PERSISTENCE ====================

    @classmethod
    def _sync_details(cls, recipe: Recipe, details: List[Dict[str, Any]], user_id: int = None):
        kept_ids = set()
        for line in details:
            if line["id"]:
                detail = recipe.details.get(id=line["id"])
                detail.material = line["material"]
                detail.unit = line["unit"]
                detail.quantity = line["quantity"]
                detail.save(update_fields=["material", "unit", "quantity", "updated_at"])
            else:
                detail = RecipeDetail.objects.create(
                    recipe=recipe,
                    material=line["material"],
                    unit=line["unit"],
                    quantity=line["quantity"],
                    created_by_id=user_id,
                )
            kept_ids.add(detail.id)

        for detail in recipe.details.live().exclude(id__in=kept_ids):
            detail.soft_delete()

    @classmethod
    def _sync_steps(cls, recipe: Recipe, steps: List[Dict[str, Any]], user_id: int = None):
        kept_ids = set()
        for number, item in enumerate(steps, start=1):
            if item["id"]:
                step = recipe.steps.get(id=item["id"])
                step.step_number = number
                step.description = item["description"]
                step.save(update_fields=["step_number", "description", "updated_at"])
            else:
                step = RecipeStep.objects.create(
                    recipe=recipe,
                    step_number=number,
                    description=item["description"],
                    created_by_id=user_id,
                )
            kept_ids.add(step.id)

        for step in recipe.steps.live().exclude(id__in=kept_ids):
            step.soft_delete()

    @classmethod
    @atomic_operation
    def create(cls,
               name: str,
               output_unit_id: int,
               details: List[Dict[str, Any]],
               description: str = "",
               preparation_time: int = 0,
               steps: List[Any] = None,
               created_by_id: int = None) -> Dict[str, Any]:
        cleaned = cls._validate({
            "name": name,
            "description": description,
            "output_unit_id": output_unit_id,
            "preparation_time": preparation_time,
            "details": details,
            "steps": steps,
        })

        recipe = cls.model.objects.create(created_by_id=created_by_id, **cleaned["fields"])
        cls._sync_details(recipe, cleaned["details"], created_by_id)
        if cleaned["steps"] is not None:
            cls._sync_steps(recipe, cleaned["steps"], created_by_id)

        logger.info(f"Recipe {recipe.id} '{recipe.name}' created with {len(cleaned['details'])} ingredients")
        return success_response({
            "recipe": cls.serialize(recipe)
        }, "Recipe created")

    @classmethod
    @atomic_operation
    def update(cls, recipe_id: int, updated_by_id: int = None, **data) -> Dict[str, Any]:
        recipe = cls.get_or_404(recipe_id)
        cleaned = cls._validate(data, recipe=recipe)

        for field, value in cleaned["fields"].items():
            setattr(recipe, field, value)
        recipe.save()

        cls._sync_details(recipe, cleaned["details"], updated_by_id)
        if cleaned["steps"] is not None:
            cls._sync_steps(recipe, cleaned["steps"], updated_by_id)

        recipe.refresh_from_db()
        return success_response({
            "recipe": cls.serialize(recipe)
        }, "Recipe updated")

    @classmethod
    @atomic_operation
    def delete(cls, recipe_id: int) -> Dict[str, Any]:
        recipe = cls.get_or_404(recipe_id)

        for detail in recipe.details.live():
            detail.soft_delete()
        for step in recipe.steps.live():
            step.soft_delete()
        recipe.soft_delete()

        logger.info(f"Recipe {recipe.id} deleted")
        return success_response({"id": recipe.id}, "Recipe deleted")

    @classmethod
    def preview_cost(cls, details: List[Dict[str, Any]],
                     output_unit_id: int = None) -> Dict[str, Any]:
        """Cost breakdown for unsaved ingredient lines. Nothing is written."""
        errors = FieldErrors()
        if output_unit_id is not None and not Unit.objects.live().filter(id=output_unit_id).exists():
            errors.add("output_unit_id", "Output unit does not exist")
        cleaned = cls._validate_details(details, errors)
        errors.raise_if_any("Invalid ingredients")

        lines = [
            cls.line_cost(line["material"], line["unit"], line["quantity"], line["rate"])
            for line in cleaned
        ]
        total = sum((line["cost"] for line in lines), Decimal("0"))

        return success_response({
            "details": [cls._stringify(line) for line in lines],
            "total_cost": str(total),
        })
