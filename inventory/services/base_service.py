import logging
from functools import wraps
from typing import Dict, Any, Optional, List, Tuple
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import timezone as dt_timezone
from django.conf import settings
from django.db import transaction, DatabaseError
from django.db.models import Model
from django.utils import timezone

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    def __init__(self, message: str, code: str = "ERROR", details: Dict = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class ValidationError(ServiceError):
    def __init__(self, message: str, field: str = None,
                 errors: Dict[str, List[str]] = None):
        if errors is None:
            errors = {field: [message]} if field else {}
        super().__init__(message, "VALIDATION_ERROR", {"errors": errors})
        self.field = field
        self.errors = errors


class NotFoundError(ServiceError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            "NOT_FOUND",
            {"resource": resource, "identifier": str(identifier)}
        )


class ConflictError(ServiceError):
    def __init__(self, message: str, details: Dict = None):
        super().__init__(message, "CONFLICT", details)


class BusinessRuleError(ServiceError):
    def __init__(self, message: str, rule: str = None):
        super().__init__(message, "BUSINESS_RULE_VIOLATION", {"rule": rule})


class StorageError(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, "STORAGE_ERROR")


class FieldErrors:
    """Collects (field path, message) pairs before raising one ValidationError."""

    def __init__(self):
        self.errors: Dict[str, List[str]] = {}

    def add(self, field: str, message: str):
        self.errors.setdefault(field, []).append(message)

    def __bool__(self):
        return bool(self.errors)

    def __contains__(self, field: str):
        return field in self.errors

    def raise_if_any(self, message: str = "Validation failed"):
        if self.errors:
            raise ValidationError(message, errors=self.errors)


def atomic_operation(func):
    """
    Run the wrapped service call in one transaction. Database failures
    surface as StorageError once the transaction has rolled back.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as e:
            logger.exception(f"Storage failure in {func.__qualname__}")
            raise StorageError(f"Storage failure: {e}") from e

    return wrapper


def success_response(data: Any = None, message: str = "Success") -> Dict:
    response = {"success": True, "message": message}
    if data is not None:
        if isinstance(data, dict):
            response.update(data)
        else:
            response["data"] = data
    return response


def paginate_queryset(queryset, page: int = 1, per_page: int = None) -> Tuple[List, Dict]:
    if per_page is None:
        per_page = getattr(settings, "INVENTORY_PAGE_SIZE", 20)
    page = max(1, page)
    per_page = min(max(1, per_page), 100)

    total = queryset.count()
    total_pages = (total + per_page - 1) // per_page

    offset = (page - 1) * per_page
    items = list(queryset[offset:offset + per_page])

    return items, {
        "page": page,
        "per_page": per_page,
        "total_items": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1
    }


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Decimal from user input, or None when missing or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


AMOUNT_DIGITS = 18
QUANTITY_PLACES = 4
PRICE_PLACES = 2


def within_column(amount: Decimal, places: int) -> bool:
    """True when the integer part of amount fits a DecimalField(AMOUNT_DIGITS, places)."""
    return amount == 0 or amount.adjusted() < AMOUNT_DIGITS - places


def clean_amount(errors: FieldErrors, field: str, value: Any, places: int,
                 label: str, positive: bool = False) -> Optional[Decimal]:
    """
    Parse a user supplied amount for a column with the given decimal places.
    Adds a field error and returns None when it is missing, negative (or zero
    when positive is set), more precise than the column, or too large for it.
    """
    amount = parse_decimal(value)
    if amount is None or amount < 0 or (positive and amount == 0):
        bound = "greater than 0" if positive else "0 or greater"
        errors.add(field, f"{label} must be {bound}")
        return None
    if amount.normalize().as_tuple().exponent < -places:
        errors.add(field, f"{label} allows at most {places} decimal places")
        return None
    if not within_column(amount, places):
        errors.add(field, f"{label} is too large")
        return None
    return amount


def parse_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def round_decimal(value: Decimal, places: int = 4) -> Decimal:
    if value is None:
        return Decimal("0")
    quantize_str = "0." + "0" * places
    return value.quantize(Decimal(quantize_str), rounding=ROUND_HALF_UP)


def generate_note_number(prefix: str = None) -> str:
    prefix = prefix or getattr(settings, "RECEIVING_NOTE_PREFIX", "RN")
    stamp = timezone.now().astimezone(dt_timezone.utc)
    return f"{prefix}-{stamp:%Y%m%d%H%M%S%f}"


class BaseService:
    model = None
    resource_name = None

    @classmethod
    def get_resource_name(cls) -> str:
        return cls.resource_name or cls.model.__name__

    @classmethod
    def get_by_id(cls, id: int) -> Optional[Model]:
        try:
            return cls.model.objects.live().get(id=id)
        except (cls.model.DoesNotExist, ValueError, TypeError):
            return None

    @classmethod
    def get_or_404(cls, id: int) -> Model:
        obj = cls.get_by_id(id)
        if not obj:
            raise NotFoundError(cls.get_resource_name(), id)
        return obj

    @classmethod
    def get_active(cls):
        return cls.model.objects.live()
