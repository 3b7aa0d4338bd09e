from .base_service import (
    ServiceError, ValidationError, NotFoundError, ConflictError,
    BusinessRuleError, StorageError, FieldErrors,
    success_response,
)
from .unit_service import UnitService, ConversionResolver
from .material_service import MaterialService
from .warehouse_service import WarehouseService
from .recipe_service import RecipeService
from .inventory_service import InventoryService, InventoryLedger
from .receiving_service import ReceivingNoteService

__all__ = [
    "ServiceError", "ValidationError", "NotFoundError", "ConflictError",
    "BusinessRuleError", "StorageError", "FieldErrors",
    "success_response",
    "UnitService", "ConversionResolver",
    "MaterialService",
    "WarehouseService",
    "RecipeService",
    "InventoryService", "InventoryLedger",
    "ReceivingNoteService",
]
