from rest_framework import status as http
from rest_framework.response import Response
from rest_framework.views import APIView

from inventory.services import (
    ServiceError, ValidationError, NotFoundError, ConflictError,
    BusinessRuleError, StorageError,
    UnitService, ConversionResolver, MaterialService, WarehouseService,
    RecipeService, ReceivingNoteService, InventoryService,
)
from inventory.services.base_service import parse_int
from inventory.services.warehouse_service import FIELDS as WAREHOUSE_FIELDS

MATERIAL_FIELDS = ("name", "base_unit_id", "description", "min_stock_level", "price")


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return Response(data, status=status)


def handle_service_error(e: ServiceError):
    if isinstance(e, ValidationError):
        return error_response(e.message, "validation_error", http.HTTP_400_BAD_REQUEST, {"errors": e.errors})
    elif isinstance(e, NotFoundError):
        return error_response(e.message, "not_found", http.HTTP_404_NOT_FOUND, e.details)
    elif isinstance(e, ConflictError):
        return error_response(e.message, "conflict", http.HTTP_409_CONFLICT, e.details)
    elif isinstance(e, BusinessRuleError):
        return error_response(e.message, "business_rule", http.HTTP_400_BAD_REQUEST, e.details)
    elif isinstance(e, StorageError):
        return error_response(e.message, "storage_error", http.HTTP_503_SERVICE_UNAVAILABLE)
    return error_response(e.message, e.code.lower(), http.HTTP_500_INTERNAL_SERVER_ERROR, e.details)


class BaseInventoryView(APIView):

    def get_body(self, request) -> dict:
        data = request.data
        return data if isinstance(data, dict) else {}

    def pick(self, request, fields) -> dict:
        data = self.get_body(request)
        return {k: data[k] for k in fields if k in data}

    def get_user_id(self, request):
        if request.user and request.user.is_authenticated:
            return request.user.id
        return None

    def get_page(self, request):
        return {
            "page": parse_int(request.query_params.get("page")) or 1,
            "per_page": parse_int(request.query_params.get("per_page")),
        }

    def get_flag(self, request, name: str) -> bool:
        return request.query_params.get(name, "false").lower() in ("1", "true", "yes")

    def success(self, data: dict, status: int = 200):
        return Response(data, status=status)


# ==================== UNITS ====================

class UnitListView(BaseInventoryView):

    def get(self, request):
        try:
            result = UnitService.list(
                include_conversions=self.get_flag(request, "include_conversions")
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_body(request)
            result = UnitService.create(
                name=data.get("name"),
                description=data.get("description", ""),
                conversions=data.get("conversions"),
                created_by_id=self.get_user_id(request),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class UnitLookupView(BaseInventoryView):

    def get(self, request):
        return self.success(UnitService.lookup())


class UnitConvertView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_body(request)
            result = ConversionResolver.convert(
                data.get("quantity"),
                parse_int(data.get("from_unit_id")),
                parse_int(data.get("to_unit_id")),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)


class UnitDetailView(BaseInventoryView):

    def get(self, request, unit_id):
        try:
            return self.success(UnitService.get(unit_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, unit_id):
        try:
            data = self.get_body(request)
            result = UnitService.update(
                unit_id,
                name=data.get("name"),
                description=data.get("description", ""),
                conversions=data.get("conversions"),
                updated_by_id=self.get_user_id(request),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, unit_id):
        try:
            return self.success(UnitService.delete(unit_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== MATERIALS ====================

class MaterialListView(BaseInventoryView):

    def get(self, request):
        try:
            result = MaterialService.list(
                search=request.query_params.get("search"),
                unit_id=parse_int(request.query_params.get("unit_id")),
                **self.get_page(request),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_body(request)
            result = MaterialService.create(
                name=data.get("name"),
                base_unit_id=data.get("base_unit_id"),
                description=data.get("description", ""),
                min_stock_level=data.get("min_stock_level", 0),
                price=data.get("price", 0),
                created_by_id=self.get_user_id(request),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class MaterialDetailView(BaseInventoryView):

    def get(self, request, material_id):
        try:
            return self.success(MaterialService.get(material_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, material_id):
        try:
            result = MaterialService.update(material_id, **self.pick(request, MATERIAL_FIELDS))
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, material_id):
        try:
            return self.success(MaterialService.delete(material_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== WAREHOUSES ====================

class WarehouseListView(BaseInventoryView):

    def get(self, request):
        try:
            return self.success(WarehouseService.list(search=request.query_params.get("search")))
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            result = WarehouseService.create(
                created_by_id=self.get_user_id(request), **self.pick(request, WAREHOUSE_FIELDS)
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class WarehouseDetailView(BaseInventoryView):

    def get(self, request, warehouse_id):
        try:
            return self.success(WarehouseService.get(warehouse_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, warehouse_id):
        try:
            return self.success(WarehouseService.update(warehouse_id, **self.pick(request, WAREHOUSE_FIELDS)))
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, warehouse_id):
        try:
            return self.success(WarehouseService.delete(warehouse_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== RECIPES ====================

RECIPE_FIELDS = ("name", "description", "output_unit_id", "preparation_time", "details", "steps")


class RecipeListView(BaseInventoryView):

    def get(self, request):
        try:
            result = RecipeService.list(
                search=request.query_params.get("search"),
                output_unit_id=parse_int(request.query_params.get("output_unit_id")),
                **self.get_page(request),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_body(request)
            result = RecipeService.create(
                name=data.get("name"),
                output_unit_id=data.get("output_unit_id"),
                details=data.get("details"),
                description=data.get("description", ""),
                preparation_time=data.get("preparation_time", 0),
                steps=data.get("steps"),
                created_by_id=self.get_user_id(request),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class RecipeCostPreviewView(BaseInventoryView):

    def post(self, request):
        try:
            data = self.get_body(request)
            return self.success(RecipeService.preview_cost(
                data.get("details"),
                output_unit_id=parse_int(data.get("output_unit_id")),
            ))
        except ServiceError as e:
            return handle_service_error(e)


class RecipeDetailView(BaseInventoryView):

    def get(self, request, recipe_id):
        try:
            return self.success(RecipeService.get(recipe_id))
        except ServiceError as e:
            return handle_service_error(e)

    def put(self, request, recipe_id):
        try:
            result = RecipeService.update(
                recipe_id,
                updated_by_id=self.get_user_id(request),
                **self.pick(request, RECIPE_FIELDS),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def delete(self, request, recipe_id):
        try:
            return self.success(RecipeService.delete(recipe_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== RECEIVING ====================

class ReceivingListView(BaseInventoryView):

    def get(self, request):
        try:
            result = ReceivingNoteService.list(
                search=request.query_params.get("search"),
                status=request.query_params.get("status"),
                warehouse_id=parse_int(request.query_params.get("warehouse_id")),
                **self.get_page(request),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_body(request)
            result = ReceivingNoteService.create(
                receiving_date=data.get("receiving_date"),
                details=data.get("details"),
                note_number=data.get("note_number"),
                supplier_code=data.get("supplier_code", ""),
                supplier_name=data.get("supplier_name", ""),
                warehouse_id=parse_int(data.get("warehouse_id")),
                status=data.get("status") or "DRAFT",
                notes=data.get("notes", ""),
                created_by_id=self.get_user_id(request),
            )
            return self.success(result, 201)
        except ServiceError as e:
            return handle_service_error(e)


class ReceivingDetailView(BaseInventoryView):

    def get(self, request, note_id):
        try:
            return self.success(ReceivingNoteService.get(note_id))
        except ServiceError as e:
            return handle_service_error(e)


class ReceivingActionView(BaseInventoryView):
    handlers = {
        "complete": ReceivingNoteService.complete,
        "cancel": ReceivingNoteService.cancel,
    }

    def post(self, request, note_id, action):
        handler = self.handlers.get(action)
        if handler is None:
            return error_response(f"Unknown action: {action}", "not_found", http.HTTP_404_NOT_FOUND)
        try:
            return self.success(handler(note_id))
        except ServiceError as e:
            return handle_service_error(e)


# ==================== INVENTORY ====================

class InventoryListView(BaseInventoryView):

    def get(self, request):
        try:
            result = InventoryService.list(
                material_id=parse_int(request.query_params.get("material_id")),
                warehouse_id=parse_int(request.query_params.get("warehouse_id")),
                below_minimum=self.get_flag(request, "below_minimum"),
                search=request.query_params.get("search"),
                **self.get_page(request),
            )
            return self.success(result)
        except ServiceError as e:
            return handle_service_error(e)


class InventoryDetailView(BaseInventoryView):

    def get(self, request, inventory_id):
        try:
            return self.success(InventoryService.get(inventory_id))
        except ServiceError as e:
            return handle_service_error(e)
