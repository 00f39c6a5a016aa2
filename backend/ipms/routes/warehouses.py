# Overview: Flask API routes for warehouses and stock; parses input and returns JSON responses.

# backend/ipms/routes/warehouses.py
"""
Warehouse and stock routes (ADMIN, STOREKEEPER, PROCUREMENT).

- POST/GET /api/warehouses
- POST     /api/warehouses/opening-stock
- GET      /api/warehouses/stock       (?itemId=, ?warehouseId=)
- GET      /api/warehouses/movements   (?itemId=, ?warehouseId=, ?movementType=)

All stock writes go through stock_service; this module never touches StockLevel
or StockMovement directly.
"""

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..models import StockLevel, Warehouse
from ..roles import INVENTORY_ROLES
from ..services import catalog_service, stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_opening_stock,
    ValidationError,
    ConflictError,
)
from ..decorators import protected
from ..responses import ok, fail, internal_error, optional_int_arg


warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "code", "location", "description"},
    required_on_create={"name", "code"},
)

OPENING_STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "warehouse_id", "quantity", "reorder_level"},
    required_on_create={"item_id", "warehouse_id", "quantity"},
    aliases={
        "itemId": "item_id",
        "warehouseId": "warehouse_id",
        "reorderLevel": "reorder_level",
    },
)


@warehouses_bp.post("")
@protected(*INVENTORY_ROLES)
def create_warehouse_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
        warehouse = catalog_service.create_warehouse(db.session, patch=patch)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except ConflictError as e:
        return fail(str(e), 409, "Conflict")
    except Exception:
        current_app.logger.exception("Failed to create warehouse")
        return internal_error()

    return ok(201, warehouse=warehouse.to_dict())


@warehouses_bp.get("")
@protected(*INVENTORY_ROLES)
def list_warehouses_route():
    try:
        warehouses = catalog_service.list_warehouses(db.session)
    except Exception:
        current_app.logger.exception("Failed to list warehouses")
        return internal_error()

    return ok(warehouses=[w.to_dict() for w in warehouses])


@warehouses_bp.post("/opening-stock")
@protected(*INVENTORY_ROLES)
def opening_stock_route():
    """
    Set the opening balance of an item in a warehouse.

    Request body:
    - itemId: int (required)
    - warehouseId: int (required)
    - quantity: number >= 0 (required)
    - reorderLevel: number >= 0 (optional, default 0)

    Overwrites an existing balance. Every call appends an OPENING movement
    attributed to the caller.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockLevel, payload=payload, policy=OPENING_STOCK_POLICY, partial=False)
        enforce_rules_opening_stock(patch)

        level, movement = stock_service.record_opening_stock(
            db.session,
            item_id=patch["item_id"],
            warehouse_id=patch["warehouse_id"],
            quantity=patch["quantity"],
            reorder_level=patch.get("reorder_level"),
            actor_user_id=g.identity.user_id,
        )
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except ConflictError as e:
        return fail(str(e), 409, "Conflict")
    except Exception:
        current_app.logger.exception("Failed to record opening stock")
        return internal_error()

    return ok(stockLevel=level.to_dict(include_relations=True), movement=movement.to_dict())


@warehouses_bp.get("/stock")
@protected(*INVENTORY_ROLES)
def stock_levels_route():
    try:
        item_id = optional_int_arg("itemId")
        warehouse_id = optional_int_arg("warehouseId")
        levels = stock_service.query_stock_levels(db.session, item_id=item_id, warehouse_id=warehouse_id)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except Exception:
        current_app.logger.exception("Failed to query stock levels")
        return internal_error()

    return ok(stock=[lvl.to_dict(include_relations=True) for lvl in levels])


@warehouses_bp.get("/movements")
@protected(*INVENTORY_ROLES)
def movements_route():
    movement_type = request.args.get("movementType") or None

    try:
        item_id = optional_int_arg("itemId")
        warehouse_id = optional_int_arg("warehouseId")
        movements = stock_service.list_movements(
            db.session,
            item_id=item_id,
            warehouse_id=warehouse_id,
            movement_type=movement_type,
        )
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return internal_error()

    return ok(movements=[m.to_dict() for m in movements])
