# Overview: Flask API routes for item categories and items; parses input and returns JSON responses.

# backend/ipms/routes/items.py
"""
Item catalog routes (ADMIN, STOREKEEPER, PROCUREMENT).

- POST/GET /api/items/categories
- POST/GET /api/items            (GET accepts ?search= and ?categoryId=)
"""

from flask import Blueprint, request, current_app

from ..extensions import db
from ..models import Item, ItemCategory
from ..roles import INVENTORY_ROLES
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    ConflictError,
)
from ..decorators import protected
from ..responses import ok, fail, internal_error, optional_int_arg


items_bp = Blueprint("items", __name__, url_prefix="/api/items")

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"name", "sku", "description", "unit", "is_trackable", "category_id"},
    required_on_create={"name", "unit", "category_id"},
    aliases={"categoryId": "category_id", "isTrackable": "is_trackable"},
)


@items_bp.post("/categories")
@protected(*INVENTORY_ROLES)
def create_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=ItemCategory, payload=payload, policy=CATEGORY_POLICY, partial=False)
        category = catalog_service.create_category(
            db.session,
            name=patch["name"],
            description=patch.get("description"),
        )
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except ConflictError as e:
        return fail(str(e), 409, "Conflict")
    except Exception:
        current_app.logger.exception("Failed to create category")
        return internal_error()

    return ok(201, category=category.to_dict())


@items_bp.get("/categories")
@protected(*INVENTORY_ROLES)
def list_categories_route():
    try:
        categories = catalog_service.list_categories(db.session)
    except Exception:
        current_app.logger.exception("Failed to list categories")
        return internal_error()

    return ok(categories=[c.to_dict() for c in categories])


@items_bp.post("")
@protected(*INVENTORY_ROLES)
def create_item_route():
    """
    Create an item.

    Request body:
    - name: str (required)
    - unit: str (required), e.g. "pcs", "kg"
    - categoryId: int (required, active category)
    - sku: str (optional, unique when given)
    - description: str (optional)
    - isTrackable: bool (optional, default false)
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Item, payload=payload, policy=ITEM_POLICY, partial=False)
        item = catalog_service.create_item(db.session, patch=patch)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except ConflictError as e:
        return fail(str(e), 409, "Conflict")
    except Exception:
        current_app.logger.exception("Failed to create item")
        return internal_error()

    return ok(201, item=item.to_dict(include_category=True))


@items_bp.get("")
@protected(*INVENTORY_ROLES)
def list_items_route():
    search = request.args.get("search")

    try:
        category_id = optional_int_arg("categoryId")
        items = catalog_service.list_items(db.session, search=search, category_id=category_id)
    except ValidationError as e:
        return fail(str(e), 400, "InvalidInput")
    except Exception:
        current_app.logger.exception("Failed to list items")
        return internal_error()

    return ok(items=[i.to_dict(include_category=True) for i in items])
