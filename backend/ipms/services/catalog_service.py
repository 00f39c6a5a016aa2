# Overview: Service-layer operations for catalog reference data (categories, items, warehouses).

"""
Catalog Service

Uniqueness (category name, warehouse code, item SKU) is checked explicitly before
insert so the API can answer 409 instead of a generic failure. The database unique
constraints remain as a backstop; an IntegrityError that races past the pre-check is
mapped to the same ConflictError.

Listings return active rows only.
"""

from __future__ import annotations

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..models import ItemCategory, Item, Warehouse
from ..validation import ValidationError, ConflictError


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _commit_or_conflict(session: Session, message: str) -> None:
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(message)


# =============================================================================
# CATEGORIES
# =============================================================================

def create_category(session: Session, *, name: str, description: str | None = None) -> ItemCategory:
    if not name:
        raise ValidationError("Category name is required.")

    conflict = "A category with this name already exists."
    if session.query(ItemCategory.id).filter(ItemCategory.name == name).first():
        raise ConflictError(conflict)

    category = ItemCategory(name=name, description=description or None, is_active=True)
    session.add(category)
    _commit_or_conflict(session, conflict)
    return category


def list_categories(session: Session) -> list[ItemCategory]:
    return (
        session.query(ItemCategory)
        .filter(ItemCategory.is_active.is_(True))
        .order_by(ItemCategory.name.asc())
        .all()
    )


# =============================================================================
# ITEMS
# =============================================================================

def create_item(session: Session, *, patch: dict) -> Item:
    """
    Create an item from a validated patch dict.

    Raises:
        ValidationError: category missing or inactive
        ConflictError: SKU already used
    """
    category_id = patch.get("category_id")
    category = session.get(ItemCategory, category_id) if category_id is not None else None
    if category is None or not category.is_active:
        raise ValidationError("Invalid or inactive categoryId.")

    sku = patch.get("sku") or None
    conflict = "An item with this SKU already exists."
    if sku is not None and session.query(Item.id).filter(Item.sku == sku).first():
        raise ConflictError(conflict)

    item = Item(
        name=patch["name"],
        sku=sku,
        description=patch.get("description"),
        unit=patch["unit"],
        is_trackable=bool(patch.get("is_trackable", False)),
        is_active=True,
        category_id=category.id,
    )
    session.add(item)
    _commit_or_conflict(session, conflict)
    return item


def list_items(
    session: Session,
    *,
    search: str | None = None,
    category_id: int | None = None,
) -> list[Item]:
    """Active items, optional case-insensitive substring search over name and SKU."""
    query = (
        session.query(Item)
        .options(joinedload(Item.category))
        .filter(Item.is_active.is_(True))
    )

    if search:
        pattern = _like_pattern(search.strip().lower())
        query = query.filter(
            or_(
                func.lower(Item.name).like(pattern, escape="\\"),
                func.lower(func.coalesce(Item.sku, "")).like(pattern, escape="\\"),
            )
        )

    if category_id is not None:
        query = query.filter(Item.category_id == category_id)

    return query.order_by(Item.name.asc(), Item.id.asc()).all()


# =============================================================================
# WAREHOUSES
# =============================================================================

def create_warehouse(session: Session, *, patch: dict) -> Warehouse:
    code = patch.get("code")
    if not patch.get("name") or not code:
        raise ValidationError("name and code are required")

    conflict = "A warehouse with this code already exists."
    if session.query(Warehouse.id).filter(Warehouse.code == code).first():
        raise ConflictError(conflict)

    warehouse = Warehouse(
        name=patch["name"],
        code=code,
        location=patch.get("location"),
        description=patch.get("description"),
        is_active=True,
    )
    session.add(warehouse)
    _commit_or_conflict(session, conflict)
    return warehouse


def list_warehouses(session: Session) -> list[Warehouse]:
    return (
        session.query(Warehouse)
        .filter(Warehouse.is_active.is_(True))
        .order_by(Warehouse.name.asc())
        .all()
    )
