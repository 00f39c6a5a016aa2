# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

"""
Stock Ledger Invariants (authoritative)

Tables:
- StockLevel: materialized current balance, one row per (item_id, warehouse_id).
- StockMovement: append-only history. Never updated, never deleted.

Invariants:
- Every StockLevel mutation is written together with exactly one StockMovement
  recording the quantity and the acting user, in the same DB transaction.
  Either both commit or neither does.
- This module is the only writer of StockLevel and StockMovement.
- Reads always hit the database; balances are never cached in process.
- No automatic retries: a failed store operation surfaces to the caller.

Concurrency:
- The level row is written with a single INSERT ... ON CONFLICT (item_id, warehouse_id)
  DO UPDATE on PostgreSQL and SQLite. Concurrent opening-stock calls for the same key
  serialize on that row: the last commit wins on the level and every call's movement
  is recorded. A first-insert race cannot fail on the unique constraint.
- Other backends fall back to SELECT ... FOR UPDATE plus insert-or-overwrite. There a
  lost first-insert race is rolled back completely and surfaces as ConflictError.

Opening stock is a SET, not an ADD: it overwrites quantity and reorder_level.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..models import Item, StockLevel, StockMovement, Warehouse
from ..models.stock import MOVEMENT_OPENING, MOVEMENT_TYPES
from ..validation import ValidationError, ConflictError, MAX_QUANTITY, QUANTITY_SCALE
from .concurrency import lock_for_update


REFERENCE_OPENING_STOCK = "OPENING_STOCK"
OPENING_STOCK_REMARKS = "Opening stock"

# Backends whose insert() supports ON CONFLICT DO UPDATE
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _as_quantity(value, label: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{label} is required")
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{label} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{label} must be a number")
    if abs(dec) > MAX_QUANTITY:
        raise ValidationError(f"{label} is too large")
    if dec.normalize().as_tuple().exponent < -QUANTITY_SCALE:
        raise ValidationError(f"{label} has too many decimal places")
    return dec


def _ensure_active_item(session: Session, item_id: int) -> Item:
    item = session.get(Item, item_id)
    if item is None or not item.is_active:
        raise ValidationError("Invalid or inactive itemId.")
    return item


def _ensure_active_warehouse(session: Session, warehouse_id: int) -> Warehouse:
    warehouse = session.get(Warehouse, warehouse_id)
    if warehouse is None or not warehouse.is_active:
        raise ValidationError("Invalid or inactive warehouseId.")
    return warehouse


def _upsert_insert(session: Session):
    """Dialect insert() supporting ON CONFLICT, or None when the backend has none."""
    return UPSERT_INSERTS.get(session.get_bind().dialect.name)


def _upsert_level(
    session: Session,
    insert,
    *,
    item_id: int,
    warehouse_id: int,
    quantity: Decimal,
    reorder_level: Decimal,
) -> StockLevel:
    stmt = insert(StockLevel).values(
        item_id=item_id,
        warehouse_id=warehouse_id,
        quantity=quantity,
        reorder_level=reorder_level,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["item_id", "warehouse_id"],
        set_={
            "quantity": stmt.excluded.quantity,
            "reorder_level": stmt.excluded.reorder_level,
            "updated_at": func.now(),
        },
    )
    session.execute(stmt)

    # The row may already sit in the identity map with stale values
    return (
        session.query(StockLevel)
        .filter_by(item_id=item_id, warehouse_id=warehouse_id)
        .populate_existing()
        .one()
    )


def _locked_level(session: Session, item_id: int, warehouse_id: int) -> StockLevel | None:
    query = session.query(StockLevel).filter_by(item_id=item_id, warehouse_id=warehouse_id)
    return lock_for_update(query).first()


def _insert_or_overwrite_level(
    session: Session,
    *,
    item_id: int,
    warehouse_id: int,
    quantity: Decimal,
    reorder_level: Decimal,
) -> StockLevel:
    level = _locked_level(session, item_id, warehouse_id)
    if level is None:
        level = StockLevel(
            item_id=item_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            reorder_level=reorder_level,
        )
        session.add(level)
    else:
        level.quantity = quantity
        level.reorder_level = reorder_level
    session.flush()
    return level


def _append_movement(
    session: Session,
    *,
    item_id: int,
    warehouse_id: int,
    movement_type: str,
    quantity: Decimal,
    actor_user_id: int,
    reference_type: str | None = None,
    reference_id: str | None = None,
    remarks: str | None = None,
) -> StockMovement:
    """Append one movement row. Flushes, never commits."""
    if movement_type not in MOVEMENT_TYPES:
        raise ValueError(f"unknown movement type: {movement_type}")

    movement = StockMovement(
        item_id=item_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        remarks=remarks,
        created_by_id=actor_user_id,
    )
    session.add(movement)
    session.flush()
    return movement


def record_opening_stock(
    session: Session,
    *,
    item_id: int,
    warehouse_id: int,
    quantity,
    actor_user_id: int,
    reorder_level=None,
) -> tuple[StockLevel, StockMovement]:
    """
    Set the opening balance for an item in a warehouse and log an OPENING movement.

    Upsert semantics: an existing level is OVERWRITTEN (quantity and reorder_level),
    a missing one is created. reorder_level defaults to 0 when not given.

    Returns (stock_level, movement), both committed.

    Raises:
        ValidationError: item/warehouse missing or inactive, negative quantity or reorder level
        ConflictError: lost a first-insert race on a backend without ON CONFLICT
            support (nothing was written)
    """
    quantity = _as_quantity(quantity, "quantity")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative.")

    reorder_level = Decimal(0) if reorder_level is None else _as_quantity(reorder_level, "reorderLevel")
    if reorder_level < 0:
        raise ValidationError("reorderLevel cannot be negative.")

    try:
        _ensure_active_item(session, item_id)
        _ensure_active_warehouse(session, warehouse_id)

        insert = _upsert_insert(session)
        if insert is not None:
            level = _upsert_level(
                session,
                insert,
                item_id=item_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                reorder_level=reorder_level,
            )
        else:
            level = _insert_or_overwrite_level(
                session,
                item_id=item_id,
                warehouse_id=warehouse_id,
                quantity=quantity,
                reorder_level=reorder_level,
            )

        movement = _append_movement(
            session,
            item_id=item_id,
            warehouse_id=warehouse_id,
            movement_type=MOVEMENT_OPENING,
            quantity=quantity,
            actor_user_id=actor_user_id,
            reference_type=REFERENCE_OPENING_STOCK,
            reference_id=None,
            remarks=OPENING_STOCK_REMARKS,
        )

        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Stock level for this item and warehouse was created concurrently; retry.")
    except Exception:
        session.rollback()
        raise

    if has_app_context():
        current_app.logger.info(
            "Opening stock set: item=%s warehouse=%s quantity=%s by user=%s",
            item_id, warehouse_id, quantity, actor_user_id,
        )
    return level, movement


def query_stock_levels(
    session: Session,
    *,
    item_id: int | None = None,
    warehouse_id: int | None = None,
) -> list[StockLevel]:
    """
    Current balances with item and warehouse attached.

    Ordered by warehouse name, then item name (case-insensitive), then id for stability.
    Read-only.
    """
    query = (
        session.query(StockLevel)
        .join(Warehouse, StockLevel.warehouse_id == Warehouse.id)
        .join(Item, StockLevel.item_id == Item.id)
        .options(joinedload(StockLevel.item), joinedload(StockLevel.warehouse))
    )
    if item_id is not None:
        query = query.filter(StockLevel.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(StockLevel.warehouse_id == warehouse_id)

    return query.order_by(
        func.lower(Warehouse.name).asc(),
        func.lower(Item.name).asc(),
        StockLevel.id.asc(),
    ).all()


def list_movements(
    session: Session,
    *,
    item_id: int | None = None,
    warehouse_id: int | None = None,
    movement_type: str | None = None,
) -> list[StockMovement]:
    """Movement history, newest first. Read-only."""
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"movementType must be one of: {', '.join(MOVEMENT_TYPES)}")

    query = session.query(StockMovement)
    if item_id is not None:
        query = query.filter(StockMovement.item_id == item_id)
    if warehouse_id is not None:
        query = query.filter(StockMovement.warehouse_id == warehouse_id)
    if movement_type is not None:
        query = query.filter(StockMovement.movement_type == movement_type)

    return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).all()
