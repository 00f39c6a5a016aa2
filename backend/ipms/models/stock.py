from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


MOVEMENT_OPENING = "OPENING"
MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_TYPES = (MOVEMENT_OPENING, MOVEMENT_IN, MOVEMENT_OUT, MOVEMENT_ADJUSTMENT)


class ImmutableRecordError(RuntimeError):
    """Raised when an append-only row is about to be updated or deleted."""


def _quantity_out(value):
    return float(value) if value is not None else None


class StockLevel(db.Model):
    """
    Materialized current balance for one item in one warehouse.

    NOT historical: the movement log is the history. Only stock_service writes here,
    always together with a StockMovement in the same transaction.

    quantity is non-negative by policy (enforced in the service), not by a storage constraint.
    """
    __tablename__ = "stock_levels"
    __table_args__ = (
        db.UniqueConstraint("item_id", "warehouse_id", name="uq_stock_levels_item_warehouse"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(18, 3), nullable=False, default=0)
    reorder_level = db.Column(db.Numeric(18, 3), nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    item = db.relationship("Item", backref=db.backref("stock_levels", lazy=True))
    warehouse = db.relationship("Warehouse", backref=db.backref("stock_levels", lazy=True))

    def __repr__(self) -> str:
        return f"<StockLevel item_id={self.item_id} warehouse_id={self.warehouse_id} quantity={self.quantity}>"

    def to_dict(self, include_relations: bool = False) -> dict:
        data = {
            "id": self.id,
            "itemId": self.item_id,
            "warehouseId": self.warehouse_id,
            "quantity": _quantity_out(self.quantity),
            "reorderLevel": _quantity_out(self.reorder_level),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_relations:
            data["item"] = self.item.to_dict() if self.item else None
            data["warehouse"] = self.warehouse.to_dict() if self.warehouse else None
        return data


class StockMovement(db.Model):
    """
    Append-only audit record of a single quantity change event.

    IMMUTABLE: rows are never updated or deleted. The ORM listeners below refuse
    both at flush time.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint(
            "movement_type IN ('OPENING', 'IN', 'OUT', 'ADJUSTMENT')",
            name="ck_stock_movements_type",
        ),
        db.Index("ix_stock_movements_item_warehouse", "item_id", "warehouse_id"),
        db.Index("ix_stock_movements_type", "movement_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    movement_type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Numeric(18, 3), nullable=False)

    reference_type = db.Column(db.String(64), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    remarks = db.Column(db.String(255), nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    item = db.relationship("Item")
    warehouse = db.relationship("Warehouse")
    created_by = db.relationship("User")

    def __repr__(self) -> str:
        return f"<StockMovement id={self.id} {self.movement_type} {self.quantity} item_id={self.item_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "warehouseId": self.warehouse_id,
            "movementType": self.movement_type,
            "quantity": _quantity_out(self.quantity),
            "referenceType": self.reference_type,
            "referenceId": self.reference_id,
            "remarks": self.remarks,
            "createdById": self.created_by_id,
            "createdAt": to_utc_z(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _refuse_movement_update(mapper, connection, target):
    raise ImmutableRecordError(f"StockMovement {target.id} is append-only and cannot be modified")


@event.listens_for(StockMovement, "before_delete")
def _refuse_movement_delete(mapper, connection, target):
    raise ImmutableRecordError(f"StockMovement {target.id} is append-only and cannot be deleted")
