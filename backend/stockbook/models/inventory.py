from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

STOCK_STATUSES = ("in_stock", "low_stock", "out_of_stock")
ADJUSTMENT_TYPES = ("add", "subtract")


class InventoryItem(db.Model):
    """
    Stock-keeping unit owned by one company.

    STATUS: `status` is never written from client input. It is rederived by
    services.stock_levels.derive_stock_status every time `quantity` changes.

    CONCURRENCY: version_id_col turns two interleaved read-modify-write cycles
    on the same row into a StaleDataError on the loser's flush.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        # SKU is unique across the whole system, not per company
        db.UniqueConstraint("sku", name="uq_inventory_items_sku"),
        db.Index("ix_inventory_items_company_sku", "company_id", "sku"),
        db.Index("ix_inventory_items_company_created", "company_id", "created_at"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_inventory_items_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    price_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(128), nullable=True, index=True)
    supplier = db.Column(db.String(255), nullable=True)
    image = db.Column(db.String(512), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="out_of_stock", index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    company = db.relationship("Company", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<InventoryItem id={self.id} sku={self.sku!r} quantity={self.quantity} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "category": self.category,
            "supplier": self.supplier,
            "image": self.image,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_summary(self, *extra: str) -> dict:
        """Compact projection embedded in sale payloads."""
        summary = {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "price_cents": self.price_cents,
            "image": self.image,
        }
        for field in extra:
            summary[field] = getattr(self, field)
        return summary


class StockAdjustment(db.Model):
    """
    Ledger entry for one add/subtract adjustment.

    Append-only: rows are inserted by inventory_service and never updated.
    `quantity` is what was requested, even when the resulting on-hand
    quantity was clamped at zero.
    """
    __tablename__ = "stock_adjustments"
    __table_args__ = (
        db.Index("ix_stock_adjustments_company_inventory", "company_id", "inventory_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_stock_adjustments_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    # Unit price at the time of the adjustment
    price_cents = db.Column(db.Integer, nullable=False)
    supplier = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    # On-hand quantity before and after, for audit
    quantity_before = db.Column(db.Integer, nullable=True)
    quantity_after = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    inventory_item = db.relationship("InventoryItem")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "inventory_id": self.inventory_id,
            "type": self.type,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "supplier": self.supplier,
            "notes": self.notes,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockAdjustment, "before_update")
def _reject_ledger_update(mapper, connection, target):
    raise ValueError("stock adjustments are append-only")
