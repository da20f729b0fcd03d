from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("cash", "online", "card", "upi", "cheque")
PAYMENT_STATUSES = ("pending", "completed", "failed")
SALE_STATUSES = ("active", "cancelled", "refunded")


class Sale(db.Model):
    """
    Single-line sale of one inventory item.

    LIFECYCLE: active -> cancelled (inventory restored) or active -> refunded
    (bookkeeping only). Both targets are terminal.

    DERIVED: total_amount_cents == quantity_sold * unit_price_cents after every save.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_company_sale_date", "company_id", "sale_date"),
        db.Index("ix_sales_company_customer", "company_id", "customer_name"),
        db.Index("ix_sales_company_payment_method", "company_id", "payment_method"),
        db.Index("ix_sales_company_status", "company_id", "status"),
        db.CheckConstraint("quantity_sold >= 1", name="ck_sales_quantity_sold_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sales_unit_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(32), nullable=True)

    quantity_sold = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default="completed")
    # For online payments
    transaction_id = db.Column(db.String(128), nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    notes = db.Column(db.String(1000), nullable=True)
    # Employee name who made the sale
    sold_by = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    inventory_item = db.relationship("InventoryItem", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} inventory_id={self.inventory_id} qty={self.quantity_sold} status={self.status}>"

    def to_dict(self, *, inventory_fields: tuple[str, ...] | None = None) -> dict:
        data = {
            "id": self.id,
            "company_id": self.company_id,
            "inventory_id": self.inventory_id,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "quantity_sold": self.quantity_sold,
            "unit_price_cents": self.unit_price_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "transaction_id": self.transaction_id,
            "sale_date": to_utc_z(self.sale_date),
            "notes": self.notes,
            "sold_by": self.sold_by,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if inventory_fields is not None:
            item = self.inventory_item
            data["inventory"] = item.to_summary(*inventory_fields) if item is not None else None
        return data
