from __future__ import annotations

from ..extensions import db
from ..money import to_number
from retailpos.time_utils import to_utc_z

SALE_STATUSES = ("completed", "refunded", "cancelled")


class Sale(db.Model):
    """
    One customer transaction, written once by the sale commit.

    The only status change after creation is completed -> refunded.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("status IN ('completed', 'refunded', 'cancelled')", name="ck_sales_status"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Client-facing token, generated server side
    transaction_id = db.Column(db.String(36), nullable=False, unique=True, index=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    subtotal = db.Column(db.Numeric(14, 4), nullable=False)
    tax_rate = db.Column(db.Numeric(6, 4), nullable=False)
    tax_amount = db.Column(db.Numeric(14, 4), nullable=False)
    discount_amount = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    total = db.Column(db.Numeric(14, 4), nullable=False)

    payment_method = db.Column(db.String(32), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="completed")
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    # Refund audit trail
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    user = db.relationship("User", foreign_keys=[user_id])
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} transaction_id={self.transaction_id!r} status={self.status}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "full_name": self.user.full_name if self.user else None,
            "subtotal": to_number(self.subtotal),
            "tax_rate": to_number(self.tax_rate),
            "tax_amount": to_number(self.tax_amount),
            "discount_amount": to_number(self.discount_amount),
            "total": to_number(self.total),
            "payment_method": self.payment_method,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "refunded_at": to_utc_z(self.refunded_at) if self.refunded_at else None,
            "refunded_by_user_id": self.refunded_by_user_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Line item: a snapshot of the product as it was sold."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    barcode = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    subtotal = db.Column(db.Numeric(14, 4), nullable=False)

    sale = db.relationship("Sale", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "barcode": self.barcode,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": to_number(self.unit_price),
            "subtotal": to_number(self.subtotal),
        }
