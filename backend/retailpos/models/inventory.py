from __future__ import annotations

from ..extensions import db
from ..money import to_number
from retailpos.time_utils import to_utc_z

TRANSACTION_TYPES = ("sale", "restock", "adjustment", "return")


class Product(db.Model):
    """
    Catalog entry with its current stock level.

    stock_quantity is a cached running balance. It is only changed by the
    sale, refund, restock and adjustment services, each of which appends an
    InventoryTransaction in the same DB transaction, so the balance can
    always be reconciled against the ledger.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_active_name", "is_active", "name"),
        db.Index("ix_products_category", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    barcode = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    cost = db.Column(db.Numeric(12, 2), nullable=True)
    category = db.Column(db.String(120), nullable=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    image_url = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} barcode={self.barcode!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "barcode": self.barcode,
            "name": self.name,
            "description": self.description,
            "price": to_number(self.price),
            "cost": to_number(self.cost),
            "category": self.category,
            "stock_quantity": self.stock_quantity,
            "min_stock_level": self.min_stock_level,
            "image_url": self.image_url,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryTransaction(db.Model):
    """
    Append-only stock ledger. Rows are never updated or deleted.

    quantity_change is signed: negative for sales, positive for restocks
    and returns, either sign for adjustments.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.CheckConstraint(
            "transaction_type IN ('sale', 'restock', 'adjustment', 'return')",
            name="ck_invtx_type",
        ),
        db.CheckConstraint("quantity_after = quantity_before + quantity_change", name="ck_invtx_balance"),
        db.Index("ix_invtx_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)

    quantity_change = db.Column(db.Integer, nullable=False)
    quantity_before = db.Column(db.Integer, nullable=False)
    quantity_after = db.Column(db.Integer, nullable=False)

    # Sale id for 'sale' and 'return' rows
    reference_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product")
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "barcode": self.product.barcode if self.product else None,
            "transaction_type": self.transaction_type,
            "quantity_change": self.quantity_change,
            "quantity_before": self.quantity_before,
            "quantity_after": self.quantity_after,
            "reference_id": self.reference_id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
