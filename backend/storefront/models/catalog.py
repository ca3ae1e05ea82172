from __future__ import annotations

from ..constants import stock_status_for
from ..extensions import db
from ..services.concurrency import new_concurrency_stamp
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product, stocked per branch.

    STOCK:
    - quantity is the source of truth for on-hand stock (never negative).
    - stock_status is derived from quantity; call refresh_stock_status()
      after every quantity write.
    - Every quantity write is mirrored by an InventoryMovement row, but the
      movement table is never read back to compute stock.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_branch_status", "branch_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # MRP and the price actually charged, in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    stock_status = db.Column(db.String(32), nullable=False, default="OUT_OF_STOCK")
    status = db.Column(db.String(32), nullable=False, default="ACTIVE", index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    variants = db.relationship("ProductVariant", back_populates="product", lazy=True)

    def refresh_stock_status(self) -> None:
        self.stock_status = stock_status_for(self.quantity)

    def __repr__(self) -> str:
        return f"<Product id={self.id} title={self.title!r} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "branch_id": self.branch_id,
            "title": self.title,
            "description": self.description,
            "price_cents": self.price_cents,
            "selling_price_cents": self.selling_price_cents,
            "quantity": self.quantity,
            "stock_status": self.stock_status,
            "status": self.status,
            "concurrency_stamp": self.concurrency_stamp,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductVariant(db.Model):
    """Size/pack variant of a product with its own price and stock."""
    __tablename__ = "product_variants"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_product_variants_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Unique among ACTIVE variants of the same product (enforced in catalog_service)
    variant_name = db.Column(db.String(255), nullable=False)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    stock_status = db.Column(db.String(32), nullable=False, default="OUT_OF_STOCK")
    status = db.Column(db.String(32), nullable=False, default="ACTIVE")

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    product = db.relationship("Product", back_populates="variants")

    def refresh_stock_status(self) -> None:
        self.stock_status = stock_status_for(self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variant_name": self.variant_name,
            "price_cents": self.price_cents,
            "selling_price_cents": self.selling_price_cents,
            "quantity": self.quantity,
            "stock_status": self.stock_status,
            "status": self.status,
            "concurrency_stamp": self.concurrency_stamp,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
