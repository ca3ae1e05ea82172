from __future__ import annotations

from ..extensions import db
from ..services.concurrency import new_concurrency_stamp
from ..time_utils import to_utc_z


class Address(db.Model):
    """Delivery address owned by a user. Orders reference one by id."""
    __tablename__ = "addresses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=True)
    mobile_number = db.Column(db.String(32), nullable=True)
    house_no = db.Column(db.String(64), nullable=False)
    address_line_2 = db.Column(db.String(255), nullable=True)
    street_details = db.Column(db.String(255), nullable=False)
    landmark = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=False)
    state = db.Column(db.String(128), nullable=False)
    country = db.Column(db.String(128), nullable=False)
    postal_code = db.Column(db.String(16), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "mobile_number": self.mobile_number,
            "house_no": self.house_no,
            "address_line_2": self.address_line_2,
            "street_details": self.street_details,
            "landmark": self.landmark,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postal_code": self.postal_code,
            "concurrency_stamp": self.concurrency_stamp,
            "created_at": to_utc_z(self.created_at),
        }


class CartItem(db.Model):
    """
    One line of a user's cart.

    - At most one ACTIVE row per (user, product).
    - unit_price_cents is the product's selling price captured when the
      line was added; checkout prices from it, not from the live product.
    """
    __tablename__ = "cart_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_cart_items_quantity_positive"),
        db.Index(
            "uq_cart_items_active_user_product",
            "user_id",
            "product_id",
            unique=True,
            sqlite_where=db.text("status = 'ACTIVE'"),
            postgresql_where=db.text("status = 'ACTIVE'"),
        ),
        db.Index("ix_cart_items_user_branch", "user_id", "branch_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(32), nullable=False, default="ACTIVE")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "vendor_id": self.vendor_id,
            "branch_id": self.branch_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.unit_price_cents * self.quantity,
            "status": self.status,
            "concurrency_stamp": self.concurrency_stamp,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
