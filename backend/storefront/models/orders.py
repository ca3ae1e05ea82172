from __future__ import annotations

from ..extensions import db
from ..services.concurrency import new_concurrency_stamp
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order placed against one branch.

    MONEY (all cents):
    - subtotal_cents: sum of cached cart prices * quantities
    - discount_cents: offer or promocode discount (at most one)
    - shipping_cents: delivery charge
    - total_cents = subtotal_cents - discount_cents + shipping_cents

    Items, discount and the first status-history row are written in the same
    transaction as the order itself.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_branch_status", "branch_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False, unique=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=False, index=True)
    address_id = db.Column(db.Integer, db.ForeignKey("addresses.id"), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    shipping_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(32), nullable=False, default="PENDING", index=True)
    payment_status = db.Column(db.String(32), nullable=False, default="UNPAID")
    order_priority = db.Column(db.String(16), nullable=False, default="NORMAL")
    estimated_delivery_minutes = db.Column(db.Integer, nullable=True)

    rider_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    items = db.relationship("OrderItem", back_populates="order", lazy=True, order_by="OrderItem.id")
    discount = db.relationship("OrderDiscount", back_populates="order", uselist=False, lazy=True)
    history = db.relationship(
        "OrderStatusHistory", back_populates="order", lazy=True, order_by="OrderStatusHistory.id"
    )
    address = db.relationship("Address")

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.order_number!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "user_id": self.user_id,
            "vendor_id": self.vendor_id,
            "branch_id": self.branch_id,
            "address_id": self.address_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "shipping_cents": self.shipping_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_status": self.payment_status,
            "order_priority": self.order_priority,
            "estimated_delivery_minutes": self.estimated_delivery_minutes,
            "rider_id": self.rider_id,
            "concurrency_stamp": self.concurrency_stamp,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderItem(db.Model):
    """Immutable order line with the unit price frozen at purchase."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    price_at_purchase_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total_cents(self) -> int:
        return self.price_at_purchase_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "price_at_purchase_cents": self.price_at_purchase_cents,
            "line_total_cents": self.line_total_cents,
        }


class OrderDiscount(db.Model):
    """The single discount applied to an order (offer or promocode)."""
    __tablename__ = "order_discounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, unique=True)

    discount_type = db.Column(db.String(16), nullable=False)  # OFFER, PROMOCODE
    offer_id = db.Column(db.Integer, db.ForeignKey("offers.id"), nullable=True)
    promocode_id = db.Column(db.Integer, db.ForeignKey("promocodes.id"), nullable=True)

    discount_percentage = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False)
    original_cents = db.Column(db.Integer, nullable=False)
    final_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="discount")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "discount_type": self.discount_type,
            "offer_id": self.offer_id,
            "promocode_id": self.promocode_id,
            "discount_percentage": self.discount_percentage,
            "discount_cents": self.discount_cents,
            "original_cents": self.original_cents,
            "final_cents": self.final_cents,
        }


class OrderStatusHistory(db.Model):
    """Append-only record of order status changes."""
    __tablename__ = "order_status_history"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False)
    previous_status = db.Column(db.String(32), nullable=True)
    changed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", back_populates="history")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "status": self.status,
            "previous_status": self.previous_status,
            "changed_by": self.changed_by,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
