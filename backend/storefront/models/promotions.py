from __future__ import annotations

from ..extensions import db
from ..services.concurrency import new_concurrency_stamp
from ..time_utils import to_utc_z


class Offer(db.Model):
    """
    Platform offer redeemed by code at checkout.

    Status lifecycle: OPEN (created) -> ACTIVE (inside validity window)
    -> INACTIVE (window passed). Only ACTIVE offers are redeemable, and the
    window is re-checked at redemption time.
    """
    __tablename__ = "offers"
    __table_args__ = (
        db.CheckConstraint("percentage BETWEEN 0 AND 100", name="ck_offers_percentage_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    percentage = db.Column(db.Integer, nullable=False)
    min_order_cents = db.Column(db.Integer, nullable=False, default=0)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(32), nullable=False, default="OPEN", index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "percentage": self.percentage,
            "min_order_cents": self.min_order_cents,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "status": self.status,
            "concurrency_stamp": self.concurrency_stamp,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Promocode(db.Model):
    """
    Vendor promocode, selected by id at checkout.

    branch_id=NULL means usable at every branch; otherwise only at that branch.
    """
    __tablename__ = "promocodes"
    __table_args__ = (
        db.CheckConstraint("percentage BETWEEN 0 AND 100", name="ck_promocodes_percentage_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    percentage = db.Column(db.Integer, nullable=False)

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey("branches.id"), nullable=True, index=True)

    status = db.Column(db.String(32), nullable=False, default="ACTIVE", index=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "description": self.description,
            "percentage": self.percentage,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "vendor_id": self.vendor_id,
            "branch_id": self.branch_id,
            "status": self.status,
            "concurrency_stamp": self.concurrency_stamp,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
