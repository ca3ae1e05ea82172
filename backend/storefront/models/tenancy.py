from __future__ import annotations

from ..extensions import db
from ..services.concurrency import new_concurrency_stamp
from ..time_utils import to_utc_z


class Vendor(db.Model):
    """
    A seller on the marketplace.

    Vendors own branches; products, orders and promocodes are scoped to a
    vendor transitively through the branch they belong to.
    """
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=False, unique=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    branches = db.relationship("Branch", back_populates="vendor", lazy=True)

    def __repr__(self) -> str:
        return f"<Vendor id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "concurrency_stamp": self.concurrency_stamp,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Branch(db.Model):
    """A physical outlet of a vendor. Carts and orders are per branch."""
    __tablename__ = "branches"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "code", name="uq_branches_vendor_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(64), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    concurrency_stamp = db.Column(db.String(32), nullable=False, default=new_concurrency_stamp)
    __mapper_args__ = {"version_id_col": concurrency_stamp, "version_id_generator": False}

    vendor = db.relationship("Vendor", back_populates="branches")

    def __repr__(self) -> str:
        return f"<Branch id={self.id} vendor_id={self.vendor_id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vendor_id": self.vendor_id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "concurrency_stamp": self.concurrency_stamp,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
