from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class User(db.Model):
    """
    An actor: shopper, vendor staff, rider or platform admin.

    Identity is established upstream; this table only carries what the
    order flows need (role for rider assignment, vendor for staff scoping).
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True, unique=True)
    mobile_number = db.Column(db.String(32), nullable=True)

    # USER, VENDOR_ADMIN, RIDER, SUPER_ADMIN
    role = db.Column(db.String(32), nullable=False, default="USER")
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "role": self.role,
            "vendor_id": self.vendor_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
