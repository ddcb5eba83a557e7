from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


class DeviceType(db.Model):
    """Kind of device accepted for repair (Laptop, Desktop, Printer...)."""
    __tablename__ = "device_types"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    website = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "website": self.website,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class DeviceModel(db.Model):
    """
    A concrete model of a brand (e.g. ThinkPad T480).

    Model names are unique per brand.
    """
    __tablename__ = "device_models"
    __table_args__ = (
        db.UniqueConstraint("brand_id", "name", name="uq_device_models_brand_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=False, index=True)
    device_type_id = db.Column(db.Integer, db.ForeignKey("device_types.id"), nullable=True, index=True)
    specifications = db.Column(db.Text, nullable=True)
    release_year = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    brand = db.relationship("Brand", backref=db.backref("models", lazy=True))
    device_type = db.relationship("DeviceType", backref=db.backref("models", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand_id": self.brand_id,
            "brand_name": self.brand.name if self.brand else None,
            "device_type_id": self.device_type_id,
            "specifications": self.specifications,
            "release_year": self.release_year,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class ServiceType(db.Model):
    """
    Priced repair service offered by the shop.

    Public service types are listed on the customer-facing site.
    """
    __tablename__ = "service_types"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    base_price_cents = db.Column(db.Integer, nullable=True)
    estimated_duration_minutes = db.Column(db.Integer, nullable=True)
    is_public = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "base_price_cents": self.base_price_cents,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "is_public": self.is_public,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class PredefinedProblem(db.Model):
    """Canned problem descriptions offered at intake."""
    __tablename__ = "predefined_problems"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=True)
    severity = db.Column(db.String(16), nullable=False, default="medium")
    estimated_cost_cents = db.Column(db.Integer, nullable=True)
    estimated_duration_minutes = db.Column(db.Integer, nullable=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
            "estimated_cost_cents": self.estimated_cost_cents,
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
