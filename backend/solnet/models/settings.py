from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


class AppSetting(db.Model):
    """
    Runtime key/value setting grouped by category.

    Categories in use: "sms" (gateway credentials and notification
    switches), "advanced", plus anything the settings screens create.
    value holds any JSON value.
    """
    __tablename__ = "app_settings"
    __table_args__ = (
        db.UniqueConstraint("category", "key", name="uq_app_settings_category_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.JSON, nullable=True)
    description = db.Column(db.Text, nullable=True)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "key": self.key,
            "value": self.value,
            "description": self.description,
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class BusinessProfile(db.Model):
    """Single-row business identity shown on receipts and the public site."""
    __tablename__ = "business_profile"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    business_name = db.Column(db.String(255), nullable=False)
    owner_name = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    business_hours = db.Column(db.JSON, nullable=True)
    monthly_revenue_target_cents = db.Column(db.Integer, nullable=True)
    annual_revenue_target_cents = db.Column(db.Integer, nullable=True)
    established_year = db.Column(db.Integer, nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_name": self.business_name,
            "owner_name": self.owner_name,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "tax_id": self.tax_id,
            "description": self.description,
            "business_hours": self.business_hours,
            "monthly_revenue_target_cents": self.monthly_revenue_target_cents,
            "annual_revenue_target_cents": self.annual_revenue_target_cents,
            "established_year": self.established_year,
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        return {
            "business_name": self.business_name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "website": self.website,
            "business_hours": self.business_hours,
            "description": self.description,
        }
