from __future__ import annotations

from ..extensions import db
from solnet.time_utils import to_utc_z


class InventoryItem(db.Model):
    """
    Stock-keeping unit held for repairs and counter sales.

    quantity is the on-hand count. The reorder fields drive the stock
    alerts and predictions (see inventory_prediction_service).
    avg_daily_sales and predicted_stockout are denormalized snapshots
    refreshed from recent sales.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.Index("ix_inventory_items_location_active", "location_id", "is_active"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    category = db.Column(db.String(64), nullable=True)
    brand = db.Column(db.String(128), nullable=True)
    model = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)

    purchase_price_cents = db.Column(db.Integer, nullable=True)
    sale_price_cents = db.Column(db.Integer, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)
    reorder_point = db.Column(db.Integer, nullable=False, default=15)
    reorder_quantity = db.Column(db.Integer, nullable=False, default=50)
    lead_time_days = db.Column(db.Integer, nullable=False, default=7)

    avg_daily_sales = db.Column(db.Float, nullable=False, default=0.0)
    predicted_stockout = db.Column(db.DateTime(timezone=True), nullable=True)
    last_restocked = db.Column(db.DateTime(timezone=True), nullable=True)

    supplier = db.Column(db.String(255), nullable=True)
    barcode = db.Column(db.String(64), nullable=True)

    is_public = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    location = db.relationship("Location", backref=db.backref("inventory_items", lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock_level

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "location_id": self.location_id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "description": self.description,
            "purchase_price_cents": self.purchase_price_cents,
            "sale_price_cents": self.sale_price_cents,
            "quantity": self.quantity,
            "min_stock_level": self.min_stock_level,
            "reorder_point": self.reorder_point,
            "reorder_quantity": self.reorder_quantity,
            "lead_time_days": self.lead_time_days,
            "avg_daily_sales": self.avg_daily_sales,
            "predicted_stockout": to_utc_z(self.predicted_stockout),
            "last_restocked": to_utc_z(self.last_restocked),
            "supplier": self.supplier,
            "barcode": self.barcode,
            "is_public": self.is_public,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "model": self.model,
            "description": self.description,
            "sale_price_cents": self.sale_price_cents,
            "in_stock": self.quantity > 0,
        }
