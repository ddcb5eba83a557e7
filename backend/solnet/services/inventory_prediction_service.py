# Overview: Stock-out prediction and reorder alerts computed from the last 30 days of sales.

"""
Inventory predictions

avg_daily_sales      = units sold over the last SALES_WINDOW_DAYS / SALES_WINDOW_DAYS
days_until_stockout  = floor(quantity / avg_daily_sales), -1 when nothing sold
predicted_stockout   = now + quantity / avg_daily_sales days (None when nothing sold)

Risk:
- critical: out of stock
- high:     at or below min_stock_level, or stock-out within 3 days
- medium:   stock-out within 7 days
- low:      otherwise

Alerts (one item can raise several):
- low_stock           quantity <= min_stock_level  (critical at 0, else high)
- predicted_stockout  0 < days <= 7                (critical within 3 days, else high)
- reorder_required    quantity <= reorder_point    (medium)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..extensions import db
from ..models import InventoryItem, Sale, SaleItem
from solnet.time_utils import to_utc_z, utcnow


SALES_WINDOW_DAYS = 30
SAFETY_DAYS = 7

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


@dataclass(frozen=True)
class Prediction:
    item: InventoryItem
    avg_daily_sales: float
    days_until_stockout: int
    predicted_stockout: datetime | None
    risk_level: str
    recommended_reorder: int

    def to_dict(self) -> dict:
        return {
            "item_id": self.item.id,
            "name": self.item.name,
            "sku": self.item.sku,
            "category": self.item.category,
            "current_stock": self.item.quantity,
            "min_stock_level": self.item.min_stock_level,
            "reorder_point": self.item.reorder_point,
            "avg_daily_sales": round(self.avg_daily_sales, 3),
            "days_until_stockout": self.days_until_stockout,
            "predicted_stockout": to_utc_z(self.predicted_stockout),
            "risk_level": self.risk_level,
            "recommended_reorder": self.recommended_reorder,
        }


def units_sold_since(item_ids: list[int], since: datetime) -> dict[int, int]:
    if not item_ids:
        return {}
    rows = (
        db.session.query(SaleItem.inventory_item_id, db.func.coalesce(db.func.sum(SaleItem.quantity), 0))
        .join(Sale, Sale.id == SaleItem.sale_id)
        .filter(SaleItem.inventory_item_id.in_(item_ids), Sale.created_at >= since)
        .group_by(SaleItem.inventory_item_id)
        .all()
    )
    return {item_id: int(total) for item_id, total in rows}


def days_until_stockout(quantity: int, avg_daily_sales: float) -> int:
    if avg_daily_sales <= 0:
        return -1
    return math.floor(quantity / avg_daily_sales)


def risk_level(quantity: int, min_stock_level: int, days: int) -> str:
    if quantity == 0:
        return "critical"
    if quantity <= min_stock_level or 0 < days <= 3:
        return "high"
    if 0 < days <= 7:
        return "medium"
    return "low"


def recommended_reorder(item: InventoryItem, avg_daily_sales: float) -> int:
    if item.quantity <= item.reorder_point:
        return item.reorder_quantity
    needed = math.ceil(avg_daily_sales * (item.lead_time_days + SAFETY_DAYS))
    return max(0, needed - item.quantity)


def predict(item: InventoryItem, units_sold: int, now: datetime | None = None) -> Prediction:
    now = now or utcnow()
    avg = units_sold / SALES_WINDOW_DAYS
    days = days_until_stockout(item.quantity, avg)
    stockout = now + timedelta(days=item.quantity / avg) if avg > 0 else None
    return Prediction(
        item=item,
        avg_daily_sales=avg,
        days_until_stockout=days,
        predicted_stockout=stockout,
        risk_level=risk_level(item.quantity, item.min_stock_level, days),
        recommended_reorder=recommended_reorder(item, avg),
    )


def predictions_for(items: list[InventoryItem], now: datetime | None = None) -> list[Prediction]:
    now = now or utcnow()
    sold = units_sold_since([i.id for i in items], now - timedelta(days=SALES_WINDOW_DAYS))
    predictions = [predict(item, sold.get(item.id, 0), now) for item in items]
    predictions.sort(key=lambda p: (PRIORITY_ORDER[p.risk_level], p.item.name))
    return predictions


def refresh_snapshots(items: list[InventoryItem]) -> int:
    """Store avg_daily_sales / predicted_stockout on the items."""
    for prediction in predictions_for(items):
        prediction.item.avg_daily_sales = prediction.avg_daily_sales
        prediction.item.predicted_stockout = prediction.predicted_stockout
    db.session.commit()
    return len(items)


def alerts_for(predictions: list[Prediction]) -> list[dict]:
    alerts = []
    for p in predictions:
        item = p.item
        if item.quantity <= item.min_stock_level:
            alerts.append(_alert(
                p,
                "low_stock",
                "critical" if item.quantity == 0 else "high",
                f"{item.name} is out of stock" if item.quantity == 0
                else f"{item.name} is low on stock ({item.quantity} left, minimum {item.min_stock_level})",
            ))
        if 0 < p.days_until_stockout <= 7:
            alerts.append(_alert(
                p,
                "predicted_stockout",
                "critical" if p.days_until_stockout <= 3 else "high",
                f"{item.name} is predicted to run out in {p.days_until_stockout} day(s)",
            ))
        if item.quantity <= item.reorder_point:
            alerts.append(_alert(
                p,
                "reorder_required",
                "medium",
                f"Reorder {item.reorder_quantity} x {item.name}",
            ))

    alerts.sort(key=lambda a: (PRIORITY_ORDER[a["priority"]], a["item_name"]))
    return alerts


def _alert(p: Prediction, alert_type: str, priority: str, message: str) -> dict:
    return {
        "item_id": p.item.id,
        "item_name": p.item.name,
        "sku": p.item.sku,
        "type": alert_type,
        "priority": priority,
        "message": message,
        "current_stock": p.item.quantity,
        "days_until_stockout": p.days_until_stockout,
    }
