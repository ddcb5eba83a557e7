# Overview: Service-layer operations for settings; key/value app settings and the business profile.

"""
Settings Service

App settings are (category, key) -> JSON value rows. Reads fall back to a
caller-supplied default so features work on an empty table. The business
profile is a single row created on first write.
"""

from __future__ import annotations

from typing import Any

from ..extensions import db
from ..models import AppSetting, BusinessProfile
from ..validation import NotFoundError, ValidationError


ADVANCED_CATEGORY = "advanced"

BUSINESS_PROFILE_FIELDS = {
    "business_name",
    "owner_name",
    "phone",
    "email",
    "website",
    "address",
    "city",
    "country",
    "tax_id",
    "description",
    "business_hours",
    "monthly_revenue_target_cents",
    "annual_revenue_target_cents",
    "established_year",
}


def _validate_key(category: str, key: str) -> None:
    if not category or not str(category).strip():
        raise ValidationError("category is required")
    if not key or not str(key).strip():
        raise ValidationError("key is required")
    if len(category) > 64 or len(key) > 128:
        raise ValidationError("category or key too long")


def get_setting_row(category: str, key: str) -> AppSetting | None:
    return db.session.query(AppSetting).filter_by(category=category, key=key).first()


def get_setting(category: str, key: str, default: Any = None) -> Any:
    row = get_setting_row(category, key)
    if row is None or row.value is None:
        return default
    return row.value


def get_bool_setting(category: str, key: str, default: bool) -> bool:
    value = get_setting(category, key, default)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def list_settings(category: str | None = None) -> list[AppSetting]:
    query = db.session.query(AppSetting)
    if category:
        query = query.filter(AppSetting.category == category)
    return query.order_by(AppSetting.category.asc(), AppSetting.key.asc()).all()


def get_category(category: str) -> dict[str, Any]:
    return {row.key: row.value for row in list_settings(category)}


def upsert_setting(
    category: str,
    key: str,
    value: Any,
    *,
    description: str | None = None,
    user_id: int | None = None,
    commit: bool = True,
) -> AppSetting:
    _validate_key(category, key)
    category = category.strip()
    key = key.strip()

    row = get_setting_row(category, key)
    if row is None:
        row = AppSetting(category=category, key=key)
        db.session.add(row)

    row.value = value
    if description is not None:
        row.description = description
    row.updated_by_user_id = user_id

    if commit:
        db.session.commit()
    return row


def upsert_many(category: str, values: dict[str, Any], *, user_id: int | None = None) -> dict[str, Any]:
    for key, value in values.items():
        upsert_setting(category, key, value, user_id=user_id, commit=False)
    db.session.commit()
    return get_category(category)


def delete_setting(category: str, key: str) -> None:
    row = get_setting_row(category, key)
    if row is None:
        raise NotFoundError("Setting not found")
    db.session.delete(row)
    db.session.commit()


# -- business profile --

def get_business_profile() -> BusinessProfile | None:
    return db.session.query(BusinessProfile).order_by(BusinessProfile.id.asc()).first()


def business_name(default: str = "") -> str:
    profile = get_business_profile()
    return profile.business_name if profile else default


def upsert_business_profile(payload: dict) -> BusinessProfile:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(payload) - BUSINESS_PROFILE_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    for money_field in ("monthly_revenue_target_cents", "annual_revenue_target_cents"):
        value = payload.get(money_field)
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            raise ValidationError(f"{money_field} must be a non-negative integer")

    profile = get_business_profile()
    if profile is None:
        name = (payload.get("business_name") or "").strip()
        if not name:
            raise ValidationError("business_name is required")
        profile = BusinessProfile(business_name=name)
        db.session.add(profile)

    for key, value in payload.items():
        if key == "business_name":
            value = (value or "").strip()
            if not value:
                raise ValidationError("business_name cannot be blank")
        setattr(profile, key, value)

    db.session.commit()
    return profile
