# Overview: Service-layer operations for the repair catalog (device types, brands, models, services, problems).

from __future__ import annotations

from ..extensions import db
from ..models import Brand, DeviceModel, DeviceType, PredefinedProblem, ServiceType
from ..validation import ConflictError, NotFoundError


# Name-unique catalog entities keyed by their URL segment
CATALOG_MODELS = {
    "device-types": DeviceType,
    "brands": Brand,
    "models": DeviceModel,
    "service-types": ServiceType,
    "predefined-problems": PredefinedProblem,
}

_LABELS = {
    DeviceType: "Device type",
    Brand: "Brand",
    DeviceModel: "Model",
    ServiceType: "Service type",
    PredefinedProblem: "Predefined problem",
}


def _label(model) -> str:
    return _LABELS.get(model, model.__name__)


def get_entry(model, entry_id: int):
    entry = db.session.get(model, entry_id)
    if not entry:
        raise NotFoundError(f"{_label(model)} not found")
    return entry


def list_entries(model, *, include_inactive: bool = False, brand_id: int | None = None, device_type_id: int | None = None):
    query = db.session.query(model)
    if not include_inactive:
        query = query.filter(model.is_active.is_(True))
    if model is DeviceModel:
        if brand_id is not None:
            query = query.filter(DeviceModel.brand_id == brand_id)
        if device_type_id is not None:
            query = query.filter(DeviceModel.device_type_id == device_type_id)
    if model is PredefinedProblem:
        query = query.order_by(PredefinedProblem.sort_order.asc(), PredefinedProblem.name.asc())
    else:
        query = query.order_by(model.name.asc())
    return query.all()


def list_public_service_types() -> list[ServiceType]:
    return (
        db.session.query(ServiceType)
        .filter(ServiceType.is_active.is_(True), ServiceType.is_public.is_(True))
        .order_by(ServiceType.name.asc())
        .all()
    )


def _ensure_unique_name(model, name: str, *, exclude_id: int | None = None, brand_id: int | None = None) -> None:
    query = db.session.query(model).filter(db.func.lower(model.name) == name.lower())
    if model is DeviceModel:
        query = query.filter(DeviceModel.brand_id == brand_id)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise ConflictError(f"{_label(model)} '{name}' already exists")


def create_entry(model, patch: dict):
    if model is DeviceModel:
        get_entry(Brand, patch["brand_id"])
        if patch.get("device_type_id") is not None:
            get_entry(DeviceType, patch["device_type_id"])
    _ensure_unique_name(model, patch["name"], brand_id=patch.get("brand_id"))

    entry = model(**patch)
    db.session.add(entry)
    db.session.commit()
    return entry


def update_entry(model, entry_id: int, patch: dict):
    entry = get_entry(model, entry_id)

    if model is DeviceModel:
        if patch.get("brand_id") is not None:
            get_entry(Brand, patch["brand_id"])
        if patch.get("device_type_id") is not None:
            get_entry(DeviceType, patch["device_type_id"])

    if "name" in patch or "brand_id" in patch:
        _ensure_unique_name(
            model,
            patch.get("name", entry.name),
            exclude_id=entry.id,
            brand_id=patch.get("brand_id", getattr(entry, "brand_id", None)),
        )

    for key, value in patch.items():
        setattr(entry, key, value)
    db.session.commit()
    return entry


def deactivate_entry(model, entry_id: int):
    entry = get_entry(model, entry_id)
    entry.is_active = False
    db.session.commit()
    return entry
