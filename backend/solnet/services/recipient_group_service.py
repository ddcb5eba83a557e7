# Overview: Service-layer operations for saved SMS recipient groups and their members.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, RecipientGroup, RecipientGroupMember, SmsCampaign
from ..validation import ConflictError, NotFoundError


def list_groups(include_inactive: bool = False) -> list[RecipientGroup]:
    query = db.session.query(RecipientGroup)
    if not include_inactive:
        query = query.filter(RecipientGroup.is_active.is_(True))
    return query.order_by(RecipientGroup.name.asc()).all()


def get_group(group_id: int) -> RecipientGroup:
    group = db.session.get(RecipientGroup, group_id)
    if not group:
        raise NotFoundError("Recipient group not found")
    return group


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(RecipientGroup).filter(db.func.lower(RecipientGroup.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(RecipientGroup.id != exclude_id)
    if query.first():
        raise ConflictError("Recipient group name already exists")


def create_group(patch: dict, *, user_id: int | None = None) -> RecipientGroup:
    patch["name"] = patch["name"].strip()
    _ensure_unique_name(patch["name"])

    group = RecipientGroup(**patch)
    group.created_by_user_id = user_id
    db.session.add(group)
    db.session.commit()
    return group


def update_group(group: RecipientGroup, patch: dict) -> RecipientGroup:
    if "name" in patch:
        patch["name"] = patch["name"].strip()
        _ensure_unique_name(patch["name"], exclude_id=group.id)
    for key, value in patch.items():
        setattr(group, key, value)
    db.session.commit()
    return group


def delete_group(group: RecipientGroup) -> None:
    """Refused while a pending campaign targets the group; finished campaigns lose the link."""
    campaigns = db.session.query(SmsCampaign).filter(SmsCampaign.recipient_group_id == group.id).all()
    if any(c.status == "pending" for c in campaigns):
        raise ConflictError("Recipient group is used by a pending SMS campaign")
    for campaign in campaigns:
        campaign.recipient_group_id = None
    db.session.delete(group)
    db.session.commit()


def group_customers(group: RecipientGroup) -> list[Customer]:
    return (
        db.session.query(Customer)
        .join(RecipientGroupMember, RecipientGroupMember.customer_id == Customer.id)
        .filter(RecipientGroupMember.group_id == group.id)
        .order_by(Customer.name.asc())
        .all()
    )


def add_customer(group: RecipientGroup, customer_id: int, *, user_id: int | None = None) -> RecipientGroupMember:
    if not db.session.get(Customer, customer_id):
        raise NotFoundError("Customer not found")

    exists = (
        db.session.query(RecipientGroupMember.id)
        .filter_by(group_id=group.id, customer_id=customer_id)
        .first()
    )
    if exists:
        raise ConflictError("Customer is already in this group")

    member = RecipientGroupMember(group_id=group.id, customer_id=customer_id, added_by_user_id=user_id)
    db.session.add(member)
    db.session.commit()
    return member


def remove_customer(group: RecipientGroup, customer_id: int) -> None:
    member = (
        db.session.query(RecipientGroupMember)
        .filter_by(group_id=group.id, customer_id=customer_id)
        .first()
    )
    if not member:
        raise NotFoundError("Customer is not in this group")
    db.session.delete(member)
    db.session.commit()


def member_counts() -> dict[int, int]:
    rows = (
        db.session.query(RecipientGroupMember.group_id, db.func.count(RecipientGroupMember.id))
        .group_by(RecipientGroupMember.group_id)
        .all()
    )
    counts = {group_id: int(count) for group_id, count in rows}
    for (group_id,) in db.session.query(RecipientGroup.id).all():
        counts.setdefault(group_id, 0)
    return counts
