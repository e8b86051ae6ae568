"""Custom property service for org-scoped field definitions."""

from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from report_engine.db.enums import AuditEventType, CustomFieldEntityType
from report_engine.db.models import CustomField
from report_engine.services import audit_service


def list_custom_fields(
    db: Session,
    org_id: UUID,
    entity_type: CustomFieldEntityType | None = None,
) -> list[CustomField]:
    query = db.query(CustomField).filter(CustomField.organization_id == org_id)
    if entity_type:
        query = query.filter(CustomField.entity_type == entity_type.value)
    return query.order_by(CustomField.entity_type, CustomField.display_order, CustomField.key).all()


def find_active_definitions(
    db: Session,
    org_id: UUID,
    entity_type: CustomFieldEntityType,
) -> list[CustomField]:
    """Active property definitions for one record kind, ordered by group then display order."""
    return (
        db.query(CustomField)
        .filter(
            CustomField.organization_id == org_id,
            CustomField.entity_type == entity_type.value,
            CustomField.is_active.is_(True),
        )
        .order_by(CustomField.group_name, CustomField.display_order, CustomField.key)
        .all()
    )


def get_custom_field(db: Session, org_id: UUID, field_id: UUID) -> CustomField | None:
    return (
        db.query(CustomField)
        .filter(
            CustomField.organization_id == org_id,
            CustomField.id == field_id,
        )
        .first()
    )


def create_custom_field(
    db: Session,
    org_id: UUID,
    user_id: UUID,
    *,
    entity_type: CustomFieldEntityType,
    key: str,
    label: str,
    data_type: str,
    group_name: str | None = None,
    display_order: int = 0,
    options: list[str] | None = None,
    request: Request | None = None,
) -> CustomField:
    existing = (
        db.query(CustomField)
        .filter(
            CustomField.organization_id == org_id,
            CustomField.entity_type == entity_type.value,
            CustomField.key == key,
        )
        .first()
    )
    if existing:
        raise ValueError("Custom field key already exists")

    field = CustomField(
        organization_id=org_id,
        entity_type=entity_type.value,
        key=key,
        label=label,
        data_type=data_type,
        group_name=group_name,
        display_order=display_order,
        options=options,
        created_by_user_id=user_id,
        is_active=True,
    )
    db.add(field)
    db.flush()
    audit_service.log_event(
        db,
        org_id=org_id,
        event_type=AuditEventType.CUSTOM_FIELD_CREATED,
        actor_user_id=user_id,
        target_type="custom_field",
        target_id=field.id,
        details={"key": key, "entity_type": entity_type.value, "data_type": data_type},
        request=request,
    )
    db.commit()
    db.refresh(field)
    return field


def update_custom_field(
    db: Session,
    field: CustomField,
    user_id: UUID,
    *,
    label: str | None = None,
    group_name: str | None = None,
    display_order: int | None = None,
    options: list[str] | None = None,
    is_active: bool | None = None,
    request: Request | None = None,
) -> CustomField:
    changes = {
        "label": label,
        "group_name": group_name,
        "display_order": display_order,
        "options": options,
        "is_active": is_active,
    }
    applied = {}
    for attr, value in changes.items():
        if value is not None and getattr(field, attr) != value:
            setattr(field, attr, value)
            applied[attr] = value
    if applied:
        audit_service.log_event(
            db,
            org_id=field.organization_id,
            event_type=AuditEventType.CUSTOM_FIELD_UPDATED,
            actor_user_id=user_id,
            target_type="custom_field",
            target_id=field.id,
            details={"key": field.key, "changed": sorted(applied)},
            request=request,
        )
    db.commit()
    db.refresh(field)
    return field


def delete_custom_field(
    db: Session,
    field: CustomField,
    user_id: UUID,
    request: Request | None = None,
) -> None:
    audit_service.log_event(
        db,
        org_id=field.organization_id,
        event_type=AuditEventType.CUSTOM_FIELD_DELETED,
        actor_user_id=user_id,
        target_type="custom_field",
        target_id=field.id,
        details={"key": field.key, "entity_type": field.entity_type},
        request=request,
    )
    db.delete(field)
    db.commit()
