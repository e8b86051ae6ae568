"""Custom property endpoints. Active definitions surface as report fields."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from report_engine.core.deps import get_db, require_csrf_header, require_roles
from report_engine.db.enums import ROLES_CAN_MANAGE_SETTINGS, CustomFieldEntityType
from report_engine.schemas.auth import UserSession
from report_engine.schemas.custom_field import CustomFieldCreate, CustomFieldRead, CustomFieldUpdate
from report_engine.services import custom_field_service

manage_settings = require_roles(ROLES_CAN_MANAGE_SETTINGS)

router = APIRouter(prefix="/custom-fields", tags=["custom-fields"])


@router.get("", response_model=list[CustomFieldRead])
def list_custom_fields(
    entity_type: CustomFieldEntityType | None = Query(None),
    session: UserSession = Depends(manage_settings),
    db: Session = Depends(get_db),
):
    return custom_field_service.list_custom_fields(db, session.org_id, entity_type)


@router.post(
    "",
    response_model=CustomFieldRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_custom_field(
    body: CustomFieldCreate,
    request: Request,
    session: UserSession = Depends(manage_settings),
    db: Session = Depends(get_db),
):
    try:
        field = custom_field_service.create_custom_field(
            db=db,
            org_id=session.org_id,
            user_id=session.user_id,
            entity_type=body.entity_type,
            key=body.key,
            label=body.label,
            data_type=body.data_type.value,
            group_name=body.group_name,
            display_order=body.display_order,
            options=body.options,
            request=request,
        )
    except ValueError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return field


@router.patch(
    "/{field_id:uuid}",
    response_model=CustomFieldRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_custom_field(
    field_id: UUID,
    body: CustomFieldUpdate,
    request: Request,
    session: UserSession = Depends(manage_settings),
    db: Session = Depends(get_db),
):
    field = custom_field_service.get_custom_field(db, session.org_id, field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Custom field not found")
    return custom_field_service.update_custom_field(
        db=db,
        field=field,
        user_id=session.user_id,
        label=body.label,
        group_name=body.group_name,
        display_order=body.display_order,
        options=body.options,
        is_active=body.is_active,
        request=request,
    )


@router.delete(
    "/{field_id:uuid}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_custom_field(
    field_id: UUID,
    request: Request,
    session: UserSession = Depends(manage_settings),
    db: Session = Depends(get_db),
):
    field = custom_field_service.get_custom_field(db, session.org_id, field_id)
    if not field:
        raise HTTPException(status_code=404, detail="Custom field not found")
    custom_field_service.delete_custom_field(db, field, session.user_id, request)
