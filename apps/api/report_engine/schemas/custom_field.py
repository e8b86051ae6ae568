"""Pydantic schemas for custom property definitions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from report_engine.db.enums import CustomFieldDataType, CustomFieldEntityType

OPTION_TYPES = {CustomFieldDataType.SELECT, CustomFieldDataType.MULTI_SELECT}


class CustomFieldBase(BaseModel):
    """Base custom property fields."""

    entity_type: CustomFieldEntityType
    key: str = Field(
        min_length=1,
        max_length=100,
        description="Unique field key per entity type (lowercase, underscores)",
    )
    label: str = Field(min_length=1, max_length=255, description="Display label")
    data_type: CustomFieldDataType
    group_name: str | None = Field(default=None, max_length=100)
    display_order: int = Field(default=0, ge=0)
    options: list[str] | None = Field(
        default=None,
        description="Options for SELECT / MULTI_SELECT properties",
    )

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Normalize key to lowercase with underscores."""
        normalized = v.lower().strip().replace(" ", "_").replace("-", "_")
        if not normalized.replace("_", "").isalnum():
            raise ValueError("Key must contain only letters, numbers, and underscores")
        return normalized

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str] | None, info: ValidationInfo) -> list[str] | None:
        """Ensure options are provided for select types."""
        if info.data.get("data_type") in OPTION_TYPES and not v:
            raise ValueError("Options are required for SELECT and MULTI_SELECT properties")
        return v


class CustomFieldCreate(CustomFieldBase):
    """Schema for creating a custom property."""

    pass


class CustomFieldUpdate(BaseModel):
    """Schema for updating a custom property. Key, entity and type are immutable."""

    label: str | None = Field(default=None, min_length=1, max_length=255)
    group_name: str | None = Field(default=None, max_length=100)
    display_order: int | None = Field(default=None, ge=0)
    options: list[str] | None = None
    is_active: bool | None = None


class CustomFieldRead(CustomFieldBase):
    """Schema for reading a custom property."""

    id: UUID
    organization_id: UUID
    is_active: bool
    created_by_user_id: UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
