"""Report field registry - the field catalog behind the report designer.

Fields come from independent sources composed by concatenation:

- StaticFieldSource: the compiled-in catalog (report_field_catalog)
- CustomPropertyFieldSource: the tenant's active custom property definitions

The registry is advisory metadata for the field picker and save-time
validation. It never raises for an unknown entity type or a broken tenant
customization; it returns what it can and logs the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from report_engine.core.structured_logging import build_log_context
from report_engine.db.enums import (
    CustomFieldDataType,
    CustomFieldEntityType,
    ReportEntityType,
    ReportFieldType,
)
from report_engine.services import custom_field_service
from report_engine.services.report_field_catalog import GROUP_ORDER, STATIC_FIELDS, FieldDefinition

logger = logging.getLogger(__name__)

CUSTOM_PROPERTIES_GROUP = "Custom Properties"
CUSTOM_FIELD_PREFIX = "custom_"

# Report entity types that support tenant custom properties
CUSTOM_PROPERTY_ENTITY_MAP: dict[ReportEntityType, CustomFieldEntityType] = {
    ReportEntityType.CASES: CustomFieldEntityType.CASE,
    ReportEntityType.INVESTIGATIONS: CustomFieldEntityType.INVESTIGATION,
    ReportEntityType.PERSONS: CustomFieldEntityType.PERSON,
    ReportEntityType.RIUS: CustomFieldEntityType.RIU,
}

PROPERTY_TYPE_MAP: dict[str, ReportFieldType] = {
    CustomFieldDataType.TEXT.value: ReportFieldType.STRING,
    CustomFieldDataType.NUMBER.value: ReportFieldType.NUMBER,
    CustomFieldDataType.DATE.value: ReportFieldType.DATE,
    CustomFieldDataType.DATETIME.value: ReportFieldType.DATETIME,
    CustomFieldDataType.SELECT.value: ReportFieldType.ENUM,
    CustomFieldDataType.MULTI_SELECT.value: ReportFieldType.ENUM,
    CustomFieldDataType.BOOLEAN.value: ReportFieldType.BOOLEAN,
    CustomFieldDataType.URL.value: ReportFieldType.STRING,
    CustomFieldDataType.EMAIL.value: ReportFieldType.STRING,
    CustomFieldDataType.PHONE.value: ReportFieldType.STRING,
}

GROUPABLE_PROPERTY_TYPES = {CustomFieldDataType.SELECT.value, CustomFieldDataType.BOOLEAN.value}


def resolve_entity_type(entity_type: str | ReportEntityType) -> ReportEntityType | None:
    if isinstance(entity_type, ReportEntityType):
        return entity_type
    if ReportEntityType.has_value(entity_type):
        return ReportEntityType(entity_type)
    return None


@dataclass
class FieldGroup:
    group_name: str
    fields: list[FieldDefinition] = field(default_factory=list)


@dataclass
class FieldValidationResult:
    valid: bool
    invalid_fields: list[str]


class FieldSource(Protocol):
    """A provider of reportable fields for one tenant."""

    def list_fields(self, entity_type: ReportEntityType, org_id: UUID) -> list[FieldDefinition]:
        ...


class StaticFieldSource:
    """Compiled-in fields, identical for every tenant."""

    def list_fields(self, entity_type: ReportEntityType, org_id: UUID) -> list[FieldDefinition]:
        return list(STATIC_FIELDS.get(entity_type, ()))


class CustomPropertyFieldSource:
    """Fields derived from the tenant's active custom property definitions.

    Re-derived on every call. Any database failure degrades to no custom
    fields so the static catalog is still served.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_fields(self, entity_type: ReportEntityType, org_id: UUID) -> list[FieldDefinition]:
        property_entity = CUSTOM_PROPERTY_ENTITY_MAP.get(entity_type)
        if property_entity is None:
            return []

        try:
            definitions = custom_field_service.find_active_definitions(
                self.db, org_id, property_entity
            )
            return [to_field_definition(d) for d in definitions]
        except Exception as exc:
            logger.warning(
                "Failed to load custom properties for report fields",
                extra=build_log_context(org_id=org_id, entity_type=entity_type.value),
                exc_info=True,
            )
            if isinstance(exc, SQLAlchemyError):
                # A failed statement poisons the transaction on PostgreSQL
                self.db.rollback()
            return []


def to_field_definition(prop) -> FieldDefinition:
    """Convert a CustomField row into a report field."""
    data_type = prop.data_type
    options = prop.options or None
    return FieldDefinition(
        id=f"{CUSTOM_FIELD_PREFIX}{prop.key}",
        label=prop.label,
        type=PROPERTY_TYPE_MAP.get(data_type, ReportFieldType.STRING),
        group=prop.group_name or CUSTOM_PROPERTIES_GROUP,
        source_path=f"custom_fields.{prop.key}",
        filterable=True,
        sortable=data_type != CustomFieldDataType.MULTI_SELECT.value,
        groupable=data_type in GROUPABLE_PROPERTY_TYPES,
        aggregatable=data_type == CustomFieldDataType.NUMBER.value,
        enum_values=tuple(str(o) for o in options) if options else None,
        is_custom_property=True,
    )


def _group_sort_key(group_name: str) -> tuple[int, str]:
    try:
        return (GROUP_ORDER.index(group_name), "")
    except ValueError:
        return (len(GROUP_ORDER), group_name)


class ReportFieldRegistry:
    """Merged view over a set of field sources."""

    def __init__(self, sources: Iterable[FieldSource]):
        self.sources = list(sources)

    def get_fields(self, entity_type: str | ReportEntityType, org_id: UUID) -> list[FieldDefinition]:
        resolved = resolve_entity_type(entity_type)
        if resolved is None:
            logger.warning("Unknown report entity type requested: %s", entity_type)
            return []
        fields: list[FieldDefinition] = []
        for source in self.sources:
            fields.extend(source.list_fields(resolved, org_id))
        return fields

    def get_field_groups(self, entity_type: str | ReportEntityType, org_id: UUID) -> list[FieldGroup]:
        groups: dict[str, FieldGroup] = {}
        for definition in self.get_fields(entity_type, org_id):
            groups.setdefault(definition.group, FieldGroup(definition.group)).fields.append(definition)
        return sorted(groups.values(), key=lambda g: _group_sort_key(g.group_name))

    def validate_fields(
        self,
        entity_type: str | ReportEntityType,
        org_id: UUID,
        field_ids: Iterable[str],
    ) -> FieldValidationResult:
        known = {f.id for f in self.get_fields(entity_type, org_id)}
        invalid = [fid for fid in dict.fromkeys(field_ids) if fid not in known]
        return FieldValidationResult(valid=not invalid, invalid_fields=invalid)

    def get_field(
        self, entity_type: str | ReportEntityType, org_id: UUID, field_id: str
    ) -> FieldDefinition | None:
        return next((f for f in self.get_fields(entity_type, org_id) if f.id == field_id), None)

    def get_field_count(self, entity_type: str | ReportEntityType, org_id: UUID) -> int:
        return len(self.get_fields(entity_type, org_id))

    @staticmethod
    def supported_entity_types() -> list[str]:
        return [e.value for e in ReportEntityType]


def build_field_registry(db: Session) -> ReportFieldRegistry:
    return ReportFieldRegistry([StaticFieldSource(), CustomPropertyFieldSource(db)])
