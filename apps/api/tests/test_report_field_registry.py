"""Tests for the report field catalog and registry."""

import logging
import uuid

import pytest

from report_engine.db.enums import CustomFieldEntityType, ReportEntityType, ReportFieldType
from report_engine.services import custom_field_service
from report_engine.services.report_field_catalog import GROUP_ORDER, STATIC_FIELDS
from report_engine.services.report_field_registry import (
    CUSTOM_PROPERTIES_GROUP,
    ReportFieldRegistry,
    StaticFieldSource,
    build_field_registry,
)


def add_property(db, org, user, key, data_type="TEXT", entity=CustomFieldEntityType.CASE, **kwargs):
    return custom_field_service.create_custom_field(
        db,
        org.id,
        user.id,
        entity_type=entity,
        key=key,
        label=key.replace("_", " ").title(),
        data_type=data_type,
        **kwargs,
    )


class TestStaticCatalog:
    @pytest.mark.parametrize("entity_type", list(ReportEntityType))
    def test_every_entity_type_has_fields(self, entity_type):
        assert len(STATIC_FIELDS[entity_type]) > 0

    @pytest.mark.parametrize("entity_type", list(ReportEntityType))
    def test_field_ids_unique_per_entity_type(self, entity_type):
        ids = [f.id for f in STATIC_FIELDS[entity_type]]
        assert len(ids) == len(set(ids))

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            STATIC_FIELDS[ReportEntityType.CASES] = ()  # type: ignore[index]

    def test_custom_properties_is_last_known_group(self):
        assert GROUP_ORDER[-1] == CUSTOM_PROPERTIES_GROUP

    def test_case_fields_include_core_columns(self):
        ids = {f.id for f in STATIC_FIELDS[ReportEntityType.CASES]}
        assert {"referenceNumber", "status", "createdAt"} <= ids


class TestRegistry:
    def test_unknown_entity_type_returns_empty(self, db, test_org, caplog):
        registry = build_field_registry(db)
        with caplog.at_level(logging.WARNING):
            assert registry.get_fields("widgets", test_org.id) == []
        assert "widgets" in caplog.text

    def test_static_only_for_entity_without_properties(self, db, test_org):
        registry = build_field_registry(db)
        fields = registry.get_fields(ReportEntityType.POLICIES, test_org.id)
        assert len(fields) == len(STATIC_FIELDS[ReportEntityType.POLICIES])

    def test_custom_properties_appended(self, db, test_org, test_user):
        add_property(db, test_org, test_user, "region_code", "SELECT", options=["NA", "EU"])
        add_property(db, test_org, test_user, "loss_amount", "NUMBER", group_name="Financials")

        fields = build_field_registry(db).get_fields("cases", test_org.id)
        by_id = {f.id: f for f in fields}

        region = by_id["custom_region_code"]
        assert region.type == ReportFieldType.ENUM
        assert region.group == CUSTOM_PROPERTIES_GROUP
        assert region.groupable is True
        assert region.enum_values == ("NA", "EU")
        assert region.is_custom_property is True
        assert region.source_path == "custom_fields.region_code"

        loss = by_id["custom_loss_amount"]
        assert loss.type == ReportFieldType.NUMBER
        assert loss.aggregatable is True
        assert loss.group == "Financials"

        assert len(fields) == len(STATIC_FIELDS[ReportEntityType.CASES]) + 2

    def test_inactive_and_foreign_properties_excluded(
        self, db, test_org, test_user, org_factory, user_factory
    ):
        field = add_property(db, test_org, test_user, "retired")
        custom_field_service.update_custom_field(db, field, test_user.id, is_active=False)

        other_org = org_factory()
        other_user = user_factory(other_org)
        add_property(db, other_org, other_user, "theirs")

        ids = {f.id for f in build_field_registry(db).get_fields("cases", test_org.id)}
        assert "custom_retired" not in ids
        assert "custom_theirs" not in ids

    def test_properties_scoped_to_entity_kind(self, db, test_org, test_user):
        add_property(db, test_org, test_user, "interviewer", entity=CustomFieldEntityType.INVESTIGATION)
        registry = build_field_registry(db)
        assert registry.get_field("investigations", test_org.id, "custom_interviewer") is not None
        assert registry.get_field("cases", test_org.id, "custom_interviewer") is None

    def test_property_fetch_failure_degrades_to_static(self, db, test_org, monkeypatch, caplog):
        def boom(*args, **kwargs):
            raise RuntimeError("catalog unavailable")

        monkeypatch.setattr(custom_field_service, "find_active_definitions", boom)
        with caplog.at_level(logging.WARNING):
            fields = build_field_registry(db).get_fields("cases", test_org.id)

        assert len(fields) == len(STATIC_FIELDS[ReportEntityType.CASES])
        assert "Failed to load custom properties" in caplog.text

    def test_field_count_matches_fields(self, db, test_org):
        registry = build_field_registry(db)
        assert registry.get_field_count("rius", test_org.id) == len(
            registry.get_fields("rius", test_org.id)
        )


class TestGroups:
    def test_groups_follow_display_order(self, db, test_org, test_user):
        add_property(db, test_org, test_user, "zone", group_name="Zeta Extras")
        add_property(db, test_org, test_user, "area", group_name="Alpha Extras")
        add_property(db, test_org, test_user, "plain")

        groups = build_field_registry(db).get_field_groups("cases", test_org.id)
        names = [g.group_name for g in groups]

        known = [n for n in names if n in GROUP_ORDER]
        assert known == sorted(known, key=GROUP_ORDER.index)
        assert names[-3:] == [CUSTOM_PROPERTIES_GROUP, "Alpha Extras", "Zeta Extras"]

    def test_grouping_is_deterministic(self, db, test_org):
        registry = build_field_registry(db)
        first = [(g.group_name, [f.id for f in g.fields]) for g in registry.get_field_groups("cases", test_org.id)]
        second = [(g.group_name, [f.id for f in g.fields]) for g in registry.get_field_groups("cases", test_org.id)]
        assert first == second

    def test_fields_keep_catalog_order_within_group(self):
        registry = ReportFieldRegistry([StaticFieldSource()])
        groups = registry.get_field_groups("cases", uuid.uuid4())
        details = next(g for g in groups if g.group_name == "Case Details")
        catalog_ids = [
            f.id for f in STATIC_FIELDS[ReportEntityType.CASES] if f.group == "Case Details"
        ]
        assert [f.id for f in details.fields] == catalog_ids


class TestValidation:
    def test_valid_ids(self, db, test_org):
        result = build_field_registry(db).validate_fields(
            "cases", test_org.id, ["status", "createdAt"]
        )
        assert result.valid is True
        assert result.invalid_fields == []

    def test_invalid_ids_reported_once_in_order(self, db, test_org):
        result = build_field_registry(db).validate_fields(
            "cases", test_org.id, ["bogus", "status", "alsoBogus", "bogus"]
        )
        assert result.valid is False
        assert result.invalid_fields == ["bogus", "alsoBogus"]

    def test_everything_invalid_for_unknown_entity(self, db, test_org):
        result = build_field_registry(db).validate_fields("widgets", test_org.id, ["status"])
        assert result.invalid_fields == ["status"]
