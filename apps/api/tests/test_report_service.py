"""Tests for saved report lifecycle, visibility, ownership and audit."""

import pytest

from report_engine.db.enums import AuditEventType, ReportVisibility, Role
from report_engine.db.models import AuditLog, SavedReport
from report_engine.schemas.report import ReportCreate, ReportUpdate
from report_engine.services import report_service
from report_engine.services.report_service import (
    ReportNotFoundError,
    ReportPermissionError,
    ReportValidationError,
)
from report_engine.utils.pagination import PaginationParams

PAGE = PaginationParams(page=1, page_size=20)

STATUS_FILTER = [
    {"logic": "AND", "conditions": [{"field": "status", "operator": "eq", "value": "NEW"}]}
]


def build_create(**overrides) -> ReportCreate:
    payload = {
        "name": "Open cases",
        "entity_type": "cases",
        "columns": ["referenceNumber", "status", "createdAt"],
        "filters": STATUS_FILTER,
    }
    payload.update(overrides)
    return ReportCreate(**payload)


def create(db, org, user, **overrides) -> SavedReport:
    return report_service.create_report(db, org.id, user.id, build_create(**overrides))


def audit_events(db, org_id, event_type):
    return (
        db.query(AuditLog)
        .filter(AuditLog.organization_id == org_id, AuditLog.event_type == event_type.value)
        .all()
    )


# =============================================================================
# Create / validation boundary
# =============================================================================


class TestCreate:
    def test_defaults(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        assert report.organization_id == test_org.id
        assert report.created_by_user_id == test_user.id
        assert report.visibility == ReportVisibility.PRIVATE.value
        assert report.visualization == "table"
        assert report.is_favorite is False
        assert report.is_template is False
        assert report.last_run_at is None
        assert report.scheduled_export_id is None

    def test_created_by_name(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        assert report.created_by_name == "Test User"

    def test_audit_event_written(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        events = audit_events(db, test_org.id, AuditEventType.REPORT_CREATED)
        assert len(events) == 1
        assert events[0].target_id == report.id
        assert events[0].details["filters"] == 'status eq "NEW"'
        assert events[0].entry_hash

    def test_unknown_entity_type_rejected_and_nothing_stored(self, db, test_org, test_user):
        with pytest.raises(ReportValidationError) as exc:
            create(db, test_org, test_user, entity_type="widgets")
        assert "widgets" in str(exc.value)
        assert db.query(SavedReport).count() == 0

    def test_unknown_column_rejected(self, db, test_org, test_user):
        with pytest.raises(ReportValidationError) as exc:
            create(db, test_org, test_user, columns=["status", "favouriteColour"])
        assert exc.value.invalid_fields == ["favouriteColour"]

    def test_unknown_filter_field_rejected(self, db, test_org, test_user):
        filters = [{"conditions": [{"field": "mood", "operator": "eq", "value": "sad"}]}]
        with pytest.raises(ReportValidationError) as exc:
            create(db, test_org, test_user, filters=filters)
        assert exc.value.invalid_fields == ["mood"]

    def test_unknown_operator_rejected(self, db, test_org, test_user):
        filters = [{"conditions": [{"field": "status", "operator": "like", "value": "N%"}]}]
        with pytest.raises(ReportValidationError):
            create(db, test_org, test_user, filters=filters)

    def test_sum_requires_aggregatable_field(self, db, test_org, test_user):
        with pytest.raises(ReportValidationError):
            create(db, test_org, test_user, aggregation=[{"field": "status", "function": "sum"}])

    def test_count_accepts_any_known_field(self, db, test_org, test_user):
        report = create(
            db, test_org, test_user, aggregation=[{"field": "status", "function": "count"}]
        )
        assert report.aggregation == [{"field": "status", "function": "count", "alias": None}]

    def test_custom_property_columns_accepted(self, db, test_org, test_user):
        from report_engine.db.enums import CustomFieldEntityType
        from report_engine.services import custom_field_service

        custom_field_service.create_custom_field(
            db, test_org.id, test_user.id,
            entity_type=CustomFieldEntityType.CASE, key="region", label="Region", data_type="TEXT",
        )
        report = create(db, test_org, test_user, columns=["status", "custom_region"])
        assert report.columns == ["status", "custom_region"]


# =============================================================================
# Tenant isolation
# =============================================================================


class TestTenantIsolation:
    def test_other_tenant_cannot_see_or_touch(self, db, test_org, test_user, org_factory, user_factory):
        report = create(db, test_org, test_user, visibility="EVERYONE")
        other_org = org_factory()
        outsider = user_factory(other_org, Role.SYSTEM_ADMIN)

        assert report_service.get_report(db, other_org.id, report.id) is None
        items, total = report_service.list_reports(db, other_org.id, outsider.id, PAGE)
        assert items == [] and total == 0

        with pytest.raises(ReportNotFoundError):
            report_service.update_report(
                db, other_org.id, outsider.id, Role.SYSTEM_ADMIN, report.id, ReportUpdate(name="x")
            )
        with pytest.raises(ReportNotFoundError):
            report_service.delete_report(db, other_org.id, outsider.id, Role.SYSTEM_ADMIN, report.id)
        with pytest.raises(ReportNotFoundError):
            report_service.duplicate_report(db, other_org.id, outsider.id, report.id)
        with pytest.raises(ReportNotFoundError):
            report_service.toggle_favorite(db, other_org.id, report.id)

        db.refresh(report)
        assert report.name == "Open cases"
        assert report.is_favorite is False


# =============================================================================
# Listing
# =============================================================================


class TestList:
    @pytest.fixture
    def reports(self, db, test_org, test_user, user_factory):
        colleague = user_factory(test_org, display_name="Colleague")
        return {
            "mine_private": create(db, test_org, test_user, name="Mine private"),
            "mine_team": create(db, test_org, test_user, name="Mine team", visibility="TEAM"),
            "theirs_private": create(db, test_org, colleague, name="Theirs private"),
            "theirs_everyone": create(
                db, test_org, colleague, name="Theirs everyone", visibility="EVERYONE",
                description="Quarterly escalations",
            ),
            "theirs_template": create(
                db, test_org, colleague, name="Theirs template", visibility="TEAM",
                is_template=True, template_category="compliance",
            ),
        }

    def names(self, items):
        return {r.name for r in items}

    def test_default_listing(self, db, test_org, test_user, reports):
        items, total = report_service.list_reports(db, test_org.id, test_user.id, PAGE)
        assert total == 4
        assert self.names(items) == {
            "Mine private", "Mine team", "Theirs everyone", "Theirs template",
        }

    def test_private_only_own(self, db, test_org, test_user, reports):
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, visibility=ReportVisibility.PRIVATE
        )
        assert self.names(items) == {"Mine private"}

    def test_team_exact(self, db, test_org, test_user, reports):
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, visibility=ReportVisibility.TEAM
        )
        assert self.names(items) == {"Mine team", "Theirs template"}

    def test_template_filter(self, db, test_org, test_user, reports):
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, is_template=True
        )
        assert self.names(items) == {"Theirs template"}

    def test_search_narrows_explicit_visibility(self, db, test_org, test_user, reports):
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE,
            visibility=ReportVisibility.EVERYONE, search="escalation",
        )
        assert self.names(items) == {"Theirs everyone"}

    def test_search_widens_default_listing(self, db, test_org, test_user, reports):
        # search joins the default OR-list, so a colleague's private match is included
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, search="theirs private"
        )
        assert "Theirs private" in self.names(items)

    @pytest.mark.parametrize("term", ["_", "%", "Theirs%private", "Theirs_private"])
    def test_search_wildcards_match_literally(self, db, test_org, test_user, reports, term):
        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, search=term
        )
        assert "Theirs private" not in self.names(items)

    def test_search_matches_wildcard_characters_in_names(
        self, db, test_org, test_user, user_factory
    ):
        colleague = user_factory(test_org, display_name="Colleague")
        create(db, test_org, colleague, name="Q3_bonus 100%")
        create(db, test_org, colleague, name="Q3 bonus 100")

        items, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PAGE, search="3_bonus 100%"
        )
        assert self.names(items) == {"Q3_bonus 100%"}

    def test_pagination(self, db, test_org, test_user, reports):
        first, total = report_service.list_reports(
            db, test_org.id, test_user.id, PaginationParams(page=1, page_size=3)
        )
        second, _ = report_service.list_reports(
            db, test_org.id, test_user.id, PaginationParams(page=2, page_size=3)
        )
        assert total == 4
        assert len(first) == 3 and len(second) == 1
        assert not self.names(first) & self.names(second)

    def test_templates(self, db, test_org, reports):
        templates = report_service.list_templates(db, test_org.id)
        assert [t.name for t in templates] == ["Theirs template"]


# =============================================================================
# Update / delete / ownership boundary
# =============================================================================


class TestOwnership:
    def test_owner_updates_with_audit_diff(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        updated = report_service.update_report(
            db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, report.id,
            ReportUpdate(name="Renamed", visibility=ReportVisibility.TEAM),
        )
        assert updated.name == "Renamed"
        assert updated.visibility == "TEAM"

        events = audit_events(db, test_org.id, AuditEventType.REPORT_UPDATED)
        assert events[0].details["changes"]["name"] == {"old": "Open cases", "new": "Renamed"}
        assert events[0].details["changes"]["visibility"] == {"old": "PRIVATE", "new": "TEAM"}

    def test_update_leaves_absent_fields_untouched(self, db, test_org, test_user):
        report = create(db, test_org, test_user, description="keep me")
        updated = report_service.update_report(
            db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, report.id,
            ReportUpdate(name="Renamed"),
        )
        assert updated.description == "keep me"
        assert updated.filters == STATUS_FILTER

    def test_null_does_not_clear_required_fields(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        updated = report_service.update_report(
            db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, report.id,
            ReportUpdate(name=None, columns=None, sort_by=None),
        )
        assert updated.name == "Open cases"
        assert updated.columns == ["referenceNumber", "status", "createdAt"]

    def test_update_validates_new_columns(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        with pytest.raises(ReportValidationError):
            report_service.update_report(
                db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, report.id,
                ReportUpdate(columns=["nope"]),
            )

    def test_non_owner_rejected(self, db, test_org, test_user, user_factory):
        report = create(db, test_org, test_user)
        colleague = user_factory(test_org, Role.POLICY_AUTHOR)
        with pytest.raises(ReportPermissionError):
            report_service.update_report(
                db, test_org.id, colleague.id, Role.POLICY_AUTHOR, report.id,
                ReportUpdate(name="Hijacked"),
            )
        with pytest.raises(ReportPermissionError):
            report_service.delete_report(
                db, test_org.id, colleague.id, Role.COMPLIANCE_OFFICER, report.id
            )
        db.refresh(report)
        assert report.name == "Open cases"

    def test_admin_may_modify_any(self, db, test_org, test_user, user_factory):
        report = create(db, test_org, test_user)
        admin = user_factory(test_org, Role.SYSTEM_ADMIN)
        updated = report_service.update_report(
            db, test_org.id, admin.id, Role.SYSTEM_ADMIN, report.id, ReportUpdate(name="By admin")
        )
        assert updated.name == "By admin"
        report_service.delete_report(db, test_org.id, admin.id, Role.SYSTEM_ADMIN, report.id)
        assert report_service.get_report(db, test_org.id, report.id) is None

    def test_delete_audited(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        report_service.delete_report(
            db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, report.id
        )
        events = audit_events(db, test_org.id, AuditEventType.REPORT_DELETED)
        assert events[0].target_id == report.id


# =============================================================================
# Duplicate / favorite / export
# =============================================================================


class TestDuplicate:
    def test_copy_law(self, db, test_org, test_user, user_factory):
        owner = user_factory(test_org, display_name="Owner")
        source = create(
            db, test_org, owner, visibility="EVERYONE", is_template=True,
            template_category="compliance", group_by=["status"],
            aggregation=[{"field": "status", "function": "count"}],
        )
        report_service.toggle_favorite(db, test_org.id, source.id)

        copy = report_service.duplicate_report(db, test_org.id, test_user.id, source.id)

        assert copy.id != source.id
        assert copy.name == "Open cases (Copy)"
        assert copy.created_by_user_id == test_user.id
        assert copy.visibility == "PRIVATE"
        assert copy.is_template is False
        assert copy.template_category is None
        assert copy.is_favorite is False
        assert copy.last_run_at is None
        assert copy.scheduled_export_id is None
        assert copy.columns == source.columns
        assert copy.filters == source.filters
        assert copy.group_by == source.group_by
        assert copy.aggregation == source.aggregation

    def test_copy_is_independent(self, db, test_org, test_user):
        source = create(db, test_org, test_user)
        copy = report_service.duplicate_report(db, test_org.id, test_user.id, source.id)
        report_service.update_report(
            db, test_org.id, test_user.id, Role.COMPLIANCE_OFFICER, copy.id,
            ReportUpdate(columns=["status"]),
        )
        db.refresh(source)
        assert source.columns == ["referenceNumber", "status", "createdAt"]


class TestFavorite:
    def test_toggle_pairs(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        assert report_service.toggle_favorite(db, test_org.id, report.id) is True
        assert report_service.toggle_favorite(db, test_org.id, report.id) is False
        db.refresh(report)
        assert report.is_favorite is False


class TestExport:
    def test_acknowledged(self, db, test_org, test_user):
        report = create(db, test_org, test_user)
        result = report_service.request_export(db, test_org.id, test_user.id, report.id, "CSV")
        assert result["status"] == "PENDING"
        assert result["job_id"].startswith(f"export-{report.id}-")
        assert result["download_url"] is None
        assert audit_events(db, test_org.id, AuditEventType.REPORT_EXPORT_REQUESTED)

    def test_missing_report(self, db, test_org, test_user):
        import uuid

        with pytest.raises(ReportNotFoundError):
            report_service.request_export(db, test_org.id, test_user.id, uuid.uuid4(), "CSV")
