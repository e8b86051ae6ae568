"""Static reportable fields for every report entity type.

Each row is built with ``_field(id, label, type, group, flags, ...)`` where
``flags`` lists the capabilities of the field:

    F  filterable
    S  sortable
    G  groupable
    A  aggregatable (numeric fields only)

``source_path`` defaults to the field id; fields resolved through a relation
carry the relation in ``join_path``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from report_engine.db.enums import ReportEntityType, ReportFieldType

STRING = ReportFieldType.STRING
NUMBER = ReportFieldType.NUMBER
DATE = ReportFieldType.DATE
DATETIME = ReportFieldType.DATETIME
BOOLEAN = ReportFieldType.BOOLEAN
ENUM = ReportFieldType.ENUM
UUID = ReportFieldType.UUID


@dataclass(frozen=True)
class FieldDefinition:
    """One reportable attribute of an entity type."""

    id: str
    label: str
    type: ReportFieldType
    group: str
    source_path: str
    filterable: bool = True
    sortable: bool = True
    groupable: bool = False
    aggregatable: bool = False
    enum_values: tuple[str, ...] | None = None
    is_computed: bool = False
    is_custom_property: bool = False
    join_path: str | None = None


def _field(
    id: str,
    label: str,
    type: ReportFieldType,
    group: str,
    flags: str,
    *,
    source_path: str | None = None,
    enum_values: tuple[str, ...] | None = None,
    join_path: str | None = None,
    is_computed: bool = False,
) -> FieldDefinition:
    return FieldDefinition(
        id=id,
        label=label,
        type=type,
        group=group,
        source_path=source_path or id,
        filterable="F" in flags,
        sortable="S" in flags,
        groupable="G" in flags,
        aggregatable="A" in flags,
        enum_values=enum_values,
        is_computed=is_computed,
        join_path=join_path,
    )


SEVERITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
REPORTER_TYPES = ("ANONYMOUS", "CONFIDENTIAL", "IDENTIFIED")


def _location_fields() -> tuple[FieldDefinition, ...]:
    return (
        _field("locationCity", "City", STRING, "Location", "FSG"),
        _field("locationState", "State/Province", STRING, "Location", "FSG"),
        _field("locationCountry", "Country", STRING, "Location", "FSG"),
    )


def _created_at() -> FieldDefinition:
    return _field("createdAt", "Created At", DATETIME, "Timestamps", "FSG")


def _updated_at() -> FieldDefinition:
    return _field("updatedAt", "Updated At", DATETIME, "Timestamps", "FS")


CASE_FIELDS = (
    # Case Details
    _field("id", "Case ID", UUID, "Case Details", "FS"),
    _field("referenceNumber", "Reference Number", STRING, "Case Details", "FS"),
    _field(
        "status", "Status", ENUM, "Case Details", "FSG",
        enum_values=("NEW", "IN_PROGRESS", "PENDING", "CLOSED", "MERGED"),
    ),
    _field(
        "outcome", "Outcome", ENUM, "Case Details", "FSG",
        enum_values=(
            "SUBSTANTIATED", "UNSUBSTANTIATED", "INCONCLUSIVE",
            "NO_ACTION_REQUIRED", "REFERRED",
        ),
    ),
    _field("pipelineStage", "Pipeline Stage", STRING, "Case Details", "FSG"),
    _field("severity", "Severity", ENUM, "Case Details", "FSG", enum_values=SEVERITIES),
    _field(
        "caseType", "Case Type", ENUM, "Case Details", "FSG",
        enum_values=("REPORT", "REQUEST_INFO", "QUESTION", "COMPLIMENT", "FOLLOW_UP"),
    ),
    _field(
        "sourceChannel", "Source Channel", ENUM, "Case Details", "FSG",
        enum_values=("PHONE", "WEB_FORM", "EMAIL", "CHATBOT", "PROXY", "IMPORTED"),
    ),
    _field("tags", "Tags", STRING, "Case Details", "F"),
    # Classification
    _field("primaryCategoryId", "Primary Category ID", UUID, "Classification", "FG"),
    _field(
        "primaryCategoryName", "Primary Category", STRING, "Classification", "FSG",
        source_path="primaryCategory.name", join_path="primaryCategory",
    ),
    _field("secondaryCategoryId", "Secondary Category ID", UUID, "Classification", "FG"),
    _field(
        "secondaryCategoryName", "Secondary Category", STRING, "Classification", "FSG",
        source_path="secondaryCategory.name", join_path="secondaryCategory",
    ),
    # Assignment
    _field("createdById", "Created By ID", UUID, "Assignment", "FG"),
    _field(
        "createdByName", "Created By", STRING, "Assignment", "FSG",
        source_path="createdBy.firstName", join_path="createdBy",
    ),
    _field("intakeOperatorId", "Intake Operator ID", UUID, "Assignment", "FG"),
    _field(
        "intakeOperatorName", "Intake Operator", STRING, "Assignment", "FSG",
        source_path="intakeOperator.firstName", join_path="intakeOperator",
    ),
    # Reporter
    _field("reporterType", "Reporter Type", ENUM, "Reporter", "FSG", enum_values=REPORTER_TYPES),
    _field("reporterAnonymous", "Is Anonymous", BOOLEAN, "Reporter", "FSG"),
    _field(
        "reporterRelationship", "Reporter Relationship", ENUM, "Reporter", "FSG",
        enum_values=(
            "EMPLOYEE", "FORMER_EMPLOYEE", "CONTRACTOR", "VENDOR", "CUSTOMER", "OTHER",
        ),
    ),
    *_location_fields(),
    # Timestamps
    _created_at(),
    _updated_at(),
    _field("intakeTimestamp", "Intake Time", DATETIME, "Timestamps", "FSG"),
    _field("outcomeAt", "Outcome At", DATETIME, "Timestamps", "FSG"),
    _field("releasedAt", "Released At", DATETIME, "Timestamps", "FSG"),
    # Metrics
    _field("daysOpen", "Days Open", NUMBER, "Metrics", "FSA", is_computed=True),
    # AI
    _field("aiSummary", "AI Summary", STRING, "AI", ""),
    _field("aiConfidenceScore", "AI Confidence", NUMBER, "AI", "FSA"),
)

RIU_FIELDS = (
    _field("id", "RIU ID", UUID, "RIU Details", "FS"),
    _field("referenceNumber", "Reference Number", STRING, "RIU Details", "FS"),
    _field(
        "type", "RIU Type", ENUM, "RIU Details", "FSG",
        enum_values=(
            "HOTLINE_REPORT", "WEB_FORM_SUBMISSION", "DISCLOSURE_RESPONSE",
            "EMAIL_INTAKE", "CHATBOT_TRANSCRIPT",
        ),
    ),
    _field(
        "status", "Status", ENUM, "RIU Details", "FSG",
        enum_values=("PENDING_QA", "IN_QA", "RELEASED", "REJECTED"),
    ),
    _field("severity", "Severity", ENUM, "RIU Details", "FSG", enum_values=SEVERITIES),
    _field(
        "sourceChannel", "Source Channel", ENUM, "Source", "FSG",
        enum_values=("PHONE", "WEB_FORM", "EMAIL", "CHATBOT", "PROXY"),
    ),
    _field("campaignId", "Campaign ID", UUID, "Source", "FG"),
    _field("categoryId", "Category ID", UUID, "Classification", "FG"),
    _field(
        "categoryName", "Category", STRING, "Classification", "FSG",
        source_path="category.name", join_path="category",
    ),
    _field("reporterType", "Reporter Type", ENUM, "Reporter", "FSG", enum_values=REPORTER_TYPES),
    *_location_fields(),
    _created_at(),
    _field("aiSummary", "AI Summary", STRING, "AI", ""),
    _field("aiRiskScore", "AI Risk Score", NUMBER, "AI", "FSA"),
    _field("aiLanguageDetected", "Language Detected", STRING, "AI", "FSG"),
)

PERSON_FIELDS = (
    _field("id", "Person ID", UUID, "Person Details", "FS"),
    _field(
        "type", "Person Type", ENUM, "Person Details", "FSG",
        enum_values=("EMPLOYEE", "SUBJECT", "WITNESS", "EXTERNAL_CONTACT", "UNKNOWN"),
    ),
    _field(
        "source", "Source", ENUM, "Person Details", "FSG",
        enum_values=("HRIS", "MANUAL", "INTAKE", "DISCLOSURE"),
    ),
    _field(
        "status", "Status", ENUM, "Person Details", "FSG",
        enum_values=("ACTIVE", "INACTIVE", "TERMINATED", "MERGED"),
    ),
    _field("employeeId", "Employee ID", STRING, "Employment", "FS"),
    _field("jobTitle", "Job Title", STRING, "Employment", "FSG"),
    _field("employmentStatus", "Employment Status", STRING, "Employment", "FSG"),
    _field("businessUnitId", "Business Unit ID", UUID, "Organization", "FG"),
    _field("businessUnitName", "Business Unit", STRING, "Organization", "FSG"),
    _field("locationId", "Location ID", UUID, "Organization", "FG"),
    _field("locationName", "Location", STRING, "Organization", "FSG"),
    _field("managerId", "Manager ID", UUID, "Organization", "FG"),
    _field("managerName", "Manager", STRING, "Organization", "FSG"),
    _created_at(),
    _updated_at(),
)

CAMPAIGN_FIELDS = (
    _field("id", "Campaign ID", UUID, "Campaign Details", "FS"),
    _field("name", "Name", STRING, "Campaign Details", "FS"),
    _field(
        "type", "Campaign Type", ENUM, "Campaign Details", "FSG",
        enum_values=("DISCLOSURE", "ATTESTATION", "SURVEY"),
    ),
    _field(
        "status", "Status", ENUM, "Campaign Details", "FSG",
        enum_values=("DRAFT", "SCHEDULED", "ACTIVE", "PAUSED", "COMPLETED", "CANCELLED"),
    ),
    _field("version", "Version", NUMBER, "Campaign Details", "FS"),
    _field("launchAt", "Scheduled Launch", DATETIME, "Schedule", "FSG"),
    _field("launchedAt", "Actual Launch", DATETIME, "Schedule", "FSG"),
    _field("dueDate", "Due Date", DATETIME, "Schedule", "FSG"),
    _field("expiresAt", "Expiration", DATETIME, "Schedule", "FS"),
    _field(
        "audienceMode", "Audience Mode", ENUM, "Audience", "FSG",
        enum_values=("ALL", "SEGMENT", "MANUAL"),
    ),
    _field("totalAssignments", "Total Assignments", NUMBER, "Audience", "FSA"),
    _field("completedAssignments", "Completed", NUMBER, "Progress", "FSA"),
    _field("overdueAssignments", "Overdue", NUMBER, "Progress", "FSA"),
    _field("completionPercentage", "Completion %", NUMBER, "Progress", "FSA"),
    _created_at(),
    _updated_at(),
)

POLICY_FIELDS = (
    _field("id", "Policy ID", UUID, "Policy Details", "FS"),
    _field("title", "Title", STRING, "Policy Details", "FS"),
    _field("slug", "Slug", STRING, "Policy Details", "FS"),
    _field(
        "policyType", "Policy Type", ENUM, "Policy Details", "FSG",
        enum_values=("POLICY", "PROCEDURE", "GUIDELINE", "STANDARD"),
    ),
    _field("category", "Category", STRING, "Policy Details", "FSG"),
    _field(
        "status", "Status", ENUM, "Policy Details", "FSG",
        enum_values=("DRAFT", "PENDING_REVIEW", "APPROVED", "PUBLISHED", "RETIRED"),
    ),
    _field("currentVersion", "Current Version", NUMBER, "Version", "FS"),
    _field("ownerId", "Owner ID", UUID, "Ownership", "FG"),
    _field(
        "ownerName", "Owner", STRING, "Ownership", "FSG",
        source_path="owner.firstName", join_path="owner",
    ),
    _field("effectiveDate", "Effective Date", DATE, "Dates", "FSG"),
    _field("reviewDate", "Review Date", DATE, "Dates", "FSG"),
    _field("retiredAt", "Retired At", DATETIME, "Dates", "FS"),
    _created_at(),
    _updated_at(),
)

DISCLOSURE_FIELDS = (
    _field("id", "Disclosure ID", UUID, "Disclosure Details", "FS"),
    _field(
        "disclosureType", "Disclosure Type", ENUM, "Disclosure Details", "FSG",
        enum_values=(
            "CONFLICT_OF_INTEREST", "GIFT", "ENTERTAINMENT",
            "OUTSIDE_ACTIVITY", "FINANCIAL_INTEREST",
        ),
    ),
    _field(
        "status", "Status", ENUM, "Disclosure Details", "FSG",
        enum_values=(
            "DRAFT", "SUBMITTED", "UNDER_REVIEW", "APPROVED", "REJECTED", "REQUIRES_ACTION",
        ),
    ),
    _field("riskLevel", "Risk Level", ENUM, "Review", "FSG", enum_values=("LOW", "MEDIUM", "HIGH")),
    _field("reviewedAt", "Reviewed At", DATETIME, "Review", "FSG"),
    _field("submittedByEmployeeId", "Submitter Employee ID", UUID, "Submitter", "FG"),
    _field("submittedAt", "Submitted At", DATETIME, "Timestamps", "FSG"),
    _created_at(),
    _updated_at(),
)

INVESTIGATION_FIELDS = (
    _field("id", "Investigation ID", UUID, "Investigation Details", "FS"),
    _field("investigationNumber", "Investigation #", NUMBER, "Investigation Details", "FS"),
    _field("caseId", "Case ID", UUID, "Investigation Details", "FG"),
    _field(
        "investigationType", "Investigation Type", ENUM, "Investigation Details", "FSG",
        enum_values=("FULL", "PRELIMINARY", "EXPEDITED", "FOLLOW_UP"),
    ),
    _field(
        "status", "Status", ENUM, "Investigation Details", "FSG",
        enum_values=(
            "NEW", "IN_PROGRESS", "PENDING_REVIEW", "ON_HOLD", "COMPLETED", "CANCELLED",
        ),
    ),
    _field(
        "outcome", "Outcome", ENUM, "Investigation Details", "FSG",
        enum_values=(
            "SUBSTANTIATED", "UNSUBSTANTIATED", "INCONCLUSIVE",
            "PARTIALLY_SUBSTANTIATED", "REFERRED",
        ),
    ),
    _field("primaryInvestigatorId", "Primary Investigator ID", UUID, "Assignment", "FG"),
    _field(
        "primaryInvestigatorName", "Primary Investigator", STRING, "Assignment", "FSG",
        source_path="primaryInvestigator.firstName", join_path="primaryInvestigator",
    ),
    _field(
        "department", "Department", ENUM, "Assignment", "FSG",
        enum_values=("COMPLIANCE", "HR", "LEGAL", "INTERNAL_AUDIT", "SECURITY", "OTHER"),
    ),
    _field("dueDate", "Due Date", DATE, "Timeline", "FSG"),
    _field(
        "slaStatus", "SLA Status", ENUM, "Timeline", "FSG",
        enum_values=("ON_TRACK", "AT_RISK", "OVERDUE"),
    ),
    _field("closedAt", "Closed At", DATETIME, "Timeline", "FSG"),
    _created_at(),
    _updated_at(),
)

STATIC_FIELDS: Mapping[ReportEntityType, tuple[FieldDefinition, ...]] = MappingProxyType(
    {
        ReportEntityType.CASES: CASE_FIELDS,
        ReportEntityType.RIUS: RIU_FIELDS,
        ReportEntityType.PERSONS: PERSON_FIELDS,
        ReportEntityType.CAMPAIGNS: CAMPAIGN_FIELDS,
        ReportEntityType.POLICIES: POLICY_FIELDS,
        ReportEntityType.DISCLOSURES: DISCLOSURE_FIELDS,
        ReportEntityType.INVESTIGATIONS: INVESTIGATION_FIELDS,
    }
)

# Presentation order of field groups; groups not listed sort alphabetically after these.
GROUP_ORDER = (
    "Case Details",
    "RIU Details",
    "Person Details",
    "Campaign Details",
    "Policy Details",
    "Disclosure Details",
    "Investigation Details",
    "Classification",
    "Source",
    "Assignment",
    "Reporter",
    "Employment",
    "Organization",
    "Location",
    "Ownership",
    "Schedule",
    "Audience",
    "Progress",
    "Review",
    "Submitter",
    "Version",
    "Timeline",
    "Dates",
    "Timestamps",
    "Metrics",
    "AI",
    "Custom Properties",
)
