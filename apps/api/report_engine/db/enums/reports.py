"""Saved report enums."""

from enum import Enum


class ReportEntityType(str, Enum):
    """Record kinds a report can be built on."""

    CASES = "cases"
    RIUS = "rius"
    PERSONS = "persons"
    CAMPAIGNS = "campaigns"
    POLICIES = "policies"
    DISCLOSURES = "disclosures"
    INVESTIGATIONS = "investigations"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class ReportVisibility(str, Enum):
    """Who besides the creator can see a report."""

    PRIVATE = "PRIVATE"
    TEAM = "TEAM"
    EVERYONE = "EVERYONE"


class ReportVisualization(str, Enum):
    TABLE = "table"
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    KPI = "kpi"
    FUNNEL = "funnel"
    STACKED_BAR = "stacked_bar"


class TemplateCategory(str, Enum):
    COMPLIANCE = "compliance"
    OPERATIONS = "operations"
    EXECUTIVE = "executive"
    INVESTIGATIONS = "investigations"
    HR = "hr"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ReportFieldType(str, Enum):
    """Value type of a reportable field."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    ENUM = "enum"
    UUID = "uuid"


class AggregationFunction(str, Enum):
    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"


class FilterLogic(str, Enum):
    AND = "AND"
    OR = "OR"


class FilterOperator(str, Enum):
    """Comparison operators understood by the report executor."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    IN = "in"
    NOT_IN = "notIn"
    IS_NULL = "isNull"
    IS_NOT_NULL = "isNotNull"
    BETWEEN = "between"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_
