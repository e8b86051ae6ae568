"""Custom property enums."""

from enum import Enum


class CustomFieldEntityType(str, Enum):
    """Record kinds that support tenant-defined custom properties."""

    CASE = "CASE"
    INVESTIGATION = "INVESTIGATION"
    PERSON = "PERSON"
    RIU = "RIU"


class CustomFieldDataType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    DATE = "DATE"
    DATETIME = "DATETIME"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"
    BOOLEAN = "BOOLEAN"
    URL = "URL"
    EMAIL = "EMAIL"
    PHONE = "PHONE"
