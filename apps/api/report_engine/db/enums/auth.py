"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Compliance platform roles.

    - SYSTEM_ADMIN: Organization administrator (may manage any report)
    - COMPLIANCE_OFFICER / CCO: Own the compliance program and its reporting
    - POLICY_AUTHOR: Authors policies and their reports
    - EMPLOYEE / READ_ONLY: Consume shared reports only
    """

    SYSTEM_ADMIN = "system_admin"
    CCO = "cco"
    COMPLIANCE_OFFICER = "compliance_officer"
    POLICY_AUTHOR = "policy_author"
    TRIAGE_LEAD = "triage_lead"
    INVESTIGATOR = "investigator"
    HR_PARTNER = "hr_partner"
    LEGAL_COUNSEL = "legal_counsel"
    DEPARTMENT_ADMIN = "department_admin"
    MANAGER = "manager"
    READ_ONLY = "read_only"
    EMPLOYEE = "employee"
    OPERATOR = "operator"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
