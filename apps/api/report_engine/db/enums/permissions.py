"""Role permission helper sets."""

from report_engine.db.enums.auth import Role

# Roles that bypass report ownership checks (update/delete any report in the org)
ROLES_REPORT_ADMIN = {Role.SYSTEM_ADMIN}

# Roles that can create, update, duplicate and schedule reports
ROLES_CAN_MANAGE_REPORTS = {
    Role.SYSTEM_ADMIN,
    Role.COMPLIANCE_OFFICER,
    Role.POLICY_AUTHOR,
}

# Roles that can delete reports
ROLES_CAN_DELETE_REPORTS = {Role.SYSTEM_ADMIN, Role.COMPLIANCE_OFFICER}

# Roles that can generate reports from natural language
ROLES_CAN_GENERATE_REPORTS = {Role.SYSTEM_ADMIN, Role.COMPLIANCE_OFFICER}

# Roles that can manage custom property definitions
ROLES_CAN_MANAGE_SETTINGS = {Role.SYSTEM_ADMIN}
