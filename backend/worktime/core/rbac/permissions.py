"""
Permission strings stored on roles.

A user's effective permissions are those of its role; superadmins hold all
of them implicitly.
"""

USER_READ = "user:read"
USER_MANAGE = "user:manage"
USER_CREATE = "user:create"
USER_DELETE = "user:delete"

COMPANY_READ = "company:read"
COMPANY_MANAGE = "company:manage"

PROCESS_READ = "process:read"
PROCESS_MANAGE = "process:manage"
PROCESS_CREATE = "process:create"
PROCESS_DELETE = "process:delete"

ROLE_MANAGE = "role:manage"

TIME_RECORD = "time_record"
REPORTS = "reports"
HISTORY = "history"
SUPERVISOR_REVIEW = "supervisor_review"
MANAGER_REVIEW = "manager_review"

ALL_PERMISSIONS: frozenset[str] = frozenset({
    USER_READ, USER_MANAGE, USER_CREATE, USER_DELETE,
    COMPANY_READ, COMPANY_MANAGE,
    PROCESS_READ, PROCESS_MANAGE, PROCESS_CREATE, PROCESS_DELETE,
    ROLE_MANAGE,
    TIME_RECORD, REPORTS, HISTORY, SUPERVISOR_REVIEW, MANAGER_REVIEW,
})

PERMISSION_GROUPS: dict[str, list[str]] = {
    "user_management": [USER_READ, USER_MANAGE, USER_CREATE, USER_DELETE],
    "company_management": [COMPANY_READ, COMPANY_MANAGE],
    "process_management": [PROCESS_READ, PROCESS_MANAGE, PROCESS_CREATE, PROCESS_DELETE],
    "system_management": [ROLE_MANAGE],
}

# Role codes; the approval chain only knows supervisor and section_chief
ROLE_EMPLOYEE = "employee"
ROLE_SUPERVISOR = "supervisor"
ROLE_SECTION_CHIEF = "section_chief"
ROLE_ADMIN = "admin"
ROLE_CODES = (ROLE_EMPLOYEE, ROLE_SUPERVISOR, ROLE_SECTION_CHIEF, ROLE_ADMIN)
APPROVER_ROLES = (ROLE_SUPERVISOR, ROLE_SECTION_CHIEF)

DEFAULT_ROLE_PERMISSIONS: dict[str, list[str]] = {
    ROLE_EMPLOYEE: [TIME_RECORD, HISTORY],
    ROLE_SUPERVISOR: [TIME_RECORD, HISTORY, SUPERVISOR_REVIEW, PROCESS_READ],
    ROLE_SECTION_CHIEF: [HISTORY, MANAGER_REVIEW, REPORTS, PROCESS_READ],
    ROLE_ADMIN: [
        USER_READ, USER_MANAGE, USER_CREATE, USER_DELETE,
        COMPANY_READ, COMPANY_MANAGE,
        PROCESS_READ, PROCESS_MANAGE, PROCESS_CREATE, PROCESS_DELETE,
        REPORTS, HISTORY,
    ],
}


def permissions_for(user) -> set[str]:
    if user is None:
        return set()
    if user.is_superadmin:
        return set(ALL_PERMISSIONS)
    role = getattr(user, "role", None)
    if role is None or not role.permissions:
        return set()
    return set(role.permissions)


def has_permission(user, permission: str) -> bool:
    return permission in permissions_for(user)


def has_any_permission(user, required: list[str]) -> bool:
    granted = permissions_for(user)
    return any(p in granted for p in required)
