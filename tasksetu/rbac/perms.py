from tasksetu.models.enums import Role

ROLE_LEVELS: dict[Role, int] = {
    Role.individual: 1,
    Role.member: 1,
    Role.employee: 2,
    Role.manager: 3,
    Role.admin: 4,
    Role.org_admin: 4,
    Role.super_admin: 5,
}

PERMISSIONS = (
    # tasks
    "create_task",
    "edit_own_task",
    "edit_any_task",
    "delete_task",
    "assign_task",
    "view_all_tasks",
    "manage_team_tasks",
    # users
    "view_users",
    "invite_users",
    "manage_users",
    "delete_users",
    # organization
    "manage_organization",
    "view_org_settings",
    "edit_org_settings",
    # reports
    "view_reports",
    "view_team_reports",
    "view_org_reports",
    # settings
    "manage_roles",
    "manage_billing",
    "manage_integrations",
    # system
    "manage_companies",
    "system_admin",
    "view_audit_logs",
)

_ADMIN_PERMS = frozenset(
    {
        "create_task",
        "edit_own_task",
        "edit_any_task",
        "delete_task",
        "assign_task",
        "view_all_tasks",
        "manage_team_tasks",
        "view_users",
        "invite_users",
        "manage_users",
        "manage_organization",
        "view_org_settings",
        "edit_org_settings",
        "view_reports",
        "view_team_reports",
        "view_org_reports",
        "manage_roles",
        "manage_billing",
        "manage_integrations",
    }
)

ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    # manage_billing covers the personal account
    Role.individual: frozenset({"create_task", "edit_own_task", "view_reports", "manage_billing"}),
    Role.member: frozenset({"create_task", "edit_own_task", "view_reports"}),
    Role.employee: frozenset({"create_task", "edit_own_task", "view_reports", "view_users"}),
    Role.manager: frozenset(
        {
            "create_task",
            "edit_own_task",
            "edit_any_task",
            "assign_task",
            "view_all_tasks",
            "manage_team_tasks",
            "view_reports",
            "view_team_reports",
            "view_users",
        }
    ),
    Role.admin: _ADMIN_PERMS,
    Role.org_admin: _ADMIN_PERMS,
    Role.super_admin: frozenset(PERMISSIONS),
}

# client route -> any-of permissions; an empty list means open to every role
ROUTE_PERMISSIONS: dict[str, list[str]] = {
    "/dashboard": [],
    "/admin-dashboard": ["manage_organization"],
    "/super-admin": ["system_admin"],
    "/tasks": [],
    "/tasks/create": ["create_task"],
    "/tasks/my": ["view_all_tasks"],
    "/tasks/team": ["manage_team_tasks"],
    "/tasks/company": ["view_org_reports"],
    "/calendar": [],
    "/milestones": ["manage_team_tasks"],
    "/approvals": ["manage_team_tasks"],
    "/admin/users": ["view_users"],
    "/admin/user-management": ["manage_users"],
    "/admin/team-members": ["view_users"],
    "/admin/invite-users": ["invite_users"],
    "/invite-users": ["invite_users"],
    "/admin/org-profile": ["manage_organization"],
    "/admin/settings": ["edit_org_settings"],
    "/admin/roles": ["manage_roles"],
    "/admin/plans": ["manage_billing"],
    "/admin/subscription": ["manage_billing"],
    "/plans-licenses": ["manage_billing"],
    "/reports": ["view_reports"],
    "/admin/reports": ["view_org_reports"],
    "/admin/analytics": ["view_org_reports"],
    "/super-admin/companies": ["manage_companies"],
    "/super-admin/users": ["system_admin"],
    "/super-admin/logs": ["view_audit_logs"],
    "/forms": ["manage_organization"],
    "/admin/form-builder": ["manage_organization"],
    "/admin/integrations": ["manage_integrations"],
    "/management/users": ["manage_users"],
    "/management/roles": ["manage_roles"],
    "/admin/status-management": ["manage_organization"],
    "/admin/priority-management": ["manage_organization"],
}

def normalize_role(role: Role | str | None) -> Role | None:
    if role is None:
        return None
    if isinstance(role, Role):
        return role
    try:
        return Role(role)
    except ValueError:
        return None

def role_level(role: Role | str | None) -> int:
    r = normalize_role(role)
    return ROLE_LEVELS.get(r, 0) if r is not None else 0

def has_permission(role: Role | str | None, permission: str) -> bool:
    r = normalize_role(role)
    if r is None:
        return False
    return permission in ROLE_PERMISSIONS.get(r, frozenset())

def has_role_level(role: Role | str | None, required: Role | str) -> bool:
    return role_level(role) >= role_level(required)

def _route_requirements(route: str) -> list[str] | None:
    if route in ROUTE_PERMISSIONS:
        return ROUTE_PERMISSIONS[route]

    # nested pages inherit from the longest registered prefix
    best = None
    for key in ROUTE_PERMISSIONS:
        if route.startswith(key + "/") and (best is None or len(key) > len(best)):
            best = key
    return ROUTE_PERMISSIONS[best] if best is not None else None

def can_access_route(role: Role | str | None, route: str) -> bool:
    required = _route_requirements(route)
    if not required:
        return True
    return any(has_permission(role, p) for p in required)

def allowed_routes(role: Role | str | None) -> list[str]:
    return [r for r in ROUTE_PERMISSIONS if can_access_route(role, r)]

def can_assign_to_others(role: Role | str | None) -> bool:
    return has_permission(role, "assign_task")

def can_manage_visibility(role: Role | str | None) -> bool:
    return has_role_level(role, Role.manager)

def redirect_path(role: Role | str | None) -> str:
    if has_role_level(role, Role.super_admin):
        return "/super-admin"
    if has_role_level(role, Role.admin):
        return "/admin-dashboard"
    return "/dashboard"

def permissions_for(role: Role | str | None) -> list[str]:
    r = normalize_role(role)
    if r is None:
        return []
    return sorted(ROLE_PERMISSIONS.get(r, frozenset()))

# roles an inviter may hand out
GRANTABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.super_admin: frozenset({Role.org_admin, Role.admin, Role.manager, Role.employee, Role.member}),
    Role.org_admin: frozenset({Role.admin, Role.manager, Role.employee, Role.member}),
    Role.admin: frozenset({Role.manager, Role.employee, Role.member}),
}
_DEFAULT_GRANTABLE = frozenset({Role.employee, Role.member})

def can_grant_role(inviter: Role | str | None, target: Role) -> bool:
    r = normalize_role(inviter)
    return target in GRANTABLE_ROLES.get(r, _DEFAULT_GRANTABLE)
