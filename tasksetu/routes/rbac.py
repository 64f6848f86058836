from fastapi import APIRouter, Depends, Query

from tasksetu.models.enums import Role
from tasksetu.rbac.deps import OrgContext, get_user_context
from tasksetu.rbac.perms import (
    allowed_routes,
    can_access_route,
    can_assign_to_others,
    can_manage_visibility,
    permissions_for,
    redirect_path,
    role_level,
)
from tasksetu.schemas.rbac import RbacMeOut, RoleOut, RouteCheckOut

router = APIRouter(prefix="/rbac", tags=["rbac"])

@router.get("/me", response_model=RbacMeOut)
def rbac_me(ctx: OrgContext = Depends(get_user_context)) -> RbacMeOut:
    return RbacMeOut(
        role=ctx.role,
        level=role_level(ctx.role),
        permissions=permissions_for(ctx.role),
        allowed_routes=allowed_routes(ctx.role),
        redirect_path=redirect_path(ctx.role),
        can_assign_to_others=can_assign_to_others(ctx.role),
        can_manage_visibility=can_manage_visibility(ctx.role),
    )

@router.get("/check-route", response_model=RouteCheckOut)
def check_route(
    route: str = Query(min_length=1),
    ctx: OrgContext = Depends(get_user_context),
) -> RouteCheckOut:
    return RouteCheckOut(route=route, allowed=can_access_route(ctx.role, route))

@router.get("/roles", response_model=list[RoleOut])
def list_roles(_: OrgContext = Depends(get_user_context)) -> list[RoleOut]:
    return [RoleOut(role=r, level=role_level(r), permissions=permissions_for(r)) for r in Role]
