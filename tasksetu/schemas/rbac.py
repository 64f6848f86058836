from pydantic import BaseModel

from tasksetu.models.enums import Role

class RbacMeOut(BaseModel):
    role: Role
    level: int
    permissions: list[str]
    allowed_routes: list[str]
    redirect_path: str
    can_assign_to_others: bool
    can_manage_visibility: bool

class RouteCheckOut(BaseModel):
    route: str
    allowed: bool

class RoleOut(BaseModel):
    role: Role
    level: int
    permissions: list[str]
