import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr

from tasksetu.models.enums import Role, UserStatus

class RequestLinkIn(BaseModel):
    email: EmailStr

class RequestLinkOut(BaseModel):
    sent: bool = True
    token: str | None = None
    link: str | None = None

class RedeemIn(BaseModel):
    token: str

class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"

class MeOut(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str | None
    last_name: str | None
    org_id: uuid.UUID | None
    role: Role
    status: UserStatus
    permissions: list[str]
    redirect_path: str
    last_login_at: datetime | None
