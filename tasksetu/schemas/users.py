import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from tasksetu.models.enums import Role, UserStatus

class InviteUserIn(BaseModel):
    email: EmailStr
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role: Role = Role.member
    department: str | None = Field(default=None, max_length=50)
    designation: str | None = Field(default=None, max_length=50)
    location: str | None = Field(default=None, max_length=50)

class InviteBatchIn(BaseModel):
    users: list[InviteUserIn] = Field(min_length=1, max_length=50)

class InviteResult(BaseModel):
    email: str
    status: str  # invited | existing | failed
    user_id: uuid.UUID | None = None
    reason: str | None = None

class InviteBatchOut(BaseModel):
    invited: int
    existing: int
    failed: int
    results: list[InviteResult]

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str | None
    last_name: str | None
    org_id: uuid.UUID | None
    role: Role
    status: UserStatus
    is_active: bool
    department: str | None
    designation: str | None
    location: str | None
    last_login_at: datetime | None
    created_at: datetime

class UserUpdateIn(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role: Role | None = None
    department: str | None = Field(default=None, max_length=50)
    designation: str | None = Field(default=None, max_length=50)
    location: str | None = Field(default=None, max_length=50)
