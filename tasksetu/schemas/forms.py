import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from tasksetu.models.enums import FormResponseStatus
from tasksetu.schemas.common import Title

class FormSettings(BaseModel):
    allow_anonymous: bool = False
    max_submissions: int | None = Field(default=None, ge=1)
    submit_message: str = Field(default="Thank you for your submission.", max_length=500)
    redirect_url: HttpUrl | None = None

class FormCreateIn(BaseModel):
    title: Title
    description: str | None = Field(default=None, max_length=2000)
    fields: list[dict] = Field(default_factory=list)
    settings: FormSettings = Field(default_factory=FormSettings)

class FormUpdateIn(BaseModel):
    title: Title | None = None
    description: str | None = Field(default=None, max_length=2000)
    fields: list[dict] | None = None
    settings: FormSettings | None = None

class FormOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    org_id: uuid.UUID
    title: str
    description: str | None
    fields: list[dict]
    settings: dict
    is_published: bool
    access_link: str | None
    published_at: datetime | None
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime

class PublicFormOut(BaseModel):
    title: str
    description: str | None
    fields: list[dict]
    allow_anonymous: bool

class SubmitIn(BaseModel):
    values: dict = Field(default_factory=dict)

class SubmitOut(BaseModel):
    id: uuid.UUID
    message: str
    redirect_url: str | None = None

class FormResponseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    form_id: uuid.UUID
    submitted_by: uuid.UUID | None
    values: dict
    status: FormResponseStatus
    submitted_at: datetime
