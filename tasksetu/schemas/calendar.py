import uuid
from datetime import datetime

from pydantic import BaseModel, Field

class CalendarConfigOut(BaseModel):
    configured: bool
    has_client_id: bool
    has_client_secret: bool
    redirect_uri: str

class CalendarAuthIn(BaseModel):
    code: str = Field(min_length=1)

class CalendarSyncIn(BaseModel):
    task_ids: list[uuid.UUID] | None = None

class CalendarSyncOut(BaseModel):
    synced: int
    failed: int
    skipped: int
    event_ids: list[str]

class CalendarStatusOut(BaseModel):
    connected: bool
    has_valid_tokens: bool
    expires_at: datetime | None
    last_synced_at: datetime | None
