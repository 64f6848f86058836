from pydantic import BaseModel, Field

class EmailCheckOut(BaseModel):
    success: bool
    exists: bool
    message: str
    suggestion: str | None = None

class BulkEmailIn(BaseModel):
    emails: list[str] = Field(max_length=200)

class BulkEmailResult(BaseModel):
    email: str
    valid: bool
    exists: bool
    status: str  # registered | available | invalid

class BulkEmailOut(BaseModel):
    success: bool = True
    results: list[BulkEmailResult]

class EmailSuggestOut(BaseModel):
    success: bool = True
    available: str | None
    suggestions: list[str]
