from pydantic import BaseModel

from tasksetu.schemas.tasks import ActivityOut

class DashboardStatsOut(BaseModel):
    total: int
    completed: int
    in_progress: int
    overdue: int
    upcoming: int
    by_priority: dict[str, int]
    by_status: dict[str, int]
    recent_activity: list[ActivityOut]
