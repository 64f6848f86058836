"""
Minimal Google Calendar client: OAuth code exchange, token refresh and event insert.
"""

import logging
from datetime import datetime, timedelta

import requests

from tasksetu.config import settings
from tasksetu.models.enums import TaskPriority
from tasksetu.models.task import Task
from tasksetu.time_utils import as_utc, now_utc

logger = logging.getLogger(__name__)

# google calendar colorId per priority, 1 (blue) otherwise
PRIORITY_COLORS = {
    TaskPriority.low: "2",
    TaskPriority.medium: "5",
    TaskPriority.high: "6",
    TaskPriority.urgent: "11",
    TaskPriority.critical: "11",
}

class CalendarError(Exception):
    pass

def is_configured() -> bool:
    return bool(settings.google_client_id and settings.google_client_secret)

def _token_request(data: dict) -> dict:
    try:
        resp = requests.post(settings.google_token_url, data=data, timeout=settings.calendar_http_timeout)
    except requests.RequestException as e:
        raise CalendarError(f"token endpoint unreachable: {e}") from e
    if resp.status_code != 200:
        raise CalendarError(f"token endpoint returned {resp.status_code}")

    body = resp.json()
    if not body.get("access_token"):
        raise CalendarError("token response has no access_token")
    expires_in = int(body.get("expires_in") or 3600)
    return {
        "access_token": body["access_token"],
        "refresh_token": body.get("refresh_token"),
        "expires_at": now_utc() + timedelta(seconds=expires_in),
    }

def exchange_code(code: str) -> dict:
    return _token_request(
        {
            "code": code,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uri": settings.google_redirect_uri,
            "grant_type": "authorization_code",
        }
    )

def refresh_access_token(refresh_token: str) -> dict:
    return _token_request(
        {
            "refresh_token": refresh_token,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "grant_type": "refresh_token",
        }
    )

def build_event(task: Task, assignee_name: str | None = None, tz: str | None = None) -> dict:
    tz = tz or settings.calendar_timezone
    due = as_utc(task.due_date)
    day = due.date()

    event = {
        "summary": task.title,
        "description": (
            f"Task: {task.title}\n"
            f"Priority: {task.priority.value}\n"
            f"Assignee: {assignee_name or 'Unassigned'}\n"
            f"Status: {task.status.value}\n"
            f"Progress: {task.progress}%"
        ),
        "colorId": PRIORITY_COLORS.get(task.priority, "1"),
    }

    if task.due_time:
        start = datetime.combine(day, datetime.strptime(task.due_time, "%H:%M").time())
        end = start + timedelta(hours=1)
        event["start"] = {"dateTime": start.isoformat(), "timeZone": tz}
        event["end"] = {"dateTime": end.isoformat(), "timeZone": tz}
    else:
        # all-day events end on the following (exclusive) day
        event["start"] = {"date": day.isoformat(), "timeZone": tz}
        event["end"] = {"date": (day + timedelta(days=1)).isoformat(), "timeZone": tz}
    return event

def insert_event(access_token: str, event: dict, calendar_id: str = "primary") -> dict:
    url = f"{settings.google_calendar_api}/calendars/{calendar_id}/events"
    try:
        resp = requests.post(
            url,
            json=event,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=settings.calendar_http_timeout,
        )
    except requests.RequestException as e:
        raise CalendarError(f"calendar api unreachable: {e}") from e
    if resp.status_code not in (200, 201):
        raise CalendarError(f"calendar api returned {resp.status_code}")
    return resp.json()
