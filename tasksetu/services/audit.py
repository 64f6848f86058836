import logging
import uuid

from sqlalchemy.orm import Session

from tasksetu.models.audit_log import AuditLog
from tasksetu.models.enums import AuditAction

logger = logging.getLogger(__name__)

def record(
    db: Session,
    *,
    action: AuditAction,
    user_id: uuid.UUID,
    description: str,
    org_id: uuid.UUID | None = None,
    task_id: uuid.UUID | None = None,
    old_value: dict | None = None,
    new_value: dict | None = None,
) -> AuditLog:
    # added to the caller's session, committed with the change it describes
    entry = AuditLog(
        org_id=org_id,
        task_id=task_id,
        user_id=user_id,
        action=action,
        description=description[:500],
        old_value=old_value,
        new_value=new_value,
    )
    db.add(entry)
    logger.debug("audit %s task=%s user=%s", action.value, task_id, user_id)
    return entry
