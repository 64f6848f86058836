from fastapi import APIRouter
from fastapi.responses import JSONResponse

from tasksetu.db import db_ping
from tasksetu.redis_client import redis_ping

router = APIRouter(tags=["health"])

@router.get("/health")
def health() -> dict:
    return {"status": "ok"}

# readiness check, 503 with details unless db + redis answer
@router.get("/ready")
def ready():
    checks = {"db": db_ping(), "redis": redis_ping()}
    ok = all(checks.values())
    return JSONResponse(
        status_code=200 if ok else 503,
        content={"status": "ok" if ok else "unready", "checks": checks},
    )
