from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tasksetu.config import settings
from tasksetu.errors import install_error_handlers
from tasksetu.logging_setup import setup_logging
from tasksetu.routes.activities import router as activities_router
from tasksetu.routes.auth import router as auth_router
from tasksetu.routes.calendar import router as calendar_router
from tasksetu.routes.comments import router as comments_router
from tasksetu.routes.dashboard import router as dashboard_router
from tasksetu.routes.email import router as email_router
from tasksetu.routes.forms import router as forms_router
from tasksetu.routes.health import router as health_router
from tasksetu.routes.licenses import router as licenses_router
from tasksetu.routes.milestones import router as milestones_router
from tasksetu.routes.org_users import router as org_users_router
from tasksetu.routes.organizations import router as organizations_router
from tasksetu.routes.quick_tasks import router as quick_tasks_router
from tasksetu.routes.rbac import router as rbac_router
from tasksetu.routes.task_actions import router as task_actions_router
from tasksetu.routes.tasks import router as tasks_router
from tasksetu.routes.webhooks import router as webhooks_router

API_ROUTERS = (
    auth_router,
    organizations_router,
    org_users_router,
    rbac_router,
    tasks_router,
    task_actions_router,
    activities_router,
    comments_router,
    milestones_router,
    quick_tasks_router,
    forms_router,
    email_router,
    calendar_router,
    licenses_router,
    dashboard_router,
)

def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="tasksetu-api", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(health_router)
    app.include_router(webhooks_router)
    for router in API_ROUTERS:
        app.include_router(router, prefix="/api")
    return app

app = create_app()
