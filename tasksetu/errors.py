import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

def error_body(detail) -> dict:
    if isinstance(detail, dict):
        message = detail.get("message") or "request failed"
        body = {"success": False, "message": message, "detail": message}
        if "errors" in detail:
            body["errors"] = detail["errors"]
        return body
    return {"success": False, "message": str(detail), "detail": detail}

def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder(error_body(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in e.get("loc", ())[1:]) or None, "message": e.get("msg")}
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder(
                {"success": False, "message": "Validation error", "detail": "validation_error", "errors": errors}
            ),
        )

    @app.exception_handler(IntegrityError)
    async def _integrity_error(request: Request, exc: IntegrityError):
        logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(status_code=409, content=error_body("conflict"))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_body("internal_error"))

def bad_request(errors: list[str], message: str | None = None) -> HTTPException:
    """400 carrying every rule violation, not just the first."""
    return HTTPException(status_code=400, detail={"message": message or errors[0], "errors": errors})
