import logging
import secrets
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from tasksetu.auth.deps import get_optional_user
from tasksetu.billing.gates import enforce_billing_writable, enforce_feature_limit
from tasksetu.config import settings
from tasksetu.db import get_db
from tasksetu.errors import bad_request
from tasksetu.models.form import Form, FormResponse
from tasksetu.models.user import User
from tasksetu.ratelimit import rate_limit
from tasksetu.rbac.deps import OrgContext, get_org_context, require_perm
from tasksetu.schemas.forms import (
    FormCreateIn,
    FormOut,
    FormResponseOut,
    FormSettings,
    FormUpdateIn,
    PublicFormOut,
    SubmitIn,
    SubmitOut,
)
from tasksetu.services.forms import FormDefinitionError, validate_definition, validate_submission
from tasksetu.time_utils import now_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["forms"])

def _definition(fields: list[dict]) -> list[dict]:
    try:
        return validate_definition(fields)
    except FormDefinitionError as e:
        raise bad_request([str(e)])

def _get(db: Session, ctx: OrgContext, form_id: uuid.UUID) -> Form:
    form = db.scalar(select(Form).where(Form.id == form_id, Form.org_id == ctx.org.id))
    if form is None:
        raise HTTPException(status_code=404, detail="form not found")
    return form

def _published(db: Session, access_link: str) -> Form:
    form = db.scalar(select(Form).where(Form.access_link == access_link, Form.is_published.is_(True)))
    if form is None:
        raise HTTPException(status_code=404, detail="form not found")
    return form

# public routes are declared before /{form_id}

@router.get("/public/{access_link}", response_model=PublicFormOut)
def get_public_form(access_link: str, db: Session = Depends(get_db)) -> PublicFormOut:
    form = _published(db, access_link)
    return PublicFormOut(
        title=form.title,
        description=form.description,
        fields=form.fields,
        allow_anonymous=FormSettings.model_validate(form.settings).allow_anonymous,
    )

@router.post(
    "/public/{access_link}/submit",
    response_model=SubmitOut,
    status_code=201,
    dependencies=[
        Depends(rate_limit("public_form_submit", settings.rate_limit_public_form_submit_per_min, 60))
    ],
)
def submit_public_form(
    access_link: str,
    payload: SubmitIn,
    user: User | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> SubmitOut:
    form = _published(db, access_link)
    form_settings = FormSettings.model_validate(form.settings)

    if user is None and not form_settings.allow_anonymous:
        raise HTTPException(status_code=401, detail="sign in to submit this form")

    if form_settings.max_submissions is not None:
        count = db.scalar(select(func.count()).where(FormResponse.form_id == form.id)) or 0
        if count >= form_settings.max_submissions:
            raise HTTPException(status_code=400, detail="form is no longer accepting submissions")

    values, errors = validate_submission(form.fields, payload.values)
    if errors:
        raise HTTPException(status_code=400, detail={"message": "Validation error", "errors": errors})

    resp = FormResponse(form_id=form.id, submitted_by=user.id if user is not None else None, values=values)
    db.add(resp)
    db.commit()
    db.refresh(resp)
    logger.info("form %s received response %s", form.id, resp.id)

    return SubmitOut(
        id=resp.id,
        message=form_settings.submit_message,
        redirect_url=str(form_settings.redirect_url) if form_settings.redirect_url else None,
    )

@router.post("", response_model=FormOut, status_code=201)
def create_form(
    payload: FormCreateIn,
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> FormOut:
    enforce_billing_writable(ctx.org)
    enforce_feature_limit(db, ctx.org, "FORM_CREATE")

    form = Form(
        org_id=ctx.org.id,
        title=payload.title,
        description=payload.description,
        fields=_definition(payload.fields),
        settings=payload.settings.model_dump(mode="json"),
        created_by=ctx.user.id,
    )
    db.add(form)
    db.commit()
    db.refresh(form)
    return FormOut.model_validate(form)

@router.get("", response_model=list[FormOut])
def list_forms(
    published: bool | None = None,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> list[FormOut]:
    q = select(Form).where(Form.org_id == ctx.org.id)
    if published is not None:
        q = q.where(Form.is_published.is_(published))
    rows = db.scalars(q.order_by(Form.created_at.desc(), Form.id)).all()
    return [FormOut.model_validate(f) for f in rows]

@router.get("/{form_id}", response_model=FormOut)
def get_form(
    form_id: uuid.UUID,
    ctx: OrgContext = Depends(get_org_context),
    db: Session = Depends(get_db),
) -> FormOut:
    return FormOut.model_validate(_get(db, ctx, form_id))

@router.put("/{form_id}", response_model=FormOut)
def update_form(
    form_id: uuid.UUID,
    payload: FormUpdateIn,
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> FormOut:
    form = _get(db, ctx, form_id)
    enforce_billing_writable(ctx.org)

    if payload.title is not None:
        form.title = payload.title
    if "description" in payload.model_fields_set:
        form.description = payload.description
    if payload.fields is not None:
        form.fields = _definition(payload.fields)
    if payload.settings is not None:
        form.settings = payload.settings.model_dump(mode="json")

    db.commit()
    db.refresh(form)
    return FormOut.model_validate(form)

@router.delete("/{form_id}")
def delete_form(
    form_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> dict:
    form = _get(db, ctx, form_id)
    db.execute(delete(FormResponse).where(FormResponse.form_id == form.id))
    db.delete(form)
    db.commit()
    logger.info("form %s deleted by %s", form_id, ctx.user.id)
    return {"deleted": True, "form_id": str(form_id)}

@router.post("/{form_id}/publish", response_model=FormOut)
def publish_form(
    form_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> FormOut:
    form = _get(db, ctx, form_id)
    enforce_billing_writable(ctx.org)
    if not form.fields:
        raise bad_request(["a form needs at least one field before publishing"])

    if form.access_link is None:
        form.access_link = secrets.token_urlsafe(16)
    form.is_published = True
    form.published_at = now_utc()
    db.commit()
    db.refresh(form)
    return FormOut.model_validate(form)

@router.post("/{form_id}/unpublish", response_model=FormOut)
def unpublish_form(
    form_id: uuid.UUID,
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> FormOut:
    form = _get(db, ctx, form_id)
    form.is_published = False
    db.commit()
    db.refresh(form)
    return FormOut.model_validate(form)

@router.get("/{form_id}/submissions", response_model=list[FormResponseOut])
def list_submissions(
    form_id: uuid.UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    ctx: OrgContext = Depends(require_perm("manage_organization")),
    db: Session = Depends(get_db),
) -> list[FormResponseOut]:
    form = _get(db, ctx, form_id)
    rows = db.scalars(
        select(FormResponse)
        .where(FormResponse.form_id == form.id)
        .order_by(FormResponse.submitted_at.desc(), FormResponse.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return [FormResponseOut.model_validate(r) for r in rows]
