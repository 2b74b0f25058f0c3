from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi import status as http_status
from sqlalchemy.orm import Session

from apps.api.deps import get_current_user, get_db, get_settings
from domain.models import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationStatus,
    ApplicationType,
    ApplicationUpdate,
    AuditEventRead,
    StatusUpdate,
)
from services.workflow.applications import ApplicationManager
from services.workflow.audit import AuditTrail
from services.workflow.permissions import Capability, check
from services.workflow.review import ReviewWorkflow

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post("", response_model=ApplicationRead, status_code=http_status.HTTP_201_CREATED)
def create_application(
    payload: ApplicationCreate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    cfg=Depends(get_settings),
):
    return ApplicationManager(db, cfg).create(payload, user)


@router.get("", response_model=List[ApplicationRead])
def list_applications(
    status: Optional[ApplicationStatus] = None,
    application_type: Optional[ApplicationType] = None,
    search: Optional[str] = None,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    cfg=Depends(get_settings),
):
    """Administrators see everything (filterable); employers see their own."""
    manager = ApplicationManager(db, cfg)
    if check(user, Capability.VIEW_ALL_APPLICATIONS):
        filters = {"status": status, "application_type": application_type, "search": search}
        return manager.list_all(filters, user)
    return manager.list_for_user(user.id)


@router.get("/{application_id}", response_model=ApplicationRead)
def get_application(
    application_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    cfg=Depends(get_settings),
):
    return ApplicationManager(db, cfg).get(application_id, user)


@router.patch("/{application_id}", response_model=ApplicationRead)
def update_application(
    application_id: str,
    payload: ApplicationUpdate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    cfg=Depends(get_settings),
):
    return ApplicationManager(db, cfg).update(application_id, payload, user)


@router.post("/{application_id}/submit", response_model=ApplicationRead)
def submit_application(
    application_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReviewWorkflow(db).submit(application_id, user)


@router.patch("/{application_id}/status", response_model=ApplicationRead)
def update_application_status(
    application_id: str,
    payload: StatusUpdate,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ReviewWorkflow(db).update_status(
        application_id, payload.status, payload.review_comments, user
    )


@router.get("/{application_id}/audit", response_model=List[AuditEventRead])
def application_audit(
    application_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return AuditTrail(db).history(application_id, user)
