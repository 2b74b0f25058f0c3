from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional, TypeVar

import pydantic
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import Settings, settings
from core.errors import NotFoundError, PermissionDeniedError, ValidationError
from domain.models import (
    ApplicationCreate,
    ApplicationStatus,
    ApplicationUpdate,
    utcnow,
)
from domain.value_objects import ReferenceNumber
from services.persistence.repositories import ApplicationRepository
from services.persistence.tables import Application, User
from services.workflow.audit import AuditTrail
from services.workflow.permissions import (
    Capability,
    check,
    check_application_access,
    is_administrator,
    require,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

MAX_REFERENCE_ATTEMPTS = 5
NOT_NULL_FIELDS = {
    "application_type",
    "number_of_workers",
    "number_of_certified_workers",
    "services_description",
}


def parse_input(model: type[M], data: Mapping[str, Any] | BaseModel) -> M:
    """Validate ``data`` against ``model``, translating pydantic errors into ours."""
    if isinstance(data, model):
        return data
    raw = data.model_dump(exclude_unset=True) if isinstance(data, BaseModel) else dict(data)
    try:
        return model.model_validate(raw)
    except pydantic.ValidationError as e:
        errors = {".".join(str(p) for p in err["loc"]) or "__root__": err["msg"] for err in e.errors()}
        raise ValidationError("invalid application data", errors) from e


def load_application(repo: ApplicationRepository, application_id: str, details: bool = False) -> Application:
    application = repo.get(application_id, details=details)
    if application is None:
        raise NotFoundError(f"application {application_id} not found")
    return application


class ApplicationManager:
    """Owns application records: creation, owner edits, reads and admin listing."""

    def __init__(self, session: Session, cfg: Settings = settings):
        self.session = session
        self.settings = cfg
        self.repo = ApplicationRepository(session)
        self.audit = AuditTrail(session)

    def _insert(self, build: Callable[[str], Application]) -> Application:
        for _ in range(MAX_REFERENCE_ATTEMPTS):
            ref = ReferenceNumber.generate().value
            if self.repo.reference_exists(ref):
                continue
            try:
                return self.repo.add(build(ref))
            except IntegrityError:
                # another insert took the same reference since the check
                self.session.rollback()
                logger.warning("reference number %s taken at insert, retrying", ref)
        raise RuntimeError("could not allocate a unique reference number")

    def create(self, data: Mapping[str, Any] | BaseModel, owner: User) -> Application:
        payload = parse_input(ApplicationCreate, data)
        fields = payload.model_dump(mode="json")
        owner_id = owner.id
        now = utcnow()
        application = self._insert(
            lambda ref: Application(
                reference_number=ref,
                user_id=owner_id,
                status=ApplicationStatus.DRAFT.value,
                created_at=now,
                updated_at=now,
                **fields,
            )
        )
        self.audit.record(
            application.id, owner, "created_application", {"reference_number": application.reference_number}
        )
        self.session.commit()
        logger.info("application %s created by %s", application.reference_number, owner.id)
        return application

    def update(self, application_id: str, data: Mapping[str, Any] | BaseModel, caller: User) -> Application:
        application = load_application(self.repo, application_id)
        require(check_application_access(caller, application))
        if (
            self.settings.OWNER_EDITS_DRAFT_ONLY
            and not is_administrator(caller)
            and application.status != ApplicationStatus.DRAFT.value
        ):
            raise PermissionDeniedError("application can only be edited while in draft")

        changes = parse_input(ApplicationUpdate, data).model_dump(mode="json", exclude_unset=True)
        nulls = sorted(k for k, v in changes.items() if v is None and k in NOT_NULL_FIELDS)
        if nulls:
            raise ValidationError(
                "required fields cannot be cleared", {k: "field is required" for k in nulls}
            )
        for field, value in changes.items():
            setattr(application, field, value)
        application.updated_at = utcnow()
        self.audit.record(application.id, caller, "updated_application", {"fields": sorted(changes)})
        self.session.commit()
        return application

    def get(self, application_id: str, caller: User) -> Application:
        application = load_application(self.repo, application_id, details=True)
        require(check_application_access(caller, application))
        return application

    def list_for_user(self, user_id: str) -> list[Application]:
        return self.repo.list(user_id=user_id)

    def list_all(self, filters: Optional[Mapping[str, Any]], caller: User) -> list[Application]:
        require(check(caller, Capability.VIEW_ALL_APPLICATIONS))
        filters = filters or {}
        status = filters.get("status")
        application_type = filters.get("application_type")
        search = (filters.get("search") or "").strip()
        return self.repo.list(
            status=getattr(status, "value", status) or None,
            application_type=getattr(application_type, "value", application_type) or None,
            search=search or None,
        )
