from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from domain.models import TriageChecklistData, utcnow
from services.persistence.repositories import ApplicationRepository, ChecklistRepository
from services.persistence.tables import TriageChecklist, User
from services.workflow.applications import load_application, parse_input
from services.workflow.audit import AuditTrail
from services.workflow.permissions import Capability, check, require

logger = logging.getLogger(__name__)


class TriageChecklistManager:
    """Administrator worksheet attached to one application. Never gates the workflow."""

    def __init__(self, session: Session):
        self.session = session
        self.applications = ApplicationRepository(session)
        self.repo = ChecklistRepository(session)
        self.audit = AuditTrail(session)

    def save(
        self, application_id: str, data: Mapping[str, Any] | BaseModel, caller: User
    ) -> TriageChecklist:
        require(check(caller, Capability.MANAGE_TRIAGE))
        application = load_application(self.applications, application_id)
        changes = parse_input(TriageChecklistData, data).model_dump(exclude_unset=True)

        checklist = self.repo.get_for_application(application.id)
        created = checklist is None
        if checklist is None:
            checklist = self.repo.add(TriageChecklist(application=application))
        for name, value in changes.items():
            setattr(checklist, name, value)
        checklist.updated_at = utcnow()

        self.audit.record(
            application.id,
            caller,
            "saved_triage_checklist",
            {"created": created, "fields": sorted(changes)},
        )
        self.session.commit()
        logger.info(
            "triage checklist %s for %s (%d fields)",
            "created" if created else "updated",
            application.reference_number,
            len(changes),
        )
        return checklist

    def get(self, application_id: str, caller: User) -> Optional[TriageChecklist]:
        """None means the application has not been triaged yet."""
        require(check(caller, Capability.MANAGE_TRIAGE))
        return self.repo.get_for_application(application_id)
