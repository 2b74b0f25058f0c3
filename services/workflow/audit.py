from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from services.persistence.repositories import AuditRepository
from services.persistence.tables import AuditEvent, User
from services.workflow.permissions import Capability, check, require

logger = logging.getLogger(__name__)


class AuditTrail:
    def __init__(self, session: Session):
        self.repo = AuditRepository(session)

    def record(
        self, application_id: str, actor: User | str, action: str, payload: dict[str, Any] | None = None
    ) -> AuditEvent:
        actor_id = actor if isinstance(actor, str) else actor.id
        logger.info("audit %s application=%s actor=%s", action, application_id, actor_id)
        return self.repo.add(application_id, actor_id, action, payload)

    def history(self, application_id: str, caller: User) -> list[AuditEvent]:
        require(check(caller, Capability.REVIEW_APPLICATIONS))
        return self.repo.list_for_application(application_id)
