"""
Review workflow: the status state machine over ``Application.status``.

    draft --submit--> submitted ---> under_review
                          \\              /
                           +--> approved | rejected   (terminal)

Moving back to draft or submitted is not supported.

Owners submit drafts. Every other move is an administrator status update,
which also stamps ``reviewed_by`` / ``reviewed_at`` / ``review_comments``.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.errors import InvalidTransitionError
from domain.models import REVIEW_TARGETS, STATUS_TRANSITIONS, ApplicationStatus, utcnow
from services.persistence.repositories import ApplicationRepository
from services.persistence.tables import Application, User
from services.workflow.applications import load_application
from services.workflow.audit import AuditTrail
from services.workflow.permissions import (
    Capability,
    check,
    check_application_access,
    require,
)

logger = logging.getLogger(__name__)


def allowed_targets(status: ApplicationStatus | str) -> frozenset[ApplicationStatus]:
    return STATUS_TRANSITIONS[ApplicationStatus(status)]


def _parse_status(value: ApplicationStatus | str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        raise InvalidTransitionError(f"unknown status {value!r}") from None


class ReviewWorkflow:
    def __init__(self, session: Session):
        self.session = session
        self.repo = ApplicationRepository(session)
        self.audit = AuditTrail(session)

    def submit(self, application_id: str, caller: User) -> Application:
        application = load_application(self.repo, application_id)
        require(check_application_access(caller, application))
        current = ApplicationStatus(application.status)
        if ApplicationStatus.SUBMITTED not in allowed_targets(current):
            raise InvalidTransitionError(f"cannot submit an application in status {current.value}")

        application.status = ApplicationStatus.SUBMITTED.value
        application.updated_at = utcnow()
        self.audit.record(
            application.id, caller, "submitted_application", {"from": current.value, "to": "submitted"}
        )
        self.session.commit()
        logger.info("application %s submitted", application.reference_number)
        return application

    def update_status(
        self,
        application_id: str,
        new_status: ApplicationStatus | str,
        comments: Optional[str],
        reviewer: User,
    ) -> Application:
        require(check(reviewer, Capability.REVIEW_APPLICATIONS))
        application = load_application(self.repo, application_id)

        target = _parse_status(new_status)
        if target not in REVIEW_TARGETS:
            raise InvalidTransitionError(
                f"status can only be set to one of {sorted(s.value for s in REVIEW_TARGETS)}"
            )
        current = ApplicationStatus(application.status)
        if target not in allowed_targets(current):
            raise InvalidTransitionError(f"cannot move from {current.value} to {target.value}")

        now = utcnow()
        application.status = target.value
        application.review_comments = comments
        application.reviewer = reviewer
        application.reviewed_by = reviewer.id
        application.reviewed_at = now
        application.updated_at = now
        self.audit.record(
            application.id,
            reviewer,
            "status_changed",
            {"from": current.value, "to": target.value, "comments": comments},
        )
        self.session.commit()
        logger.info(
            "application %s moved %s -> %s by %s",
            application.reference_number,
            current.value,
            target.value,
            reviewer.id,
        )
        return application
