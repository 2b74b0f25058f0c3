from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from services.persistence.tables import (
    Application,
    AuditEvent,
    Document,
    TriageChecklist,
    User,
)

_DETAIL_OPTIONS = (
    selectinload(Application.user),
    selectinload(Application.reviewer),
    selectinload(Application.documents),
    selectinload(Application.triaging_checklist),
)

# columns covered by the free-text search on the admin list
SEARCH_COLUMNS = (
    Application.reference_number,
    Application.owner_name,
    Application.owner_email,
    Application.owner_phone,
    Application.owner_business_address,
    Application.services_description,
)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def add(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user


class ApplicationRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, application: Application) -> Application:
        self.session.add(application)
        self.session.flush()
        return application

    def get(self, application_id: str, details: bool = False) -> Optional[Application]:
        stmt = select(Application).where(Application.id == application_id)
        if details:
            stmt = stmt.options(*_DETAIL_OPTIONS)
        return self.session.scalars(stmt).first()

    def reference_exists(self, reference_number: str) -> bool:
        stmt = select(Application.id).where(Application.reference_number == reference_number)
        return self.session.scalars(stmt).first() is not None

    def list(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        application_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Application]:
        stmt = select(Application).options(*_DETAIL_OPTIONS)
        if user_id:
            stmt = stmt.where(Application.user_id == user_id)
        if status:
            stmt = stmt.where(Application.status == status)
        if application_type:
            stmt = stmt.where(Application.application_type == application_type)
        if search:
            pattern = _like_pattern(search)
            stmt = stmt.where(or_(*(c.ilike(pattern, escape="\\") for c in SEARCH_COLUMNS)))
        stmt = stmt.order_by(Application.created_at.desc(), Application.reference_number.desc())
        return list(self.session.scalars(stmt).all())


class DocumentRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, document: Document) -> Document:
        self.session.add(document)
        self.session.flush()
        return document

    def get(self, document_id: str) -> Optional[Document]:
        stmt = (
            select(Document)
            .where(Document.id == document_id)
            .options(selectinload(Document.application))
        )
        return self.session.scalars(stmt).first()

    def delete(self, document: Document) -> None:
        self.session.delete(document)
        self.session.flush()


class ChecklistRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_for_application(self, application_id: str) -> Optional[TriageChecklist]:
        stmt = select(TriageChecklist).where(TriageChecklist.application_id == application_id)
        return self.session.scalars(stmt).first()

    def add(self, checklist: TriageChecklist) -> TriageChecklist:
        self.session.add(checklist)
        self.session.flush()
        return checklist


class AuditRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(
        self, application_id: str, actor: str, action: str, payload: dict[str, Any] | None = None
    ) -> AuditEvent:
        event = AuditEvent(application_id=application_id, actor=actor, action=action, payload=payload)
        self.session.add(event)
        return event

    def list_for_application(self, application_id: str) -> list[AuditEvent]:
        stmt = (
            select(AuditEvent)
            .where(AuditEvent.application_id == application_id)
            .order_by(AuditEvent.id.asc())
        )
        return list(self.session.scalars(stmt).all())
