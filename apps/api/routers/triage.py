from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from apps.api.deps import get_current_user, get_db
from domain.models import TriageChecklistData, TriageChecklistRead
from services.triage.checklist import TriageChecklistManager

router = APIRouter(tags=["triage"])


@router.post("/applications/{application_id}/triaging-checklist", response_model=TriageChecklistRead)
def save_checklist(
    application_id: str,
    payload: TriageChecklistData,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return TriageChecklistManager(db).save(application_id, payload, user)


@router.get("/triaging-checklist/{application_id}")
def get_checklist(
    application_id: str,
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Empty object until the application has been triaged."""
    checklist = TriageChecklistManager(db).get(application_id, user)
    if checklist is None:
        return {}
    return TriageChecklistRead.model_validate(checklist).model_dump(mode="json")
