from fastapi import APIRouter, Depends

from apps.api.deps import get_current_user
from domain.models import UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/user", response_model=UserRead)
def current_user(user=Depends(get_current_user)):
    return user
