from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from apps.api.deps import get_current_user, get_db, get_settings
from domain.models import AdminStats, UserStats
from services.stats.aggregator import StatisticsAggregator
from services.workflow.permissions import Capability, check

router = APIRouter(tags=["stats"])


@router.get("/stats", response_model=Union[AdminStats, UserStats])
def get_stats(
    user=Depends(get_current_user),
    db: Session = Depends(get_db),
    cfg=Depends(get_settings),
):
    aggregator = StatisticsAggregator(db, cfg)
    if check(user, Capability.REVIEW_APPLICATIONS):
        return aggregator.for_administrator()
    return aggregator.for_user(user.id)
