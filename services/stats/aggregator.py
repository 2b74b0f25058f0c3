"""
Dashboard counters, recomputed on every call with one aggregate query each.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from core.config import Settings, settings
from domain.models import PENDING_STATUSES, AdminStats, ApplicationStatus, UserStats, utcnow
from services.observability.metrics import timing_metric
from services.persistence.tables import Application

_PENDING = [s.value for s in PENDING_STATUSES]


def _count_where(condition):
    return func.count(case((condition, 1)))


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class StatisticsAggregator:
    def __init__(self, session: Session, cfg: Settings = settings):
        self.session = session
        self.settings = cfg

    def for_user(self, user_id: str) -> UserStats:
        stmt = select(
            func.count(Application.id),
            _count_where(Application.status.in_(_PENDING)),
            _count_where(Application.status == ApplicationStatus.APPROVED.value),
            _count_where(Application.status == ApplicationStatus.REJECTED.value),
            _count_where(Application.status == ApplicationStatus.DRAFT.value),
        ).where(Application.user_id == user_id)
        with timing_metric("stats.for_user"):
            total, pending, approved, rejected, draft = self.session.execute(stmt).one()
        return UserStats(
            total=total, pending=pending, approved=approved, rejected=rejected, draft=draft
        )

    def for_administrator(self, now: Optional[datetime] = None) -> AdminStats:
        today = start_of_day(now or utcnow())
        overdue_before = today - timedelta(days=self.settings.OVERDUE_AFTER_DAYS)
        week_ago = today - timedelta(days=7)
        is_pending = Application.status.in_(_PENDING)

        stmt = select(
            _count_where(is_pending),
            _count_where(Application.reviewed_at >= today),
            _count_where(is_pending & (Application.created_at < overdue_before)),
            _count_where(Application.created_at >= week_ago),
        )
        with timing_metric("stats.for_administrator"):
            pending, processed_today, overdue, this_week = self.session.execute(stmt).one()
        return AdminStats(
            pending=pending,
            processed_today=processed_today,
            overdue=overdue,
            this_week=this_week,
        )
