from datetime import datetime, timedelta

import pytest

from services.stats.aggregator import StatisticsAggregator


@pytest.fixture
def aggregator(session, cfg):
    return StatisticsAggregator(session, cfg)


def _with_status(make_application, session, owner, status, **fields):
    application = make_application(owner)
    application.status = status
    for k, v in fields.items():
        setattr(application, k, v)
    session.commit()
    return application


def test_for_user_counts_each_bucket(aggregator, make_application, session, employer):
    for status in ["draft", "submitted", "under_review", "approved", "rejected"]:
        _with_status(make_application, session, employer, status)

    stats = aggregator.for_user(employer.id)

    assert stats.model_dump() == {"total": 5, "pending": 2, "approved": 1, "rejected": 1, "draft": 1}


def test_for_user_only_counts_own(aggregator, make_application, employer, other_employer):
    make_application(employer)
    make_application(other_employer)
    make_application(other_employer)

    assert aggregator.for_user(employer.id).total == 1
    assert aggregator.for_user("nobody").total == 0


def test_for_administrator(aggregator, make_application, session, employer):
    now = datetime(2025, 3, 14, 15, 30)
    today = datetime(2025, 3, 14)

    # pending, recent
    _with_status(make_application, session, employer, "submitted", created_at=now - timedelta(days=1))
    # pending and overdue
    _with_status(make_application, session, employer, "under_review", created_at=today - timedelta(days=6))
    # pending, exactly at the overdue boundary: not overdue yet
    _with_status(make_application, session, employer, "submitted", created_at=today - timedelta(days=5))
    # approved today, created two weeks ago
    _with_status(
        make_application,
        session,
        employer,
        "approved",
        created_at=today - timedelta(days=14),
        reviewed_at=today + timedelta(hours=9),
    )
    # rejected yesterday
    _with_status(
        make_application,
        session,
        employer,
        "rejected",
        created_at=today - timedelta(days=3),
        reviewed_at=today - timedelta(hours=1),
    )
    # old draft
    _with_status(make_application, session, employer, "draft", created_at=today - timedelta(days=30))

    stats = aggregator.for_administrator(now=now)

    assert stats.pending == 3
    assert stats.overdue == 1
    assert stats.processed_today == 1
    assert stats.this_week == 4


def test_overdue_threshold_is_configurable(session, cfg, make_application, employer):
    now = datetime(2025, 3, 14, 12, 0)
    _with_status(make_application, session, employer, "submitted", created_at=now - timedelta(days=3))

    strict = StatisticsAggregator(session, cfg.model_copy(update={"OVERDUE_AFTER_DAYS": 2}))

    assert strict.for_administrator(now=now).overdue == 1
    assert StatisticsAggregator(session, cfg).for_administrator(now=now).overdue == 0


def test_for_administrator_empty(aggregator):
    assert aggregator.for_administrator().model_dump() == {
        "pending": 0,
        "processed_today": 0,
        "overdue": 0,
        "this_week": 0,
    }
