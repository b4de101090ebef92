"""Tests for background snapshot recomputation."""

import threading
from datetime import date
from unittest.mock import Mock, patch

import pytest

from core.config import LedgerConfig
from core.models import Period
from core.refresher import SnapshotRefresher
from core.services.analytics_service import AnalyticsService
from core.snapshot_store import SnapshotStore
from utils.tenant_context import get_current_company_id

PERIOD = Period(label="custom", start_date=date(2026, 10, 1), end_date=date(2026, 10, 19))


@pytest.fixture
def analytics():
    service = Mock(spec=AnalyticsService)
    service.config = LedgerConfig()
    service.snapshots = Mock(spec=SnapshotStore)
    return service


@pytest.fixture
def refresher(analytics):
    r = SnapshotRefresher(analytics, max_workers=2)
    yield r
    r.shutdown(wait=True)


def test_recompute_runs_in_tenant_context(refresher, analytics, company_id):
    seen = []
    analytics.recompute.side_effect = lambda period: seen.append((get_current_company_id(), period))

    refresher.submit(company_id, PERIOD).result(timeout=5)

    assert seen == [(company_id, PERIOD)]


def test_request_during_run_gets_one_follow_up_run(refresher, analytics, company_id):
    """A write committed mid-recompute must still reach a published snapshot."""
    ledger = {"completed_total": 0}
    published = []
    started = threading.Event()
    release = threading.Event()

    def recompute(period):
        seen = ledger["completed_total"]
        started.set()
        release.wait(timeout=5)
        published.append(seen)

    analytics.recompute.side_effect = recompute

    first = refresher.submit(company_id, PERIOD)
    assert started.wait(timeout=5)
    ledger["completed_total"] = 1000
    second = refresher.submit(company_id, PERIOD)
    release.set()
    first.result(timeout=5)

    assert second is first
    assert published == [0, 1000]


def test_many_requests_during_run_coalesce_into_one(refresher, analytics, company_id):
    started = threading.Event()
    release = threading.Event()

    def recompute(period):
        started.set()
        release.wait(timeout=5)

    analytics.recompute.side_effect = recompute

    first = refresher.submit(company_id, PERIOD)
    assert started.wait(timeout=5)
    for _ in range(5):
        refresher.submit(company_id, PERIOD)
    release.set()
    first.result(timeout=5)

    assert analytics.recompute.call_count == 2


def test_other_periods_are_not_coalesced(refresher, analytics, company_id):
    other = Period(label="custom", start_date=date(2026, 9, 1), end_date=date(2026, 9, 30))

    first = refresher.submit(company_id, PERIOD)
    second = refresher.submit(company_id, other)
    first.result(timeout=5)
    second.result(timeout=5)

    assert second is not first
    assert [c.args[0] for c in analytics.recompute.call_args_list].count(other) == 1


def test_can_resubmit_after_completion(refresher, analytics, company_id):
    first = refresher.submit(company_id, PERIOD)
    first.result(timeout=5)

    again = refresher.submit(company_id, PERIOD)

    assert again is not first
    again.result(timeout=5)
    assert analytics.recompute.call_count == 2


def test_failure_is_logged_not_raised(refresher, analytics, company_id, caplog):
    analytics.recompute.side_effect = RuntimeError("db down")

    refresher.submit(company_id, PERIOD).result(timeout=5)

    assert "Analytics refresh failed" in caplog.text
    analytics.recompute.side_effect = None
    refresher.submit(company_id, PERIOD).result(timeout=5)
    assert analytics.recompute.call_count == 2


def test_submit_published_rolls_named_periods_forward(refresher, analytics, company_id):
    stale_named = Period(label="7days", start_date=date(2026, 10, 1), end_date=date(2026, 10, 8))
    analytics.snapshots.published_periods.return_value = [stale_named, PERIOD]

    with patch("core.refresher.local_today", return_value=date(2026, 10, 19)), \
            patch.object(refresher, "submit", return_value=Mock()) as submit:
        submitted = refresher.submit_published(company_id)

    assert submitted == 2
    assert [c.args[1] for c in submit.call_args_list] == [
        Period(label="7days", start_date=date(2026, 10, 12), end_date=date(2026, 10, 19)),
        PERIOD,
    ]
