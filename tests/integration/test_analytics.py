"""Manager analytics over a small, fixed history of requests."""

from datetime import timedelta

import pytest

from src.simflow.models import (
    ProjectStatus,
    RequestPriority,
    RequestStatus,
    TimeEntry,
    User,
)
from src.simflow.models.base import utc_now
from src.simflow.workflow import ValidationFailed
from tests.factories import ProjectFactory, SimulationRequestFactory

pytestmark = pytest.mark.integration

API = "/api/v1"


@pytest.fixture
async def history(seed, project, manager, engineer, other_engineer, requester):
    """Three delivered requests, one in flight, one waiting, one denied.

    Delivery took 2 and 10 days for the High pair and 3 days for the Low one.
    """
    now = utc_now()
    fast = SimulationRequestFactory.in_status(
        RequestStatus.COMPLETED,
        priority=RequestPriority.HIGH.value,
        vendor="Abaqus",
        assigned_to=engineer.id,
        estimated_hours=10.0,
        allocated_hours=12.0,
        created_at=now - timedelta(days=4),
        updated_at=now - timedelta(days=2),
    )
    slow = SimulationRequestFactory.in_status(
        RequestStatus.ACCEPTED,
        priority=RequestPriority.HIGH.value,
        assigned_to=engineer.id,
        estimated_hours=20.0,
        created_at=now - timedelta(days=10),
        updated_at=now,
    )
    small = SimulationRequestFactory.in_status(
        RequestStatus.ACCEPTED,
        priority=RequestPriority.LOW.value,
        assigned_to=other_engineer.id,
        created_at=now - timedelta(days=6),
        updated_at=now - timedelta(days=3),
    )
    running = SimulationRequestFactory.in_status(
        RequestStatus.IN_PROGRESS,
        vendor="Ansys",
        assigned_to=engineer.id,
        estimated_hours=8.0,
    )
    waiting = SimulationRequestFactory.build(vendor="Ansys", created_by=requester.id)
    denied = SimulationRequestFactory.in_status(RequestStatus.DENIED)
    busy = ProjectFactory.build(used_hours=50.0)
    pending = ProjectFactory.with_status(ProjectStatus.PENDING)

    await seed(fast, slow, small, running, waiting, denied, busy, pending)
    await seed(
        TimeEntry(request_id=fast.id, engineer_id=engineer.id, hours=15.0),
        TimeEntry(request_id=slow.id, engineer_id=engineer.id, hours=5.0),
        TimeEntry(request_id=slow.id, engineer_id=engineer.id, hours=5.0),
        TimeEntry(request_id=running.id, engineer_id=engineer.id, hours=3.0),
    )
    return {"fast": fast, "slow": slow, "small": small, "busy": busy}


class TestDashboard:
    async def test_overview(self, services, history):
        stats = await services.analytics.dashboard()

        overview = stats.overview
        assert overview.total_requests == 6
        assert overview.active_requests == 2
        assert overview.completed_requests == 3
        assert overview.total_projects == 3
        assert overview.active_projects == 2
        assert overview.total_users == 4
        assert overview.total_hours_budgeted == 300.0
        assert overview.total_hours_used == 50.0

    async def test_breakdowns(self, services, history, project):
        stats = await services.analytics.dashboard()

        top_status = stats.requests_by_status[0]
        assert (top_status.key, top_status.count, top_status.percentage) == ("Accepted", 2, 33.33)
        assert sum(share.count for share in stats.requests_by_priority) == 6
        assert [(v.vendor, v.request_count, v.estimated_hours) for v in stats.top_vendors] == [
            ("Ansys", 2, 8.0),
            ("Abaqus", 1, 10.0),
        ]
        assert [row.project_id for row in stats.project_utilization] == [
            history["busy"].id,
            project.id,
        ]
        assert stats.project_utilization[0].utilization == 50.0
        assert stats.averages.completion_days == 5.0
        assert stats.averages.hours_per_request == 15.0

    async def test_trends_cover_recent_days(self, services, history):
        stats = await services.analytics.dashboard()

        assert len(stats.request_trends) == 30
        assert stats.request_trends[-1].day == utc_now().date()
        assert sum(point.created for point in stats.request_trends) == 6
        assert sum(point.completed for point in stats.request_trends) == 3
        assert sum(point.in_progress for point in stats.request_trends) == 1

    async def test_date_range_narrows_requests(self, services, history):
        today = utc_now().date()

        stats = await services.analytics.dashboard(today - timedelta(days=5), today)

        # The 6 and 10 day old requests fall outside the range
        assert stats.overview.total_requests == 4
        assert stats.overview.total_projects == 3

    async def test_reversed_range(self, services):
        today = utc_now().date()

        with pytest.raises(ValidationFailed, match="start_date"):
            await services.analytics.dashboard(today, today - timedelta(days=1))

    async def test_empty_system(self, services):
        stats = await services.analytics.dashboard()

        assert stats.overview.total_requests == 0
        assert stats.requests_by_status == []
        assert stats.averages.completion_days is None
        assert all(point.created == 0 for point in stats.request_trends)


async def test_completion_times_by_priority(services, history):
    rows = await services.analytics.completion_times()

    assert [row.priority for row in rows] == ["High", "Low"]
    high, low = rows
    assert high.total_requests == 2
    assert (high.min_days, high.max_days, high.median_days, high.average_days) == (
        2.0,
        10.0,
        6.0,
        6.0,
    )
    assert low.total_requests == 1
    assert low.median_days == 3.0


async def test_hour_allocation(services, history):
    rows = await services.analytics.hour_allocation()

    assert [row.request_id for row in rows] == [
        history["fast"].id,
        history["slow"].id,
        history["small"].id,
    ]
    fast, slow, small = rows
    # Allocated hours win over the estimate
    assert (fast.allocated_hours, fast.actual_hours, fast.variance) == (12.0, 15.0, 3.0)
    assert fast.usage_percentage == 125.0
    assert (slow.allocated_hours, slow.variance, slow.usage_percentage) == (20.0, -10.0, 50.0)
    assert small.usage_percentage == 100.0


async def test_engineer_workload(services, history, engineer: User, other_engineer: User):
    rows = {row.engineer_id: row for row in await services.analytics.engineer_workload()}

    assert set(rows) == {engineer.id, other_engineer.id}
    mine = rows[engineer.id]
    assert (mine.open_requests, mine.completed_requests) == (1, 2)
    assert mine.hours_allocated == 8.0
    assert mine.hours_logged == 28.0
    assert mine.average_completion_days == 6.0
    theirs = rows[other_engineer.id]
    assert (theirs.open_requests, theirs.completed_requests, theirs.hours_logged) == (0, 1, 0.0)
    assert theirs.average_completion_days == 3.0


class TestAnalyticsApi:
    async def test_manager_sees_dashboard(self, client, auth_headers, manager, history):
        response = await client.get(f"{API}/analytics/dashboard", headers=auth_headers(manager))

        assert response.status_code == 200
        assert response.json()["overview"]["total_requests"] == 6

    async def test_admin_sees_completion_times(self, client, auth_headers, admin, history):
        response = await client.get(
            f"{API}/analytics/completion-times", headers=auth_headers(admin)
        )

        assert response.status_code == 200
        assert [row["priority"] for row in response.json()] == ["High", "Low"]

    @pytest.mark.parametrize(
        "path", ["dashboard", "completion-times", "hour-allocation", "engineer-workload"]
    )
    async def test_engineers_and_requesters_are_refused(
        self, client, auth_headers, engineer, requester, path
    ):
        for user in (engineer, requester):
            response = await client.get(f"{API}/analytics/{path}", headers=auth_headers(user))
            assert response.status_code == 403

    async def test_reversed_range_is_unprocessable(self, client, auth_headers, manager):
        response = await client.get(
            f"{API}/analytics/dashboard",
            params={"start_date": "2026-03-10", "end_date": "2026-03-01"},
            headers=auth_headers(manager),
        )

        assert response.status_code == 422
