# tests/test_meeting_generator.py
from datetime import datetime, time, timezone

import pytest
from sqlalchemy import delete, select
from sqlalchemy.exc import OperationalError

from checkin_scheduler.db.session import AsyncSessionLocal
from checkin_scheduler.models.checkin_meeting import CheckInMeeting
from checkin_scheduler.models.team import Team
from checkin_scheduler.services import meeting_generator as mg
from checkin_scheduler.services.dry_run import dry_run_meeting_generation
from checkin_scheduler.services.stores import OccurrenceStore, TeamConfigStore
from checkin_scheduler.services.timezone_converter import as_utc, start_of_local_day
from checkin_scheduler.services.timezone_resolver import SettingsTimezoneResolver

LONDON = "Europe/London"
NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)
RESOLVER = SettingsTimezoneResolver(LONDON)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


async def _meetings(session, team_id: int) -> list[CheckInMeeting]:
    result = await session.execute(
        select(CheckInMeeting)
        .where(CheckInMeeting.team_id == team_id)
        .order_by(CheckInMeeting.scheduled_utc.asc())
    )
    return list(result.scalars().all())


@pytest.mark.asyncio
async def test_generation_persists_weekly_meetings(make_team):
    team_id = make_team(name="Platform", cadence="weekly", anchor_day_of_week=1)

    async with AsyncSessionLocal() as session:
        result = await mg.ensure_team_meetings(
            session,
            team_id,
            _utc(2030, 1, 7),
            _utc(2030, 2, 4),
            tz_resolver=RESOLVER,
            now=NOW,
        )

        assert result.created_count == 4
        assert len(result.created_ids) == 4
        assert result.preview == [
            "2030-01-07T09:00:00.000Z",
            "2030-01-14T09:00:00.000Z",
            "2030-01-21T09:00:00.000Z",
            "2030-01-28T09:00:00.000Z",
        ]

        meetings = await _meetings(session, team_id)

    assert [m.id for m in meetings] == result.created_ids
    first = meetings[0]
    assert first.organization_id == 3
    assert first.title == "Platform Check-in"
    assert first.description == "Regular weekly check-in meeting for Platform"
    assert first.status == "Planning"
    assert first.meeting_type == "check_in"
    assert first.agenda == []
    assert first.local_date_key == "2030-01-07"
    assert as_utc(first.scheduled_utc) == _utc(2030, 1, 7, 9, 0)


@pytest.mark.asyncio
async def test_generation_is_idempotent(make_team):
    """
    A second run over the same team/window creates nothing and leaves the
    stored rows untouched.
    """
    team_id = make_team(cadence="weekly")

    async with AsyncSessionLocal() as session:
        first = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
        )
        second = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
        )

        meetings = await _meetings(session, team_id)

    assert first.created_count == 4
    assert second.created_count == 0
    assert second.created_ids == []
    assert second.preview == first.preview
    assert len(meetings) == 4


@pytest.mark.asyncio
async def test_past_window_returns_empty_result(make_team):
    team_id = make_team(cadence="daily")

    async with AsyncSessionLocal() as session:
        result = await mg.ensure_team_meetings(
            session,
            team_id,
            _utc(2029, 12, 1),
            _utc(2029, 12, 20),
            tz_resolver=RESOLVER,
            now=NOW,
        )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 0
    assert result.created_ids == []
    assert result.preview == []
    assert meetings == []


@pytest.mark.asyncio
async def test_missing_team_returns_empty_result(caplog):
    async with AsyncSessionLocal() as session:
        with caplog.at_level("WARNING"):
            result = await mg.ensure_team_meetings(
                session, 999, _utc(2030, 1, 1), _utc(2030, 2, 1), tz_resolver=RESOLVER, now=NOW
            )

    assert result.created_count == 0
    assert result.preview == []
    assert "Team 999 not found" in caplog.text


@pytest.mark.asyncio
async def test_straddling_window_never_backfills_before_today(make_team):
    """
    With now at 12:00 UTC on 2030-01-09, the window is clipped to local
    midnight and today's 18:00 meeting is still produced.
    """
    team_id = make_team(cadence="daily", meeting_time=time(18, 0))
    now = _utc(2030, 1, 9, 12, 0)

    async with AsyncSessionLocal() as session:
        result = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 1), _utc(2030, 1, 12), tz_resolver=RESOLVER, now=now
        )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 3
    assert [m.local_date_key for m in meetings] == ["2030-01-09", "2030-01-10", "2030-01-11"]
    midnight = start_of_local_day(now, LONDON)
    assert all(as_utc(m.scheduled_utc) >= midnight for m in meetings)


@pytest.mark.asyncio
async def test_existing_meeting_on_same_local_day_is_skipped(make_team):
    """
    A meeting already stored on 2030-01-07 at a different time (e.g. before
    a meeting_time edit) blocks a second meeting on that local day.
    """
    team_id = make_team(cadence="weekly")

    async with AsyncSessionLocal() as session:
        session.add(
            CheckInMeeting(
                organization_id=3,
                team_id=team_id,
                title="Platform Check-in",
                scheduled_utc=_utc(2030, 1, 7, 14, 0),
                local_date_key="2030-01-07",
            )
        )
        await session.commit()

        result = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
        )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 3
    assert len(result.preview) == 4
    assert [m.local_date_key for m in meetings] == [
        "2030-01-07",
        "2030-01-14",
        "2030-01-21",
        "2030-01-28",
    ]
    assert as_utc(meetings[0].scheduled_utc) == _utc(2030, 1, 7, 14, 0)


@pytest.mark.asyncio
async def test_store_constraint_suppresses_same_instant(make_team):
    """
    When the local-day check misses but a row with the same scheduled instant
    exists, the unique constraint suppresses the insert and it is not counted.
    """
    team_id = make_team(cadence="weekly")

    async with AsyncSessionLocal() as session:
        store = OccurrenceStore(session)
        existing_id = await store.insert_if_absent(
            organization_id=3,
            team_id=team_id,
            scheduled_utc=_utc(2030, 1, 14, 9, 0),
            local_date_key="legacy-key",
            title="Platform Check-in",
            description=None,
        )
        await session.commit()
        assert existing_id is not None

        duplicate_id = await store.insert_if_absent(
            organization_id=3,
            team_id=team_id,
            scheduled_utc=_utc(2030, 1, 14, 9, 0),
            local_date_key="2030-01-14",
            title="Platform Check-in",
            description=None,
        )
        assert duplicate_id is None

        result = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
        )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 3
    assert existing_id not in result.created_ids
    assert len(meetings) == 4


@pytest.mark.asyncio
async def test_failed_insert_is_logged_and_run_continues(make_team, monkeypatch, caplog):
    team_id = make_team(cadence="weekly")
    original_insert = OccurrenceStore.insert_if_absent
    calls = {"count": 0}

    async def flaky_insert(self, **kwargs):
        calls["count"] += 1
        if calls["count"] == 2:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        return await original_insert(self, **kwargs)

    monkeypatch.setattr(OccurrenceStore, "insert_if_absent", flaky_insert)

    async with AsyncSessionLocal() as session:
        with caplog.at_level("ERROR"):
            result = await mg.ensure_team_meetings(
                session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
            )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 3
    assert len(result.preview) == 4
    assert [m.local_date_key for m in meetings] == ["2030-01-07", "2030-01-21", "2030-01-28"]
    assert "Failed to create meeting for team" in caplog.text
    assert "2030-01-14" in caplog.text


@pytest.mark.asyncio
async def test_dry_run_matches_real_generation(make_team):
    team_id = make_team(
        cadence="monthly",
        anchor_week_of_month=-1,
        anchor_day_of_week=5,
    )

    async with AsyncSessionLocal() as session:
        config = await TeamConfigStore(session).get(team_id)
        result = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 1), _utc(2030, 7, 1), tz_resolver=RESOLVER, now=NOW
        )

    preview = dry_run_meeting_generation(
        config, _utc(2030, 1, 1), _utc(2030, 7, 1), LONDON, count=100, now=NOW
    )

    assert [p.utc for p in preview] == result.preview
    assert [p.local[:10] for p in preview] == [
        "2030-01-25",
        "2030-02-22",
        "2030-03-29",
        "2030-04-26",
        "2030-05-31",
        "2030-06-28",
    ]


@pytest.mark.asyncio
async def test_organization_timezone_override_is_used(make_team):
    team_id = make_team(organization_id=5, cadence="weekly")
    resolver = SettingsTimezoneResolver(LONDON, {5: "America/New_York"})

    async with AsyncSessionLocal() as session:
        result = await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 1, 14), tz_resolver=resolver, now=NOW
        )

    assert result.preview == ["2030-01-07T14:00:00.000Z"]


@pytest.mark.asyncio
async def test_ensure_all_team_meetings_covers_every_team(make_team):
    weekly_id = make_team(name="Platform", cadence="weekly")
    daily_id = make_team(name="Support", cadence="daily")

    async with AsyncSessionLocal() as session:
        summary = await mg.ensure_all_team_meetings(
            session, lookahead_days=14, tz_resolver=RESOLVER, now=NOW
        )
        again = await mg.ensure_all_team_meetings(
            session, lookahead_days=14, tz_resolver=RESOLVER, now=NOW
        )

    assert summary.teams_evaluated == 2
    # Mondays 7 and 14 January; daily 1..14 January
    assert summary.results[weekly_id].created_count == 2
    assert summary.results[daily_id].created_count == 14
    assert summary.created_count == 16
    assert again.created_count == 0


@pytest.mark.asyncio
async def test_dry_run_matches_real_generation_when_window_straddles_now(make_team):
    """
    Bi-weekly phase is counted from the (clipped) window start, so both paths
    must clip the same way.
    """
    team_id = make_team(cadence="bi_weekly", anchor_day_of_week=1)
    now = _utc(2030, 1, 9, 12, 0)
    start, end = _utc(2029, 12, 24), _utc(2030, 2, 10)

    async with AsyncSessionLocal() as session:
        config = await TeamConfigStore(session).get(team_id)
        result = await mg.ensure_team_meetings(
            session, team_id, start, end, tz_resolver=RESOLVER, now=now
        )

    preview = dry_run_meeting_generation(config, start, end, LONDON, count=100, now=now)

    assert result.preview == ["2030-01-14T09:00:00.000Z", "2030-01-28T09:00:00.000Z"]
    assert [p.utc for p in preview] == result.preview


@pytest.mark.asyncio
async def test_invalid_stored_configuration_yields_empty_result(make_team, caplog):
    team_id = make_team(cadence="monthly", anchor_week_of_month=5, anchor_day_of_week=1)

    async with AsyncSessionLocal() as session:
        with caplog.at_level("WARNING"):
            result = await mg.ensure_team_meetings(
                session, team_id, _utc(2030, 1, 1), _utc(2030, 6, 1), tz_resolver=RESOLVER, now=NOW
            )
        meetings = await _meetings(session, team_id)

    assert result.created_count == 0
    assert result.preview == []
    assert meetings == []
    assert f"Degenerate configuration for team {team_id}" in caplog.text
    assert "anchor_week_of_month" in caplog.text


@pytest.mark.asyncio
async def test_invalid_team_does_not_abort_rolling_run(make_team):
    valid_id = make_team(name="Platform", cadence="weekly")
    broken_id = make_team(name="Legacy", cadence="weekly", anchor_day_of_week=7)

    async with AsyncSessionLocal() as session:
        summary = await mg.ensure_all_team_meetings(
            session, lookahead_days=14, tz_resolver=RESOLVER, now=NOW
        )

    assert summary.teams_evaluated == 2
    assert summary.results[broken_id].created_count == 0
    assert summary.results[valid_id].created_count == 2
    assert summary.created_count == 2


@pytest.mark.asyncio
async def test_deleting_team_removes_its_meetings(make_team):
    team_id = make_team(cadence="weekly")

    async with AsyncSessionLocal() as session:
        await mg.ensure_team_meetings(
            session, team_id, _utc(2030, 1, 7), _utc(2030, 2, 4), tz_resolver=RESOLVER, now=NOW
        )
        await session.execute(delete(Team).where(Team.id == team_id))
        await session.commit()

        meetings = await _meetings(session, team_id)

    assert meetings == []
