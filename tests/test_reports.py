import pytest
from datetime import date, time

from tablebooking.reports import dashboard_summary, occupancy_report, reservations_between
from tablebooking.policy import Requester


@pytest.mark.asyncio
async def test_dashboard_summary(resolver, context, add_user, add_table):
    user = await add_user()
    table = await add_table(1, 4)
    await add_table(2, 2, available=False)
    today = date(2024, 12, 25)
    await resolver.create_reservation(user.id, table.id, today, time(18, 0), 2)
    await resolver.create_reservation(user.id, table.id, date(2024, 12, 26), time(18, 0), 2)

    summary = await dashboard_summary(context, today)

    assert summary == {
        "totalTables": 2,
        "totalReservations": 2,
        "availableTables": 1,
        "todayReservations": 1,
    }


@pytest.mark.asyncio
async def test_occupancy_report_groups_by_day(resolver, context, add_user, add_table):
    user = await add_user()
    first = await add_table(1, 4)
    second = await add_table(2, 6)
    await resolver.create_reservation(user.id, first.id, date(2024, 12, 24), time(20, 0), 3)
    await resolver.create_reservation(user.id, first.id, date(2024, 12, 25), time(18, 0), 2)
    await resolver.create_reservation(user.id, second.id, date(2024, 12, 25), time(21, 30), 5)
    await resolver.create_reservation(user.id, second.id, date(2024, 12, 27), time(13, 0), 4)

    report = await occupancy_report(context, date(2024, 12, 24), date(2024, 12, 25))

    assert report == {
        "2024-12-24": {"totalReservations": 1, "totalGuests": 3, "occupancyRate": 50.0},
        "2024-12-25": {"totalReservations": 2, "totalGuests": 7, "occupancyRate": 100.0},
    }


@pytest.mark.asyncio
async def test_occupancy_report_skips_cancelled(resolver, context, add_user, add_table):
    user = await add_user()
    table = await add_table(1, 4)
    result = await resolver.create_reservation(user.id, table.id, date(2024, 12, 25), time(18, 0), 2)
    await resolver.cancel_reservation(Requester(id=user.id), result.reservation.id)

    assert await occupancy_report(context, date(2024, 12, 25), date(2024, 12, 25)) == {}


@pytest.mark.asyncio
async def test_occupancy_report_without_tables(context):
    assert await occupancy_report(context, date(2024, 1, 1), date(2024, 1, 31)) == {}


@pytest.mark.asyncio
async def test_reservations_between_is_sorted(resolver, context, add_user, add_table):
    user = await add_user()
    table = await add_table(1, 4)
    await resolver.create_reservation(user.id, table.id, date(2024, 12, 26), time(12, 0), 2)
    await resolver.create_reservation(user.id, table.id, date(2024, 12, 25), time(23, 0), 2)
    await resolver.create_reservation(user.id, table.id, date(2024, 12, 28), time(12, 0), 2)

    found = await reservations_between(context, date(2024, 12, 25), date(2024, 12, 26))

    assert [(r.date.day, r.date.hour) for r in found] == [(25, 23), (26, 12)]
