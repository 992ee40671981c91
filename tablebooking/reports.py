from collections import defaultdict
from datetime import date

from tablebooking.resolver import day_bounds
from tablebooking.stores import StoreContext


async def dashboard_summary(context: StoreContext, today: date) -> dict:
    start, end = day_bounds(today)
    return {
        "totalTables": await context.tables.count(),
        "totalReservations": await context.reservations.count_active(),
        "availableTables": await context.tables.count(available=True),
        "todayReservations": len(await context.reservations.find_between(start, end)),
    }


async def reservations_between(context: StoreContext, start: date, end: date):
    """Reservations from the start of ``start`` to the end of ``end``."""
    return await context.reservations.find_between(day_bounds(start)[0], day_bounds(end)[1])


async def occupancy_report(context: StoreContext, start: date, end: date) -> dict:
    reservations = await reservations_between(context, start, end)
    total_tables = await context.tables.count()

    days = defaultdict(lambda: {"totalReservations": 0, "totalGuests": 0})
    for reservation in reservations:
        day = days[reservation.date.date().isoformat()]
        day["totalReservations"] += 1
        day["totalGuests"] += reservation.guests

    for day in days.values():
        day["occupancyRate"] = (
            day["totalReservations"] / total_tables * 100 if total_tables else 0.0
        )
    return dict(days)
