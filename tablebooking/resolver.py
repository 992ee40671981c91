"""
Table availability and reservation booking.

Conflicts are exact-instant matches: a reservation blocks its table only
for a request at the very same date and time. There is no seating duration,
so bookings a few minutes apart on one table never conflict.

Creating a reservation checks for a conflict and then writes. The check and
the write are not serialized across requests, and the table has no unique
constraint on (table, instant), so two concurrent requests for the same slot
can both succeed.

The table's list of reservation ids is rewritten under a row lock, so those
concurrent requests never drop each other's ids from it.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from tablebooking.errors import ConflictError, NotFoundError, ValidationError
from tablebooking.models import DiningTable, Reservation, ReservationStatus
from tablebooking.policy import Action, Requester, authorize
from tablebooking.stores import StoreContext

logger = logging.getLogger(__name__)

# a table may have up to this many seats more than the party
CAPACITY_SLACK = 3

TABLE_UNAVAILABLE = "Table not available or insufficient capacity"
NEW_TABLE_UNAVAILABLE = "New table not available or insufficient capacity"
ALREADY_RESERVED = "Table is already reserved for this date"
CONFIRMATION_MESSAGE = "Reservation created, confirmation will be sent by email"
CANCELLED_UNCHANGEABLE = "Cancelled reservations cannot be changed"


def local_naive(value: datetime) -> datetime:
    """Instants are stored as naive local time."""
    if value.tzinfo is not None:
        value = value.astimezone().replace(tzinfo=None)
    return value


def combine_instant(day: date, at: time) -> datetime:
    return local_naive(datetime.combine(day, at))


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def fits(table: DiningTable, guests: int) -> bool:
    return table is not None and table.available and table.capacity >= guests


@dataclass
class ReservationResult:
    reservation: Reservation
    message: str


class AvailabilityResolver:
    def __init__(self, context: StoreContext):
        self.context = context

    @property
    def tables(self):
        return self.context.tables

    @property
    def reservations(self):
        return self.context.reservations

    async def find_available_tables(
        self, day: Optional[date], at: Optional[time], party_size: Optional[int]
    ) -> list[DiningTable]:
        if day is None or at is None or party_size is None:
            raise ValidationError("Missing required query parameters")

        requested = combine_instant(day, at)
        logger.info(
            "Searching for tables: date=%s, time=%s, party_size=%s", day, at, party_size
        )

        candidates = await self.tables.find(
            DiningTable.capacity.between(party_size, party_size + CAPACITY_SLACK),
            available=True,
        )
        start, end = day_bounds(day)
        same_day = await self.reservations.find_between(start, end)

        taken = {r.table_id for r in same_day if r.date == requested}
        available = [table for table in candidates if table.id not in taken]
        logger.info(
            "Found %d candidate tables, %d reservations that day, %d available",
            len(candidates),
            len(same_day),
            len(available),
        )
        return available

    async def create_reservation(
        self, user_id: int, table_id: int, day: date, at: time, guests: int
    ) -> ReservationResult:
        user = await self.context.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        table = await self.tables.find_by_id(table_id)
        if not fits(table, guests):
            raise ConflictError(TABLE_UNAVAILABLE)

        instant = combine_instant(day, at)
        if await self.reservations.find_at(table.id, instant) is not None:
            raise ConflictError(ALREADY_RESERVED)

        async with self.context.unit_of_work():
            reservation = await self.reservations.save(
                Reservation(
                    user_id=user.id,
                    table_id=table.id,
                    date=instant,
                    guests=guests,
                    status=ReservationStatus.PENDING.value,
                )
            )
            await self.tables.push_reservation(table, reservation.id)

        logger.info(
            "Reservation %s created: table %s at %s for %d guests",
            reservation.id,
            table.table_number,
            instant,
            guests,
        )
        await self._notify(user, reservation, table)
        return ReservationResult(reservation=reservation, message=CONFIRMATION_MESSAGE)

    async def _notify(self, user, reservation, table):
        notifier = self.context.notifier
        if notifier is None:
            return
        try:
            await notifier.send_reservation_confirmation(user, reservation, table)
        except Exception:
            logger.exception("Could not send confirmation for reservation %s", reservation.id)

    async def _load(self, reservation_id: int) -> Reservation:
        reservation = await self.reservations.find_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    async def get_reservation(self, requester: Requester, reservation_id: int) -> Reservation:
        reservation = await self._load(reservation_id)
        authorize(requester, reservation, Action.READ_RESERVATION)
        return reservation

    async def list_user_reservations(self, user_id: int) -> list[Reservation]:
        return await self.reservations.find(user_id=user_id, order_by=Reservation.date)

    async def list_reservations(self, requester: Requester) -> list[Reservation]:
        authorize(requester, None, Action.LIST_RESERVATIONS)
        return await self.reservations.find(order_by=Reservation.date)

    async def update_reservation(
        self,
        requester: Requester,
        reservation_id: int,
        table_id: Optional[int] = None,
        instant: Optional[datetime] = None,
        guests: Optional[int] = None,
    ) -> Reservation:
        reservation = await self._load(reservation_id)
        authorize(requester, reservation, Action.UPDATE_RESERVATION)
        if reservation.status == ReservationStatus.CANCELLED.value:
            raise ConflictError(CANCELLED_UNCHANGEABLE)

        new_table = None
        if table_id is not None and table_id != reservation.table_id:
            new_table = await self.tables.find_by_id(table_id)
            seats = guests if guests is not None else reservation.guests
            if not fits(new_table, seats):
                raise ConflictError(NEW_TABLE_UNAVAILABLE)

        async with self.context.unit_of_work():
            if new_table is not None:
                if reservation.table_id is not None:
                    await self.tables.pull_reservation(reservation.table_id, reservation.id)
                await self.tables.push_reservation(new_table, reservation.id)
                reservation.table_id = new_table.id
            if instant is not None:
                reservation.date = local_naive(instant)
            if guests is not None:
                reservation.guests = guests
            await self.context.session.flush()

        logger.info("Reservation %s updated by user %s", reservation.id, requester.id)
        return reservation

    async def delete_reservation(self, requester: Requester, reservation_id: int) -> None:
        reservation = await self._load(reservation_id)
        authorize(requester, reservation, Action.DELETE_RESERVATION)

        async with self.context.unit_of_work():
            if reservation.table_id is not None:
                await self.tables.pull_reservation(reservation.table_id, reservation.id)
            await self.reservations.delete_by_id(reservation.id)
        logger.info("Reservation %s deleted by user %s", reservation_id, requester.id)

    async def cancel_reservation(self, requester: Requester, reservation_id: int) -> Reservation:
        reservation = await self._load(reservation_id)
        authorize(requester, reservation, Action.CANCEL_RESERVATION)
        if reservation.status == ReservationStatus.CANCELLED.value:
            return reservation

        async with self.context.unit_of_work():
            if reservation.table_id is not None:
                await self.tables.pull_reservation(reservation.table_id, reservation.id)
            reservation.status = ReservationStatus.CANCELLED.value
            await self.context.session.flush()
        logger.info("Reservation %s cancelled by user %s", reservation.id, requester.id)
        return reservation

    async def confirm_reservation(self, requester: Requester, reservation_id: int) -> Reservation:
        authorize(requester, None, Action.CONFIRM_RESERVATION)
        reservation = await self._load(reservation_id)
        if reservation.status == ReservationStatus.CANCELLED.value:
            raise ConflictError("Cancelled reservations cannot be confirmed")

        async with self.context.unit_of_work():
            reservation.status = ReservationStatus.CONFIRMED.value
            await self.context.session.flush()
        return reservation
