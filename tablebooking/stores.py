"""
Repository layer over the SQLAlchemy session.

Stores never commit. Writes are flushed so generated ids are available, and
a ``UnitOfWork`` decides when the session is committed or rolled back.
Reads outside a unit of work run in the session's implicit transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, Sequence, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tablebooking.models import DiningTable, Reservation, ReservationStatus, User

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class SqlStore(Generic[ModelT]):
    model: type

    def __init__(self, session: AsyncSession):
        self.session = session

    def _where(self, criteria: Sequence[Any], filters: dict) -> list:
        clauses = list(criteria)
        for field, value in filters.items():
            clauses.append(getattr(self.model, field) == value)
        return clauses

    async def find_by_id(self, id_: int) -> Optional[ModelT]:
        return await self.session.get(self.model, id_)

    async def find_one(self, *criteria, **filters) -> Optional[ModelT]:
        result = await self.session.execute(
            select(self.model).where(*self._where(criteria, filters)).limit(1)
        )
        return result.scalars().first()

    async def find(self, *criteria, order_by=None, **filters) -> list[ModelT]:
        query = select(self.model).where(*self._where(criteria, filters))
        query = query.order_by(order_by if order_by is not None else self.model.id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, *criteria, **filters) -> int:
        result = await self.session.execute(
            select(func.count(self.model.id)).where(*self._where(criteria, filters))
        )
        return result.scalar_one()

    async def save(self, obj: ModelT) -> ModelT:
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def update_by_id(self, id_: int, **values) -> Optional[ModelT]:
        obj = await self.find_by_id(id_)
        if obj is None:
            return None
        for field, value in values.items():
            setattr(obj, field, value)
        await self.session.flush()
        return obj

    async def delete_by_id(self, id_: int) -> bool:
        obj = await self.find_by_id(id_)
        if obj is None:
            return False
        await self.session.delete(obj)
        await self.session.flush()
        return True


class UserStore(SqlStore[User]):
    model = User

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.find_one(email=email)


class TableStore(SqlStore[DiningTable]):
    model = DiningTable

    async def update_many(self, ids: Sequence[int], **values) -> int:
        if not ids:
            return 0
        result = await self.session.execute(
            update(DiningTable)
            .where(DiningTable.id.in_(list(ids)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def lock_by_id(self, id_: int) -> Optional[DiningTable]:
        """Re-read a table row under ``SELECT ... FOR UPDATE``."""
        result = await self.session.execute(
            select(DiningTable)
            .where(DiningTable.id == id_)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def push_reservation(self, table: DiningTable, reservation_id: int) -> DiningTable:
        locked = await self.lock_by_id(table.id)
        if locked is None:
            raise LookupError(f"Table {table.id} no longer exists")
        # the JSON column only notices reassignment, not in-place mutation
        locked.reservation_ids = [*locked.reservation_ids, reservation_id]
        await self.session.flush()
        return locked

    async def pull_reservation(self, table_id: int, reservation_id: int) -> Optional[DiningTable]:
        table = await self.lock_by_id(table_id)
        if table is None:
            logger.warning(
                "Table %s missing while detaching reservation %s", table_id, reservation_id
            )
            return None
        table.reservation_ids = [rid for rid in table.reservation_ids if rid != reservation_id]
        await self.session.flush()
        return table


class ReservationStore(SqlStore[Reservation]):
    model = Reservation

    def _active(self):
        return Reservation.status != ReservationStatus.CANCELLED.value

    async def count_active(self) -> int:
        return await self.count(self._active())

    async def find_at(self, table_id: int, instant: datetime) -> Optional[Reservation]:
        return await self.find_one(self._active(), table_id=table_id, date=instant)

    async def detach_table(self, table_id: int) -> int:
        """Clear ``table_id`` on every reservation of a table about to be deleted."""
        result = await self.session.execute(
            update(Reservation)
            .where(Reservation.table_id == table_id)
            .values(table_id=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    async def find_between(
        self, start: datetime, end: datetime, include_cancelled: bool = False
    ) -> list[Reservation]:
        """Reservations with ``start <= date < end``, earliest first."""
        criteria = [Reservation.date >= start, Reservation.date < end]
        if not include_cancelled:
            criteria.append(self._active())
        return await self.find(*criteria, order_by=Reservation.date)


class UnitOfWork:
    """
    Groups the writes of one operation on a single session.

    Commits when the block exits cleanly and rolls back when it raises. The
    reads that precede the block are not locked, so two requests may still
    both pass a check before either commits.
    Table rows touched through ``TableStore.lock_by_id`` stay locked until the
    block ends.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            await self.session.commit()
        else:
            logger.error("Rolling back unit of work after %s", exc_type.__name__)
            await self.session.rollback()
        return False


@dataclass
class StoreContext:
    tables: TableStore
    reservations: ReservationStore
    users: UserStore
    session: AsyncSession
    notifier: Any = None

    def unit_of_work(self) -> UnitOfWork:
        return UnitOfWork(self.session)


def build_context(session: AsyncSession, notifier=None) -> StoreContext:
    return StoreContext(
        tables=TableStore(session),
        reservations=ReservationStore(session),
        users=UserStore(session),
        session=session,
        notifier=notifier,
    )
