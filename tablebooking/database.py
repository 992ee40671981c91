# default
import logging

# pip
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from tablebooking.config import DATABASE_URL, RESET_DATABASE, SEED_DEMO_DATA, SQL_ECHO

logger = logging.getLogger(__name__)

engine = create_async_engine(DATABASE_URL, echo=SQL_ECHO)
async_session = async_sessionmaker(engine, expire_on_commit=False)
Base = declarative_base()


async def get_db():
    async with async_session() as session:
        yield session


def demo_table_capacity(number: int) -> int:
    """Capacities between 2 and 9 so every party size has a few candidates."""
    return 2 + (number % 4) if number <= 10 else 4 + (number % 6)


async def seed_demo_data(session: AsyncSession):
    from tablebooking.auth import hash_password
    from tablebooking.models import DiningTable, Role, User

    admin_password = hash_password("admin123")
    client_password = hash_password("client123")
    session.add(
        User(
            name="Admin User",
            email="admin@restaurant.com",
            password=admin_password,
            role=Role.ADMIN.value,
        )
    )
    for name, email in (
        ("John Doe", "john@example.com"),
        ("Jane Smith", "jane@example.com"),
        ("Mike Johnson", "mike@example.com"),
    ):
        session.add(
            User(name=name, email=email, password=client_password, role=Role.CLIENT.value)
        )
    for number in range(1, 21):
        session.add(
            DiningTable(table_number=number, capacity=demo_table_capacity(number))
        )
    await session.commit()
    logger.info("Seeded demo users and 20 tables")


async def initialize_database(reset: bool = RESET_DATABASE, seed: bool = SEED_DEMO_DATA):
    # models must be imported before create_all so the metadata is populated
    import tablebooking.models  # noqa: F401

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    if seed:
        async with async_session() as session:
            await seed_demo_data(session)
