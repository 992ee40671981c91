import enum
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String


from tablebooking.database import Base


class Role(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password = Column(String, nullable=False)
    role = Column(String(10), nullable=False, default=Role.CLIENT.value)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


class DiningTable(Base):
    __tablename__ = "tables"
    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(Integer, nullable=False, unique=True, index=True)
    capacity = Column(Integer, nullable=False)
    # administrative override, independent of bookings
    available = Column(Boolean, nullable=False, default=True)
    # ids of active reservations; kept in step with Reservation.table_id
    reservation_ids = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.now, nullable=False)


class Reservation(Base):
    __tablename__ = "reservations"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # cleared when the table is deleted so cancelled history survives
    table_id = Column(
        Integer, ForeignKey("tables.id", ondelete="SET NULL"), nullable=True, index=True
    )
    date = Column(DateTime, nullable=False, index=True)
    guests = Column(Integer, nullable=False)
    status = Column(String(10), nullable=False, default=ReservationStatus.PENDING.value)
    created_at = Column(DateTime, default=datetime.now, nullable=False)
