from datetime import date, datetime, time
from typing import Optional, TypeVar, Generic
from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseSchema(BaseModel, Generic[T]):
    data: T


class MessageResponse(BaseModel):
    message: str


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str
    redirectTo: Optional[str] = None


class LoginResponse(BaseModel):
    message: str
    role: str
    redirectTo: str


class TableCreateRequest(BaseModel):
    table_number: int = Field(..., gt=0)
    capacity: int = Field(..., gt=0)
    available: bool = True


class TableUpdateRequest(BaseModel):
    table_number: Optional[int] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, gt=0)
    available: Optional[bool] = None


class TableSchema(BaseModel):
    id: int
    table_number: int
    capacity: int
    available: bool
    reservation_ids: list[int]
    created_at: datetime

    class Config:
        from_attributes = True


class BulkAvailabilityRequest(BaseModel):
    tableIds: list[int]
    available: bool


class BulkAvailabilityResponse(BaseModel):
    message: str
    modifiedCount: int


class ReservationRequest(BaseModel):
    table_id: int
    date: date
    time: time
    guests: int = Field(..., gt=0)


class ReservationUpdateRequest(BaseModel):
    table_id: Optional[int] = None
    date: Optional[datetime] = None
    guests: Optional[int] = Field(None, gt=0)


class UserSummary(BaseModel):
    name: str
    email: str

    class Config:
        from_attributes = True


class TableSummary(BaseModel):
    table_number: int
    capacity: int

    class Config:
        from_attributes = True


class ReservationSchema(BaseModel):
    id: int
    user_id: int
    table_id: Optional[int] = None
    date: datetime
    guests: int
    status: str
    created_at: datetime
    user: Optional[UserSummary] = None
    table: Optional[TableSummary] = None


    class Config:
        from_attributes = True


class ReservationCreatedResponse(BaseModel):
    message: str
    reservation: ReservationSchema


class DashboardResponse(BaseModel):
    totalTables: int
    totalReservations: int
    availableTables: int
    todayReservations: int


class OccupancyDay(BaseModel):
    totalReservations: int
    totalGuests: int
    occupancyRate: float
