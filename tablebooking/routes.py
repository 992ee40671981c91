from datetime import date as date_type, time as time_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from tablebooking.auth import (
    TOKEN_COOKIE,
    create_access_token,
    get_current_requester,
    hash_password,
    verify_password,
)
from tablebooking.config import ACCESS_TOKEN_EXPIRE_HOURS, COOKIE_SECURE
from tablebooking.database import get_db
from tablebooking.errors import ConflictError, NotFoundError
from tablebooking.models import DiningTable, Role, User
from tablebooking.notifier import RedisNotifier
from tablebooking.policy import Action, Requester, authorize
from tablebooking.redis import get_redis
from tablebooking.reports import dashboard_summary, occupancy_report, reservations_between
from tablebooking.resolver import AvailabilityResolver
from tablebooking.schemas import (
    BulkAvailabilityRequest,
    BulkAvailabilityResponse,
    DashboardResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OccupancyDay,
    RegisterRequest,
    ReservationCreatedResponse,
    ReservationRequest,
    ReservationSchema,
    ReservationUpdateRequest,
    ResponseSchema,
    TableCreateRequest,
    TableSchema,
    TableSummary,
    TableUpdateRequest,
    UserResponse,
    UserSummary,
)
from tablebooking.stores import StoreContext, build_context

router = APIRouter()
users_router = APIRouter(prefix="/api/users", tags=["users"])
tables_router = APIRouter(prefix="/api/tables", tags=["tables"])
reservations_router = APIRouter(prefix="/api/reservations", tags=["reservations"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])

REDIRECTS = {Role.ADMIN.value: "/dashboard", Role.CLIENT.value: "/reservations"}


async def get_context(db=Depends(get_db), redis_client=Depends(get_redis)) -> StoreContext:
    return build_context(db, notifier=RedisNotifier(redis_client))


async def get_resolver(context: StoreContext = Depends(get_context)) -> AvailabilityResolver:
    return AvailabilityResolver(context)


def set_token_cookie(response: Response, user: User):
    token = create_access_token(user.id, user.role, user.name)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        secure=COOKIE_SECURE,
        max_age=ACCESS_TOKEN_EXPIRE_HOURS * 3600,
    )


async def reservation_data(context: StoreContext, reservation) -> ReservationSchema:
    user = await context.users.find_by_id(reservation.user_id)
    table = None
    if reservation.table_id is not None:
        table = await context.tables.find_by_id(reservation.table_id)
    return ReservationSchema.model_validate(reservation).model_copy(
        update={
            "user": UserSummary.model_validate(user) if user is not None else None,
            "table": TableSummary.model_validate(table) if table is not None else None,
        }
    )



def table_data(table) -> TableSchema:
    return TableSchema.model_validate(table)


@users_router.post("/register", response_model=ResponseSchema[UserResponse], status_code=201)
async def register(
    request: RegisterRequest,
    response: Response,
    context: StoreContext = Depends(get_context),
):
    if await context.users.find_by_email(request.email):
        raise ConflictError("User already exists")

    async with context.unit_of_work():
        user = await context.users.save(
            User(
                name=request.name,
                email=request.email,
                password=hash_password(request.password),
                role=Role.CLIENT.value,
            )
        )
    set_token_cookie(response, user)
    return ResponseSchema(
        data=UserResponse(
            id=user.id,
            username=user.name,
            email=user.email,
            role=user.role,
            redirectTo=REDIRECTS[user.role],
        )
    )


@users_router.post("/login", response_model=ResponseSchema[LoginResponse])
async def login(
    request: LoginRequest,
    response: Response,
    context: StoreContext = Depends(get_context),
):
    user = await context.users.find_by_email(request.email)
    if user is None or not verify_password(request.password, user.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    set_token_cookie(response, user)
    return ResponseSchema(
        data=LoginResponse(
            message="Login successful",
            role=user.role,
            redirectTo=REDIRECTS.get(user.role, "/"),
        )
    )


@users_router.get("/profile", response_model=ResponseSchema[UserResponse])
async def profile(
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    user = await context.users.find_by_id(requester.id)
    if user is None:
        raise NotFoundError("User not found")
    return ResponseSchema(
        data=UserResponse(id=user.id, username=user.name, email=user.email, role=user.role)
    )


@users_router.get("/logout", response_model=ResponseSchema[MessageResponse])
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return ResponseSchema(data=MessageResponse(message="Logged out"))


@tables_router.post("", response_model=ResponseSchema[TableSchema], status_code=201)
async def create_table(
    request: TableCreateRequest,
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.MANAGE_TABLES, message="Only admins can create tables")
    if await context.tables.find_one(table_number=request.table_number):
        raise ConflictError("Table with the same number already exists")

    async with context.unit_of_work():
        table = await context.tables.save(DiningTable(**request.model_dump()))
    return ResponseSchema(data=table_data(table))


@tables_router.get("/available", response_model=ResponseSchema[list[TableSchema]])
async def get_available_tables(
    date: Optional[date_type] = None,
    time: Optional[time_type] = None,
    party_size: Optional[int] = Query(None, gt=0),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    tables = await resolver.find_available_tables(date, time, party_size)
    return ResponseSchema(data=[table_data(table) for table in tables])


@tables_router.get("", response_model=ResponseSchema[list[TableSchema]])
async def get_tables(context: StoreContext = Depends(get_context)):
    tables = await context.tables.find(order_by=DiningTable.table_number)
    return ResponseSchema(data=[table_data(table) for table in tables])


@tables_router.get("/{table_id}", response_model=ResponseSchema[TableSchema])
async def get_table(table_id: int, context: StoreContext = Depends(get_context)):
    table = await context.tables.find_by_id(table_id)
    if table is None:
        raise NotFoundError("Table not found")
    return ResponseSchema(data=table_data(table))


@tables_router.put("/{table_id}", response_model=ResponseSchema[TableSchema])
async def update_table(
    table_id: int,
    request: TableUpdateRequest,
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.MANAGE_TABLES, message="Only admins can update tables")
    table = await context.tables.find_by_id(table_id)
    if table is None:
        raise NotFoundError("Table not found")

    changes = request.model_dump(exclude_none=True)
    number = changes.get("table_number")
    if number is not None and number != table.table_number:
        if await context.tables.find_one(table_number=number):
            raise ConflictError("Table with the same number already exists")

    async with context.unit_of_work():
        table = await context.tables.update_by_id(table_id, **changes)
    return ResponseSchema(data=table_data(table))


@tables_router.delete("/{table_id}", response_model=ResponseSchema[MessageResponse])
async def delete_table(
    table_id: int,
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.MANAGE_TABLES, message="Only admins can delete tables")
    table = await context.tables.find_by_id(table_id)
    if table is None:
        raise NotFoundError("Table not found")
    if table.reservation_ids:
        raise ConflictError("Cannot delete table with existing reservations")

    async with context.unit_of_work():
        await context.reservations.detach_table(table_id)
        await context.tables.delete_by_id(table_id)
    return ResponseSchema(data=MessageResponse(message="Table deleted successfully"))


@reservations_router.post(
    "", response_model=ResponseSchema[ReservationCreatedResponse], status_code=201
)
async def create_reservation(
    request: ReservationRequest,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    result = await resolver.create_reservation(
        requester.id, request.table_id, request.date, request.time, request.guests
    )
    return ResponseSchema(
        data=ReservationCreatedResponse(
            message=result.message,
            reservation=await reservation_data(resolver.context, result.reservation),
        )
    )


@reservations_router.get("", response_model=ResponseSchema[list[ReservationSchema]])
async def get_all_reservations(
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservations = await resolver.list_reservations(requester)
    return ResponseSchema(data=[await reservation_data(resolver.context, r) for r in reservations])


@reservations_router.get("/my", response_model=ResponseSchema[list[ReservationSchema]])
async def get_my_reservations(
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservations = await resolver.list_user_reservations(requester.id)
    return ResponseSchema(data=[await reservation_data(resolver.context, r) for r in reservations])


@reservations_router.get("/{reservation_id}", response_model=ResponseSchema[ReservationSchema])
async def get_reservation(
    reservation_id: int,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservation = await resolver.get_reservation(requester, reservation_id)
    return ResponseSchema(data=await reservation_data(resolver.context, reservation))


@reservations_router.put("/{reservation_id}", response_model=ResponseSchema[ReservationSchema])
async def update_reservation(
    reservation_id: int,
    request: ReservationUpdateRequest,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservation = await resolver.update_reservation(
        requester,
        reservation_id,
        table_id=request.table_id,
        instant=request.date,
        guests=request.guests,
    )
    return ResponseSchema(data=await reservation_data(resolver.context, reservation))


@reservations_router.delete(
    "/{reservation_id}", response_model=ResponseSchema[MessageResponse]
)
async def delete_reservation(
    reservation_id: int,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    await resolver.delete_reservation(requester, reservation_id)
    return ResponseSchema(data=MessageResponse(message="Reservation deleted successfully"))


@reservations_router.post(
    "/{reservation_id}/cancel", response_model=ResponseSchema[ReservationSchema]
)
async def cancel_reservation(
    reservation_id: int,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservation = await resolver.cancel_reservation(requester, reservation_id)
    return ResponseSchema(data=await reservation_data(resolver.context, reservation))


@reservations_router.post(
    "/{reservation_id}/confirm", response_model=ResponseSchema[ReservationSchema]
)
async def confirm_reservation(
    reservation_id: int,
    requester: Requester = Depends(get_current_requester),
    resolver: AvailabilityResolver = Depends(get_resolver),
):
    reservation = await resolver.confirm_reservation(requester, reservation_id)
    return ResponseSchema(data=await reservation_data(resolver.context, reservation))


@admin_router.get("/dashboard", response_model=ResponseSchema[DashboardResponse])
async def get_admin_dashboard(
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.VIEW_REPORTS)
    summary = await dashboard_summary(context, date_type.today())
    return ResponseSchema(data=DashboardResponse(**summary))


@admin_router.get("/occupancy-report", response_model=ResponseSchema[dict[str, OccupancyDay]])
async def get_occupancy_report(
    start_date: date_type = Query(..., alias="startDate"),
    end_date: date_type = Query(..., alias="endDate"),
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.VIEW_REPORTS)
    report = await occupancy_report(context, start_date, end_date)
    return ResponseSchema(data={day: OccupancyDay(**values) for day, values in report.items()})


@admin_router.post("/tables/bulk-update", response_model=ResponseSchema[BulkAvailabilityResponse])
async def bulk_update_table_availability(
    request: BulkAvailabilityRequest,
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.MANAGE_TABLES)
    async with context.unit_of_work():
        modified = await context.tables.update_many(request.tableIds, available=request.available)
    return ResponseSchema(
        data=BulkAvailabilityResponse(message="Tables updated successfully", modifiedCount=modified)
    )


@admin_router.get("/reservations", response_model=ResponseSchema[list[ReservationSchema]])
async def get_reservations_by_date_range(
    start_date: date_type = Query(..., alias="startDate"),
    end_date: date_type = Query(..., alias="endDate"),
    requester: Requester = Depends(get_current_requester),
    context: StoreContext = Depends(get_context),
):
    authorize(requester, None, Action.VIEW_REPORTS)
    reservations = await reservations_between(context, start_date, end_date)
    return ResponseSchema(data=[await reservation_data(context, r) for r in reservations])


router.include_router(users_router)
router.include_router(tables_router)
router.include_router(reservations_router)
router.include_router(admin_router)
