import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError


from tablebooking.config import LOG_LEVEL
from tablebooking.database import initialize_database
from tablebooking.errors import ReservationError
from tablebooking.routes import router

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Table Booking")

app.include_router(router)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "DB Error"})


@app.on_event("startup")
async def startup_event():
    await initialize_database()
    logger.info("Database ready")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
