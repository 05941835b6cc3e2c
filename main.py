from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import config
from ledger import Ledger, LedgerError, ErrorKind
from logger import setup_logging, logger
from models import Booking

# Pydantic Schemas for Request
class BookingCreate(BaseModel):
    date: Optional[str] = None
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None

# Status code for every error kind the ledger can report
ERROR_STATUS = {
    ErrorKind.INVALID_DATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DATE_ALREADY_BOOKED: status.HTTP_409_CONFLICT,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Generic 500 body per HTTP method; storage details are only logged
FAILURE_MESSAGES = {
    "GET": "Failed to fetch bookings",
    "POST": "Failed to create booking",
    "DELETE": "Failed to delete booking",
}

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

def failure_response(request: Request) -> JSONResponse:
    message = FAILURE_MESSAGES.get(request.method, "Internal server error")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger


def create_app(ledger: Optional[Ledger] = None) -> FastAPI:
    if ledger is None:
        ledger = Ledger(config.DATABASE_URL, lock_timeout=config.LOCK_TIMEOUT)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting parking booking service")
        await app.state.ledger.init()
        yield
        await app.state.ledger.close()
        logger.info("Parking booking service stopped")

    app = FastAPI(title="Parking Booking System", lifespan=lifespan)
    app.state.ledger = ledger

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = ERROR_STATUS[exc.kind]
        if status_code >= 500:
            logger.error(f"Storage failure on {request.method} {request.url.path}: {exc.__cause__ or exc}")
            return failure_response(request)
        return error_response(status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
        return failure_response(request)

    @app.get("/health")
    async def health_check():
        return {"status": "ok", "timestamp": datetime.now().isoformat()}

    # --- GET /api/bookings ---
    @app.get("/api/bookings", response_model=List[Booking])
    async def list_bookings(request: Request):
        return await get_ledger(request).list_ordered()

    # --- GET /api/bookings/{date} ---
    @app.get("/api/bookings/{date}", response_model=Booking)
    async def get_booking(date: str, request: Request):
        booking = await get_ledger(request).get_by_date(date)
        if booking is None:
            return error_response(status.HTTP_404_NOT_FOUND, "Booking not found")
        return booking

    # --- POST /api/bookings ---
    @app.post("/api/bookings", response_model=Booking, status_code=status.HTTP_201_CREATED)
    async def create_booking(booking_data: BookingCreate, request: Request):
        if not booking_data.date:
            return error_response(status.HTTP_400_BAD_REQUEST, "Date is required")

        return await get_ledger(request).create(
            booking_data.date,
            employee_name=booking_data.employee_name,
            employee_email=booking_data.employee_email,
        )

    # --- DELETE /api/bookings/{date} ---
    @app.delete("/api/bookings/{date}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_booking(date: str, request: Request):
        deleted = await get_ledger(request).delete_by_date(date)
        if not deleted:
            return error_response(status.HTTP_404_NOT_FOUND, "Booking not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


setup_logging()
app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT)
