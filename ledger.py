"""
Booking ledger: the only owner of the persisted bookings.

Every date holds at most one live booking. The UNIQUE constraint on
``bookings.date`` decides races between concurrent creates; this module
validates input before touching storage and turns the resulting integrity
error into ``DateAlreadyBooked``.
"""

import re
import enum
from datetime import date as calendar_date
from typing import List, Optional

from sqlmodel import select
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from loguru import logger

from database import create_engine, init_db, get_sessionmaker
from models import Booking

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class ErrorKind(enum.Enum):
    INVALID_DATE = "invalid_date"
    DATE_ALREADY_BOOKED = "date_already_booked"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class LedgerError(Exception):
    """Base for failures the ledger reports to its callers."""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidDate(LedgerError):
    kind = ErrorKind.INVALID_DATE

    def __init__(self, value: object = None):
        super().__init__("Date must be in YYYY-MM-DD format")
        self.value = value


class DateAlreadyBooked(LedgerError):
    kind = ErrorKind.DATE_ALREADY_BOOKED

    def __init__(self, date: str):
        super().__init__(f"Date {date} is already booked")
        self.date = date


class StorageUnavailable(LedgerError):
    kind = ErrorKind.STORAGE_UNAVAILABLE

    def __init__(self, message: str = "Booking storage is unavailable"):
        super().__init__(message)


def is_valid_date(value: object) -> bool:
    """True if ``value`` is a ``YYYY-MM-DD`` string naming a real Gregorian date."""
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        return False
    year, month, day = (int(part) for part in value.split("-"))
    try:
        parsed = calendar_date(year, month, day)
    except ValueError:
        return False
    # Rejects anything the pattern let through but isoformat would spell differently
    return parsed.isoformat() == value


def validate_date(value: object) -> str:
    if not is_valid_date(value):
        raise InvalidDate(value)
    return value


class Ledger:
    """
    Process-scoped handle on the bookings table.

    Call ``init()`` on startup and ``close()`` on shutdown. Each operation
    runs in its own session, so one ``Ledger`` can serve concurrent requests.
    """

    def __init__(self, database_url: str, lock_timeout: float = 5.0):
        self.database_url = database_url
        self.lock_timeout = lock_timeout
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker] = None

    async def init(self):
        if self._engine is not None:
            return
        engine = create_engine(self.database_url, lock_timeout=self.lock_timeout)
        try:
            await init_db(engine)
        except OperationalError as exc:
            await engine.dispose()
            logger.error(f"Could not open booking storage: {exc}")
            raise StorageUnavailable() from exc
        self._engine = engine
        self._sessionmaker = get_sessionmaker(engine)
        logger.info("Booking ledger ready")

    async def close(self):
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Booking ledger closed")

    def _session(self):
        if self._sessionmaker is None:
            raise StorageUnavailable("Booking ledger is not initialised")
        return self._sessionmaker()

    async def list_ordered(self) -> List[Booking]:
        """All live bookings, earliest date first."""
        try:
            async with self._session() as session:
                result = await session.execute(select(Booking).order_by(Booking.date))
                return list(result.scalars().all())
        except OperationalError as exc:
            logger.error(f"Failed to list bookings: {exc}")
            raise StorageUnavailable() from exc

    async def get_by_date(self, date: str) -> Optional[Booking]:
        try:
            async with self._session() as session:
                result = await session.execute(select(Booking).where(Booking.date == date))
                return result.scalar_one_or_none()
        except OperationalError as exc:
            logger.error(f"Failed to look up booking for {date}: {exc}")
            raise StorageUnavailable() from exc

    async def create(
        self,
        date: str,
        employee_name: Optional[str] = None,
        employee_email: Optional[str] = None,
    ) -> Booking:
        """
        Store a booking for ``date`` and return the stored row.

        Raises ``InvalidDate`` before any storage access, and
        ``DateAlreadyBooked`` when another booking holds the date.
        """
        validate_date(date)

        new_booking = Booking(
            date=date,
            employee_name=employee_name,
            employee_email=employee_email,
        )

        try:
            async with self._session() as session:
                try:
                    # Insert and read back id/created_at in one transaction
                    session.add(new_booking)
                    await session.flush()
                    await session.refresh(new_booking)
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    conflict = exc
                else:
                    conflict = None
        except OperationalError as exc:
            logger.error(f"Failed to create booking for {date}: {exc}")
            raise StorageUnavailable() from exc

        if conflict is not None:
            # Confirm the violation is on the date key, not some other constraint
            if await self.get_by_date(date) is not None:
                logger.info(f"Rejected booking for {date}: already booked")
                raise DateAlreadyBooked(date) from conflict
            raise conflict

        logger.info(f"Booked {date} (id={new_booking.id})")
        return new_booking

    async def delete_by_date(self, date: str) -> bool:
        """Remove the booking for ``date``. Returns whether a row was removed."""
        try:
            async with self._session() as session:
                result = await session.execute(delete(Booking).where(Booking.date == date))
                await session.commit()
        except OperationalError as exc:
            logger.error(f"Failed to delete booking for {date}: {exc}")
            raise StorageUnavailable() from exc

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted booking for {date}")
        return deleted
