from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint, text

class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # One live booking per date, enforced by the database itself
        UniqueConstraint("date", name="uq_bookings_date"),
        # Ids are never handed out twice, even after a delete
        {"sqlite_autoincrement": True},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str  # YYYY-MM-DD
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    created_at: Optional[datetime] = Field(
        default=None,
        nullable=False,
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP")},
    )
