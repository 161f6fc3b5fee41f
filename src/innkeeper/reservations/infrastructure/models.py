"""
Reservation Infrastructure Models
==================================

SQLAlchemy ORM models for the reservations module.

These are the database representations of our domain entities.
All instants are stored as Unix seconds.
"""

from typing import Optional

from sqlalchemy import BigInteger, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from innkeeper.config import TimeUnit
from innkeeper.infrastructure.database import Base


class ReservationModel(Base):
    """
    Database model for Reservation entity.

    Maps to the 'reservations' table.
    """
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("app", "component", name="uq_reservations_app_component"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    app: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    component: Mapped[str] = mapped_column(String(255), nullable=False)

    # Contract
    owner: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    notify: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    alert_msg: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False)
    time_units: Mapped[str] = mapped_column(String(16), nullable=False, default=TimeUnit.SECONDS.value)

    # Check-in tracking
    last_checkin_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, index=True)
    num_checkins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SnoozeModel(Base):
    """
    Database model for Snooze entity.

    Maps to the 'snoozes' table. expires_at is denormalized for querying.
    """
    __tablename__ = "snoozes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app: Mapped[str] = mapped_column(String(255), nullable=False)
    component: Mapped[str] = mapped_column(String(255), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    time_units: Mapped[str] = mapped_column(String(16), nullable=False)
    issued_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)


class HousekeepingModel(Base):
    """
    Append-only audit trail of lifecycle actions.

    Maps to the 'housekeeping' table.
    """
    __tablename__ = "housekeeping"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app: Mapped[str] = mapped_column(String(255), nullable=False)
    component: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)


class AlertModel(Base):
    """
    Failure alert raised by the coordinator.

    Maps to the 'alerts' table; source of the bad guest report.
    """
    __tablename__ = "alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    component: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    triggered_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
