from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base


class BusSchedule(Base):
    """Timetable for one halt, keyed by its normalized name."""

    __tablename__ = "bus_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    halt_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    entries: Mapped[list["BusScheduleEntry"]] = relationship(
        back_populates="schedule", order_by="BusScheduleEntry.position"
    )


class BusScheduleEntry(Base):
    __tablename__ = "bus_schedule_entries"
    __table_args__ = (
        UniqueConstraint("schedule_id", "position", name="uq_schedule_entry_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    schedule_id: Mapped[int] = mapped_column(Integer, ForeignKey("bus_schedules.id"), nullable=False)
    bus_number: Mapped[str] = mapped_column(String(20), nullable=False)
    expected_time: Mapped[str] = mapped_column(String(16), nullable=False)  # "07:45" or "7:45 AM"
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    schedule: Mapped["BusSchedule"] = relationship(back_populates="entries")


class Route(Base):
    __tablename__ = "routes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    route_no: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    route_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    starting_halt: Mapped[str] = mapped_column(String(255), nullable=False)
    ending_halt: Mapped[str] = mapped_column(String(255), nullable=False)


class Bus(Base):
    __tablename__ = "buses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bus_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    route_no: Mapped[str] = mapped_column(String(20), nullable=False)
