import uuid
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Numeric, Integer, Time, Date, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.core.database import Base

FOR_SALE_MARKER = "[FOR SALE]"


class Shift(Base):
    __tablename__ = "shifts"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    employee_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("employees.id"), nullable=True)
    employee_group_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("employee_groups.id", ondelete="SET NULL"), nullable=True
    )

    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)  # None = open (punched in)
    shift_type: Mapped[str] = mapped_column(String(20), default="NORMAL")

    wage: Mapped[float | None] = mapped_column(Numeric(8, 2), nullable=True)
    wage_type: Mapped[str] = mapped_column(String(20), default="HOURLY")  # HOURLY | FIXED
    approved: Mapped[bool] = mapped_column(Boolean, default=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    break_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_paid: Mapped[bool] = mapped_column(Boolean, default=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    employee: Mapped["Employee | None"] = relationship(back_populates="shifts", foreign_keys=[employee_id])

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    @property
    def is_for_sale(self) -> bool:
        return bool(self.note) and FOR_SALE_MARKER in self.note

    @property
    def duration_hours(self) -> float | None:
        if self.end_time is None:
            return None
        start = datetime.combine(self.date, self.start_time)
        end = datetime.combine(self.date, self.end_time)
        if end < start:
            end += timedelta(days=1)
        return (end - start).total_seconds() / 3600


Index("ix_shifts_employee_date", Shift.employee_id, Shift.date)
Index("ix_shifts_business_date", Shift.business_id, Shift.date)
