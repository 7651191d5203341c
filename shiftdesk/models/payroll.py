import uuid
from datetime import date, datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Numeric, Text, Date, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.core.database import Base


class PayrollPeriod(Base):
    __tablename__ = "payroll_periods"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="OPEN")  # OPEN | CLOSED
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    entries: Mapped[list["PayrollEntry"]] = relationship(back_populates="payroll_period")


class PayrollEntry(Base):
    __tablename__ = "payroll_entries"
    __table_args__ = (
        UniqueConstraint("employee_id", "payroll_period_id", name="uq_payroll_entries_employee_period"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    employee_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    payroll_period_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("payroll_periods.id", ondelete="CASCADE"), nullable=False
    )

    # Hours
    total_hours: Mapped[float] = mapped_column(Numeric(7, 2), default=0)
    regular_hours: Mapped[float] = mapped_column(Numeric(7, 2), default=0)
    overtime_hours: Mapped[float] = mapped_column(Numeric(7, 2), default=0)

    # Wages
    regular_rate: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    overtime_rate: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    bonuses: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    deductions: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    gross_pay: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    net_pay: Mapped[float] = mapped_column(Numeric(10, 2), default=0)
    wage_calculation_method: Mapped[str] = mapped_column(String(20), default="none")  # shifts | employee_group | none

    # Status
    status: Mapped[str] = mapped_column(String(20), default="DRAFT")  # DRAFT | APPROVED | PAID
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    employee: Mapped["Employee"] = relationship()
    payroll_period: Mapped["PayrollPeriod"] = relationship(back_populates="entries")
