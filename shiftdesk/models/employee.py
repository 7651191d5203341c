import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.core.database import Base


class EmployeeGroup(Base):
    __tablename__ = "employee_groups"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    hourly_wage: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    wage_per_shift: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    default_wage_type: Mapped[str] = mapped_column(String(20), default="HOURLY")  # HOURLY | FIXED
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    employees: Mapped[list["Employee"]] = relationship(back_populates="employee_group")


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    employee_group_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("employee_groups.id", ondelete="SET NULL"), nullable=True
    )

    employee_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Touched whenever a shift is assigned to the employee. Two assignments
    # that both checked an outdated schedule cannot both commit.
    schedule_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    business: Mapped["Business"] = relationship(back_populates="employees")
    user: Mapped["User | None"] = relationship(back_populates="employee")
    employee_group: Mapped["EmployeeGroup | None"] = relationship(back_populates="employees")
    shifts: Mapped[list["Shift"]] = relationship(
        back_populates="employee", foreign_keys="Shift.employee_id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
