import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shiftdesk.core.database import Base


class ShiftExchange(Base):
    """Exchange request (SWAP / HANDOVER) or direct-exchange history row (DIRECT)."""

    __tablename__ = "shift_exchanges"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    shift_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    counterpart_shift_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True
    )
    from_employee_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)
    to_employee_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("employees.id"), nullable=False)

    type: Mapped[str] = mapped_column(String(20), nullable=False)  # SWAP | HANDOVER | DIRECT
    status: Mapped[str] = mapped_column(String(20), default="PENDING")  # PENDING | APPROVED | REJECTED | CANCELLED
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    exchanged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    shift: Mapped["Shift"] = relationship(foreign_keys=[shift_id])
    counterpart_shift: Mapped["Shift | None"] = relationship(foreign_keys=[counterpart_shift_id])
    from_employee: Mapped["Employee"] = relationship(foreign_keys=[from_employee_id])
    to_employee: Mapped["Employee"] = relationship(foreign_keys=[to_employee_id])


# One PENDING request per shift, enforced by the database as well
Index(
    "uq_shift_exchanges_pending_shift",
    ShiftExchange.shift_id,
    unique=True,
    sqlite_where=text("status = 'PENDING'"),
    postgresql_where=text("status = 'PENDING'"),
)
Index("ix_shift_exchanges_shift_requested", ShiftExchange.shift_id, ShiftExchange.requested_at)
