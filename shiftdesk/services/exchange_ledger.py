"""
ExchangeLedger: persistence and invariants of shift exchange requests.

Per shift there is at most one PENDING request, and at most one approved
SWAP/HANDOVER that has not been released by an admin. The first rule is also
backed by a partial unique index, so two concurrent creators cannot both win.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.core.errors import (
    DuplicateActiveRequest, InvalidParticipants, InvalidState, NotFound, Unauthorized,
)
from shiftdesk.models.employee import Employee
from shiftdesk.models.enums import REQUEST_TYPES, ExchangeStatus, ExchangeType
from shiftdesk.models.shift_exchange import ShiftExchange
from shiftdesk.models.user import User
from shiftdesk.services.shift_repository import ShiftRepository

logger = logging.getLogger(__name__)


class ExchangeLedger:

    def __init__(self, db: AsyncSession, business_id: uuid.UUID):
        self.db = db
        self.business_id = business_id
        self.shifts = ShiftRepository(db, business_id)

    # ── Lookups ──────────────────────────────────────────────────────────────

    async def get(self, request_id: uuid.UUID, for_update: bool = False) -> ShiftExchange:
        stmt = select(ShiftExchange).where(
            ShiftExchange.id == request_id,
            ShiftExchange.business_id == self.business_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFound("Exchange request not found")
        return request

    async def get_employee(self, employee_id: uuid.UUID) -> Employee:
        """An employee that can still receive shifts."""
        result = await self.db.execute(
            select(Employee).where(
                Employee.id == employee_id,
                Employee.business_id == self.business_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise NotFound("Employee not found")
        if not employee.is_active:
            raise InvalidParticipants("Employee is inactive and cannot take over shifts")
        return employee

    async def find_pending(self, shift_id: uuid.UUID) -> ShiftExchange | None:
        result = await self.db.execute(
            select(ShiftExchange).where(
                ShiftExchange.shift_id == shift_id,
                ShiftExchange.status == ExchangeStatus.PENDING.value,
            )
        )
        return result.scalar_one_or_none()

    async def find_active_approved(self, shift_id: uuid.UUID) -> ShiftExchange | None:
        """An approved SWAP/HANDOVER that still locks the shift."""
        result = await self.db.execute(
            select(ShiftExchange)
            .where(
                ShiftExchange.shift_id == shift_id,
                ShiftExchange.status == ExchangeStatus.APPROVED.value,
                ShiftExchange.type.in_(REQUEST_TYPES),
                ShiftExchange.released_at.is_(None),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    # ── Commands ─────────────────────────────────────────────────────────────

    async def create_request(
        self,
        shift_id: uuid.UUID,
        from_employee_id: uuid.UUID,
        to_employee_id: uuid.UUID,
        type: str,
        reason: str | None = None,
        counterpart_shift_id: uuid.UUID | None = None,
        requested_by: uuid.UUID | None = None,
    ) -> ShiftExchange:
        type = ExchangeType(type).value
        if type not in REQUEST_TYPES:
            raise InvalidParticipants("Direct exchanges are executed immediately, not requested")

        shift = await self.shifts.find_shift(shift_id)
        if shift is None:
            raise NotFound("Shift not found")
        await self.get_employee(to_employee_id)

        if shift.employee_id is None:
            raise InvalidParticipants("Shift has no assigned employee")
        if shift.employee_id != from_employee_id:
            raise InvalidParticipants("Requesting employee does not own this shift")
        if to_employee_id == from_employee_id:
            raise InvalidParticipants("Cannot exchange a shift with the same employee")

        if counterpart_shift_id is not None:
            if type != ExchangeType.SWAP.value:
                raise InvalidParticipants("Only swaps can name a counterpart shift")
            if counterpart_shift_id == shift_id:
                raise InvalidParticipants("A shift cannot be swapped with itself")
            counterpart = await self.shifts.find_shift(counterpart_shift_id)
            if counterpart is None:
                raise NotFound("Counterpart shift not found")
            if counterpart.employee_id != to_employee_id:
                raise InvalidParticipants("Counterpart shift does not belong to the target employee")

        if await self.find_pending(shift_id) is not None:
            raise DuplicateActiveRequest("A pending exchange request already exists for this shift")
        if await self.find_active_approved(shift_id) is not None:
            raise DuplicateActiveRequest("Shift is locked by an approved exchange")

        request = ShiftExchange(
            business_id=self.business_id,
            shift_id=shift_id,
            counterpart_shift_id=counterpart_shift_id,
            from_employee_id=from_employee_id,
            to_employee_id=to_employee_id,
            type=type,
            status=ExchangeStatus.PENDING.value,
            reason=reason or f"{type} request",
            requested_by=requested_by,
            requested_at=datetime.now(timezone.utc),
        )
        self.db.add(request)
        try:
            await self.db.flush()
        except IntegrityError:
            # lost the race against a concurrent creator
            await self.db.rollback()
            raise DuplicateActiveRequest("A pending exchange request already exists for this shift")

        logger.info(
            "Exchange request %s created: %s shift %s from %s to %s",
            request.id, type, shift_id, from_employee_id, to_employee_id,
        )
        return request

    async def cancel(self, request_id: uuid.UUID, actor: User) -> ShiftExchange:
        request = await self.get(request_id, for_update=True)

        if not actor.is_privileged and actor.id != request.requested_by:
            from_employee = await self.db.get(Employee, request.from_employee_id)
            if from_employee is None or from_employee.user_id != actor.id:
                raise Unauthorized("Only the requester or an admin can cancel this request")

        if request.status != ExchangeStatus.PENDING.value:
            raise InvalidState(f"Cannot cancel a request with status {request.status}")

        request.status = ExchangeStatus.CANCELLED.value
        await self.db.flush()
        logger.info("Exchange request %s cancelled by user %s", request.id, actor.id)
        return request

    # ── Queries ──────────────────────────────────────────────────────────────

    async def list_requests(
        self,
        employee_id: uuid.UUID | None = None,
        shift_id: uuid.UUID | None = None,
        status: str | None = None,
    ) -> list[ShiftExchange]:
        conditions = [
            ShiftExchange.business_id == self.business_id,
            ShiftExchange.type.in_(REQUEST_TYPES),
        ]
        if employee_id:
            conditions.append(or_(
                ShiftExchange.from_employee_id == employee_id,
                ShiftExchange.to_employee_id == employee_id,
            ))
        if shift_id:
            conditions.append(ShiftExchange.shift_id == shift_id)
        if status:
            conditions.append(ShiftExchange.status == status)

        result = await self.db.execute(
            select(ShiftExchange).where(*conditions).order_by(ShiftExchange.requested_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending(
        self, employee_id: uuid.UUID | None = None, shift_id: uuid.UUID | None = None
    ) -> list[ShiftExchange]:
        return await self.list_requests(employee_id, shift_id, ExchangeStatus.PENDING.value)

    async def history(self, shift_id: uuid.UUID) -> list[ShiftExchange]:
        """Every exchange row of the shift, direct exchanges included, newest first."""
        if await self.shifts.find_shift(shift_id) is None:
            raise NotFound("Shift not found")
        result = await self.db.execute(
            select(ShiftExchange)
            .where(
                ShiftExchange.business_id == self.business_id,
                ShiftExchange.shift_id == shift_id,
            )
            .order_by(ShiftExchange.requested_at.desc())
        )
        return list(result.scalars().all())
