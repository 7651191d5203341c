"""
ExchangeResolver: moves exchange requests through PENDING -> APPROVED | REJECTED
and performs the shift reassignment.

Every method only flushes. The caller commits once, so a domain error raised
midway leaves nothing behind once the session is rolled back.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.core.errors import InvalidParticipants, InvalidState, NotFound
from shiftdesk.models.enums import REQUEST_TYPES, ExchangeStatus, ExchangeType
from shiftdesk.models.shift import Shift
from shiftdesk.models.shift_exchange import ShiftExchange
from shiftdesk.services.audit import write_audit
from shiftdesk.services.conflict_checker import ConflictChecker
from shiftdesk.services.exchange_ledger import ExchangeLedger
from shiftdesk.services.shift_repository import ShiftRepository

logger = logging.getLogger(__name__)


class ExchangeResolver:

    def __init__(self, db: AsyncSession, business_id: uuid.UUID):
        self.db = db
        self.business_id = business_id
        self.shifts = ShiftRepository(db, business_id)
        self.ledger = ExchangeLedger(db, business_id)
        self.conflicts = ConflictChecker(self.shifts)

    async def _pending_request(self, request_id: uuid.UUID) -> ShiftExchange:
        request = await self.ledger.get(request_id, for_update=True)
        if request.status != ExchangeStatus.PENDING.value:
            logger.warning("Refused transition of request %s in status %s", request.id, request.status)
            raise InvalidState(f"Request is already {request.status}")
        return request

    async def _ensure_free(self, employee_id: uuid.UUID, shift: Shift) -> None:
        await self.conflicts.ensure_free(
            employee_id, shift.date, shift.start_time, shift.end_time,
            exclude_shift_ids=(shift.id,),
        )

    async def approve(self, request_id: uuid.UUID, approver_id: uuid.UUID) -> ShiftExchange:
        request = await self._pending_request(request_id)

        shift = await self.shifts.find_shift(request.shift_id, for_update=True)
        if shift is None:
            raise NotFound("Shift not found")
        if shift.employee_id != request.from_employee_id:
            raise InvalidState("Shift ownership changed since the request was made")
        await self.ledger.get_employee(request.to_employee_id)

        counterpart = None
        if request.type == ExchangeType.SWAP.value and request.counterpart_shift_id is not None:
            counterpart = await self.shifts.find_shift(request.counterpart_shift_id, for_update=True)
            if counterpart is None:
                raise NotFound("Counterpart shift not found")
            if counterpart.employee_id != request.to_employee_id:
                raise InvalidState("Counterpart shift ownership changed since the request was made")

        # all checks before the first write
        await self._ensure_free(request.to_employee_id, shift)
        if counterpart is not None:
            await self._ensure_free(request.from_employee_id, counterpart)

        await self.shifts.update_shift_assignee(shift, request.to_employee_id)
        if counterpart is not None:
            await self.shifts.update_shift_assignee(counterpart, request.from_employee_id)

        now = datetime.now(timezone.utc)
        request.status = ExchangeStatus.APPROVED.value
        request.approved_at = now
        request.exchanged_at = now
        request.approved_by = approver_id
        write_audit(self.db, business_id=self.business_id, user_id=approver_id,
                    entity_type="shift_exchange", entity_id=request.id, action="approve",
                    old_values={"employee_id": str(request.from_employee_id)},
                    new_values={"employee_id": str(request.to_employee_id)})
        await self.db.flush()

        logger.info(
            "Exchange request %s approved by %s: shift %s -> employee %s",
            request.id, approver_id, shift.id, request.to_employee_id,
        )
        return request

    async def reject(self, request_id: uuid.UUID, approver_id: uuid.UUID) -> ShiftExchange:
        request = await self._pending_request(request_id)
        request.status = ExchangeStatus.REJECTED.value
        request.approved_at = datetime.now(timezone.utc)
        request.approved_by = approver_id
        await self.db.flush()
        logger.info("Exchange request %s rejected by %s", request.id, approver_id)
        return request

    async def release(self, request_id: uuid.UUID, actor_id: uuid.UUID) -> ShiftExchange:
        """Lift the lock an approved swap/handover holds on its shift."""
        request = await self.ledger.get(request_id, for_update=True)
        if request.status != ExchangeStatus.APPROVED.value or request.type not in REQUEST_TYPES:
            raise InvalidState("Only approved swap or handover requests can be released")
        if request.released_at is not None:
            raise InvalidState("Request was already released")
        request.released_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info("Exchange request %s released by %s", request.id, actor_id)
        return request

    async def direct_exchange(
        self, shift_id: uuid.UUID, new_employee_id: uuid.UUID, actor_id: uuid.UUID
    ) -> tuple[Shift, ShiftExchange]:
        """Reassign immediately and record a completed DIRECT history row."""
        shift = await self.shifts.find_shift(shift_id, for_update=True)
        if shift is None:
            raise NotFound("Shift not found")
        await self.ledger.get_employee(new_employee_id)

        if shift.employee_id is None:
            raise InvalidParticipants("Shift has no assigned employee")
        if shift.employee_id == new_employee_id:
            raise InvalidParticipants("Shift is already assigned to this employee")

        await self._ensure_free(new_employee_id, shift)

        previous_employee_id = shift.employee_id
        await self.shifts.update_shift_assignee(shift, new_employee_id)

        now = datetime.now(timezone.utc)
        record = ShiftExchange(
            business_id=self.business_id,
            shift_id=shift.id,
            from_employee_id=previous_employee_id,
            to_employee_id=new_employee_id,
            type=ExchangeType.DIRECT.value,
            status=ExchangeStatus.APPROVED.value,
            reason="Direct exchange",
            requested_by=actor_id,
            requested_at=now,
            approved_by=actor_id,
            approved_at=now,
            exchanged_at=now,
        )
        self.db.add(record)
        write_audit(self.db, business_id=self.business_id, user_id=actor_id,
                    entity_type="shift", entity_id=shift.id, action="direct_exchange",
                    old_values={"employee_id": str(previous_employee_id)},
                    new_values={"employee_id": str(new_employee_id)})
        await self.db.flush()

        logger.info(
            "Shift %s directly exchanged by %s: employee %s -> %s",
            shift.id, actor_id, previous_employee_id, new_employee_id,
        )
        return shift, record
