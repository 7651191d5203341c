import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from shiftdesk.models.audit import AuditLog


def write_audit(
    db: AsyncSession,
    *,
    business_id: uuid.UUID,
    user_id: uuid.UUID | None,
    entity_type: str,
    entity_id: uuid.UUID | None,
    action: str,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    log = AuditLog(
        business_id=business_id,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(log)
    return log
