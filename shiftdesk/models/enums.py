from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


PRIVILEGED_ROLES = (UserRole.ADMIN.value, UserRole.MANAGER.value)


class ShiftType(str, Enum):
    NORMAL = "NORMAL"
    OVERTIME = "OVERTIME"
    HOLIDAY = "HOLIDAY"
    TRAINING = "TRAINING"
    NIGHT = "NIGHT"


class WageType(str, Enum):
    HOURLY = "HOURLY"
    FIXED = "FIXED"   # flat amount per shift


class ExchangeType(str, Enum):
    SWAP = "SWAP"
    HANDOVER = "HANDOVER"
    DIRECT = "DIRECT"   # immediate reassignment, history only


REQUEST_TYPES = (ExchangeType.SWAP.value, ExchangeType.HANDOVER.value)


class ExchangeStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class PayrollPeriodStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class PayrollEntryStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PAID = "PAID"
