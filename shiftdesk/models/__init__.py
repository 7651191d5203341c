from shiftdesk.models.business import Business
from shiftdesk.models.user import User
from shiftdesk.models.employee import Employee, EmployeeGroup
from shiftdesk.models.shift import Shift
from shiftdesk.models.shift_exchange import ShiftExchange
from shiftdesk.models.payroll import PayrollPeriod, PayrollEntry
from shiftdesk.models.audit import AuditLog

__all__ = [
    "Business",
    "User",
    "Employee",
    "EmployeeGroup",
    "Shift",
    "ShiftExchange",
    "PayrollPeriod",
    "PayrollEntry",
    "AuditLog",
]
