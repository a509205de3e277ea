"""
EmployeeService -- registry of employees who receive or return stock.

Employees are reference data for the ledger.  This service exists so the
library can be used end to end; the ledger itself only reads employees.
"""

from uuid import UUID

from sqlalchemy import select

from stock_ledger.domain.values import EmployeeStatus
from stock_ledger.exceptions import DuplicateEmployeeCodeError, UnknownEmployeeError
from stock_ledger.logging_config import get_logger
from stock_ledger.models.employee import Employee
from stock_ledger.services.base import BaseService

logger = get_logger("services.employee")


class EmployeeService(BaseService[Employee]):
    """Write-side operations on the employee registry."""

    def get(self, employee_id: UUID) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise UnknownEmployeeError(str(employee_id))
        return employee

    def get_active(self, employee_id: UUID) -> Employee:
        """Load an employee who may be the counterpart of a new exit."""
        employee = self.get(employee_id)
        if not employee.is_active:
            raise UnknownEmployeeError(str(employee_id), reason="inactive")
        return employee

    def register(
        self,
        employee_code: str,
        full_name: str,
        area: str,
        actor: str,
        position: str | None = None,
        email: str | None = None,
    ) -> Employee:
        employee_code = employee_code.strip()
        existing = self.session.execute(
            select(Employee.id).where(Employee.employee_code == employee_code)
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateEmployeeCodeError(employee_code)

        employee = Employee(
            employee_code=employee_code,
            full_name=full_name.strip(),
            area=area.strip(),
            position=position,
            email=email,
            status=EmployeeStatus.ACTIVE.value,
            created_by=actor,
        )
        self.session.add(employee)
        self.session.flush()
        logger.info(
            "employee_registered",
            extra={"employee_id": str(employee.id), "employee_code": employee_code},
        )
        return employee

    def deactivate(self, employee_id: UUID, actor: str) -> Employee:
        employee = self.get(employee_id)
        if employee.is_active:
            employee.status = EmployeeStatus.INACTIVE.value
            employee.updated_by = actor
            self.session.flush()
            logger.info("employee_deactivated", extra={"employee_id": str(employee_id)})
        return employee
