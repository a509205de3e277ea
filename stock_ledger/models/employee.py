"""
Module: stock_ledger.models.employee
Responsibility: ORM persistence for employees who receive or return stock.
    Reference data for the ledger: movements point at employees, the ledger
    never changes them as a side effect of recording a movement.
Architecture position: Ledger > Models.  May import from db/base.py and domain/values.py.

Invariants enforced:
    - employee_code is unique (uq_employee_code).
    - Only ACTIVE employees can be the counterpart of a new exit.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_ledger.db.base import TrackedBase
from stock_ledger.domain.values import EmployeeStatus


class Employee(TrackedBase):
    """An employee who can receive deliveries or return items."""

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("employee_code", name="uq_employee_code"),
        Index("idx_employee_area", "area"),
    )

    employee_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    area: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    position: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    status: Mapped[EmployeeStatus] = mapped_column(
        String(20),
        nullable=False,
        default=EmployeeStatus.ACTIVE,
    )

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code}: {self.full_name} ({self.area})>"
