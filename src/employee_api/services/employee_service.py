"""Employee service for managing the employee directory."""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from employee_api.exceptions import (
    CircularManagementError,
    DuplicateRecordError,
    EmailAlreadyExistsError,
    EmployeeAPIError,
    EmployeeHasDirectReportsError,
    EmployeeNotFoundError,
    ManagerNotFoundError,
    RepositoryError,
)
from employee_api.models.domain.audit_log import AuditOperation
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus
from employee_api.models.domain.events import (
    employee_created,
    employee_deleted,
    employee_salary_changed,
    employee_status_changed,
    employee_updated,
)
from employee_api.models.domain.query import (
    EmployeeFilter,
    EmployeeSort,
    EmployeeSortField,
    Page,
    Pagination,
    SortDirection,
)
from employee_api.models.dto.employee import EmployeeCreate, EmployeeUpdate
from employee_api.repositories.ports import EmployeeRepository
from employee_api.services.audit_service import AuditContext, AuditService, OperationResult

logger = logging.getLogger(__name__)


class EmployeeService:
    """Service for employee operations.

    Every mutation persists first, then writes the audit log and publishes
    the domain event. Failures of those last two steps are returned as
    advisories on the :class:`OperationResult`.
    """

    def __init__(self, employee_repo: EmployeeRepository, audit_service: AuditService) -> None:
        """Initialize service with its collaborators."""
        self.employee_repo = employee_repo
        self.audit_service = audit_service

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _get(self, employee_id: UUID) -> Employee:
        employee = await self.employee_repo.get_by_id(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    async def _check_manager(self, employee_id: UUID, manager_id: UUID) -> None:
        """Ensure the manager exists and is not a subordinate of the employee.

        Raises:
            ManagerNotFoundError: If the manager does not exist
            CircularManagementError: If the employee is in the manager's chain
        """
        manager = await self.employee_repo.get_by_id(manager_id)
        if manager is None:
            raise ManagerNotFoundError(manager_id)

        seen = {manager.id}
        current = manager
        while current.manager_id is not None:
            if current.manager_id == employee_id:
                raise CircularManagementError(employee_id, manager_id)
            if current.manager_id in seen:
                break
            seen.add(current.manager_id)
            parent = await self.employee_repo.get_by_id(current.manager_id)
            if parent is None:
                break
            current = parent

    async def _save(self, employee: Employee, create: bool = False) -> Employee:
        """Persist an employee.

        Raises:
            EmailAlreadyExistsError: If the email is taken
            EmployeeNotFoundError: If the employee vanished before an update
            RepositoryError: If the write fails for any other reason
        """
        operation = "create" if create else "update"
        try:
            if create:
                return await self.employee_repo.create(employee)
            return await self.employee_repo.update(employee)
        except DuplicateRecordError as e:
            if e.field == "email":
                raise EmailAlreadyExistsError(employee.email) from e
            raise RepositoryError(
                f"Failed to {operation} employee",
                {"operation": operation, "employee_id": str(employee.id), **e.details},
            ) from e
        except EmployeeAPIError:
            raise
        except Exception as e:
            raise RepositoryError(
                f"Failed to {operation} employee",
                {"operation": operation, "employee_id": str(employee.id)},
            ) from e

    async def _create(self, employee: Employee) -> Employee:
        return await self._save(employee, create=True)

    async def _update(self, employee: Employee) -> Employee:
        return await self._save(employee)

    async def _record_change(
        self,
        operation: str,
        employee: Employee,
        before: dict[str, Any],
        changed: list[str],
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        after = employee.snapshot()
        advisories = await self.audit_service.record(
            operation,
            employee.id,
            actor_id,
            context,
            old_values={name: before[name] for name in changed},
            new_values={name: after[name] for name in changed},
        )
        advisories += await self.audit_service.publish(employee_updated(employee, changed))
        return OperationResult(employee, advisories)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def create_employee(
        self,
        data: EmployeeCreate,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Create an employee.

        Args:
            data: Employee fields
            actor_id: User performing the operation
            context: Client IP and user agent

        Returns:
            The created employee and any advisories

        Raises:
            EmailAlreadyExistsError: If another employee has the email
            ManagerNotFoundError: If the manager does not exist
            ValidationError: If a field is invalid
        """
        if await self.employee_repo.exists_by_email(data.email):
            raise EmailAlreadyExistsError(data.email)
        if data.manager_id is not None and not await self.employee_repo.exists_by_id(data.manager_id):
            raise ManagerNotFoundError(data.manager_id)

        employee = Employee.create(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
            department=data.department,
            position=data.position,
            hire_date=data.hire_date,
            salary=data.salary,
            manager_id=data.manager_id,
            address=data.address.model_dump() if data.address else None,
        )
        employee = await self._create(employee)
        logger.info("Employee created: id=%s department=%s", employee.id, employee.department)

        advisories = await self.audit_service.record(
            AuditOperation.EMPLOYEE_CREATE,
            employee.id,
            actor_id,
            context,
            new_values=employee.snapshot(),
        )
        advisories += await self.audit_service.publish(employee_created(employee))
        return OperationResult(employee, advisories)

    async def update_employee(
        self,
        employee_id: UUID,
        update: EmployeeUpdate,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Apply a partial update.

        Only the fields present in ``update`` are considered. An update that
        changes nothing is not persisted, audited or published.

        Args:
            employee_id: Employee UUID
            update: Fields to change
            actor_id: User performing the operation
            context: Client IP and user agent

        Returns:
            The updated employee and any advisories

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            EmailAlreadyExistsError: If the new email belongs to another employee
            ManagerNotFoundError: If the new manager does not exist
            CircularManagementError: If the new manager reports to the employee
            TerminatedEmployeeError: If a locked field changes after termination
            ValidationError: If a value is invalid
        """
        employee = await self._get(employee_id)
        before = employee.snapshot()
        changed = employee.apply_changes(update.to_changes())
        if not changed:
            return OperationResult(employee)

        if "email" in changed and await self.employee_repo.exists_by_email(
            employee.email, exclude_id=employee.id
        ):
            raise EmailAlreadyExistsError(employee.email)
        if "manager_id" in changed and employee.manager_id is not None:
            await self._check_manager(employee.id, employee.manager_id)

        employee = await self._update(employee)
        logger.info("Employee updated: id=%s fields=%s", employee.id, ",".join(changed))
        return await self._record_change(
            AuditOperation.EMPLOYEE_UPDATE, employee, before, changed, actor_id, context
        )

    async def delete_employee(
        self,
        employee_id: UUID,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[None]:
        """Delete an employee who manages nobody.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            EmployeeHasDirectReportsError: If anyone reports to the employee
        """
        employee = await self._get(employee_id)
        reports = await self.employee_repo.find_by_manager_id(employee_id)
        if reports:
            raise EmployeeHasDirectReportsError(employee_id, len(reports))

        snapshot = employee.snapshot()
        if not await self.employee_repo.delete(employee_id):
            raise EmployeeNotFoundError(employee_id)
        logger.info("Employee deleted: id=%s", employee_id)

        advisories = await self.audit_service.record(
            AuditOperation.EMPLOYEE_DELETE,
            employee_id,
            actor_id,
            context,
            old_values=snapshot,
        )
        advisories += await self.audit_service.publish(employee_deleted(employee_id, snapshot))
        return OperationResult(None, advisories)

    async def change_employee_status(
        self,
        employee_id: UUID,
        status: EmployeeStatus | str,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Move an employee to a new status.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            InvalidStatusTransitionError: If the employee is terminated
        """
        employee = await self._get(employee_id)
        old_status = employee.status
        employee.change_status(status)
        employee = await self._update(employee)
        logger.info(
            "Employee status changed: id=%s %s -> %s", employee.id, old_status, employee.status
        )

        advisories = await self.audit_service.record(
            AuditOperation.EMPLOYEE_CHANGE_STATUS,
            employee.id,
            actor_id,
            context,
            old_values={"status": old_status.value},
            new_values={"status": employee.status.value},
        )
        advisories += await self.audit_service.publish(
            employee_status_changed(employee.id, old_status, employee.status, actor_id)
        )
        return OperationResult(employee, advisories)

    async def update_employee_salary(
        self,
        employee_id: UUID,
        salary: Decimal | int | float,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Set a new salary.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            ValidationError: If the salary is out of range
            TerminatedEmployeeError: If the employee is terminated
        """
        employee = await self._get(employee_id)
        old_salary = employee.salary
        employee.update_salary(salary)
        employee = await self._update(employee)
        logger.info("Employee salary updated: id=%s", employee.id)

        advisories = await self.audit_service.record(
            AuditOperation.EMPLOYEE_UPDATE_SALARY,
            employee.id,
            actor_id,
            context,
            old_values={"salary": float(old_salary)},
            new_values={"salary": float(employee.salary)},
        )
        advisories += await self.audit_service.publish(
            employee_salary_changed(employee.id, float(old_salary), float(employee.salary), actor_id)
        )
        return OperationResult(employee, advisories)

    async def update_employee_position(
        self,
        employee_id: UUID,
        position: str,
        department: str,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Change position and department together.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            ValidationError: If either value is invalid
            TerminatedEmployeeError: If the employee is terminated
        """
        employee = await self._get(employee_id)
        before = employee.snapshot()
        employee.update_position(position, department)
        changed = [
            name for name in ("department", "position") if getattr(employee, name) != before[name]
        ]
        if not changed:
            return OperationResult(employee)

        employee = await self._update(employee)
        return await self._record_change(
            AuditOperation.EMPLOYEE_UPDATE_POSITION, employee, before, changed, actor_id, context
        )

    async def update_employee_address(
        self,
        employee_id: UUID,
        address: dict[str, Any] | None,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Replace or clear the postal address.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            ValidationError: If the address is incomplete or malformed
        """
        employee = await self._get(employee_id)
        before = employee.snapshot()
        employee.update_address(address)
        if employee.snapshot()["address"] == before["address"]:
            return OperationResult(employee)

        employee = await self._update(employee)
        return await self._record_change(
            AuditOperation.EMPLOYEE_UPDATE_ADDRESS, employee, before, ["address"], actor_id, context
        )

    async def set_employee_manager(
        self,
        employee_id: UUID,
        manager_id: UUID | None,
        actor_id: str,
        context: AuditContext,
    ) -> OperationResult[Employee]:
        """Assign or remove an employee's manager.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
            ValidationError: If the employee would manage themselves
            ManagerNotFoundError: If the manager does not exist
            CircularManagementError: If the manager reports to the employee
        """
        employee = await self._get(employee_id)
        if employee.manager_id == manager_id:
            return OperationResult(employee)

        before = employee.snapshot()
        employee.set_manager(manager_id)
        if manager_id is not None:
            await self._check_manager(employee.id, manager_id)

        employee = await self._update(employee)
        return await self._record_change(
            AuditOperation.EMPLOYEE_SET_MANAGER, employee, before, ["manager_id"], actor_id, context
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_employee_by_id(self, employee_id: UUID) -> Employee:
        """Get an employee.

        Raises:
            EmployeeNotFoundError: If the employee does not exist
        """
        return await self._get(employee_id)

    async def list_employees(
        self,
        filter: EmployeeFilter | None = None,
        sort: EmployeeSort | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Employee]:
        return await self.employee_repo.list(filter, sort, pagination)

    async def search_employees(
        self,
        term: str,
        department: str | None = None,
        status: EmployeeStatus | None = None,
        pagination: Pagination | None = None,
    ) -> Page[Employee]:
        """Search names and emails, ordered by name."""
        return await self.employee_repo.list(
            EmployeeFilter(search=term, department=department, status=status),
            EmployeeSort(field=EmployeeSortField.NAME, direction=SortDirection.ASC),
            pagination,
        )

    async def get_direct_reports(self, manager_id: UUID) -> list[Employee]:
        """List the employees reporting to a manager.

        Raises:
            EmployeeNotFoundError: If the manager does not exist
        """
        if not await self.employee_repo.exists_by_id(manager_id):
            raise EmployeeNotFoundError(manager_id)
        return await self.employee_repo.find_by_manager_id(manager_id)
