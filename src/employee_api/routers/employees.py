"""Employees router."""

from datetime import date
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, status

from employee_api.constants.validation import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from employee_api.dependencies import get_audit_context, get_employee_service
from employee_api.models.domain.employee import Employee
from employee_api.models.domain.employee_status import EmployeeStatus, parse_employee_status
from employee_api.models.domain.query import (
    EmployeeFilter,
    EmployeeSort,
    EmployeeSortField,
    Page,
    Pagination,
    SortDirection,
)
from employee_api.models.domain.user_role import Permission
from employee_api.models.dto.common import DeleteResponse, warnings_from
from employee_api.models.dto.employee import (
    AddressPayload,
    EmployeeCreate,
    EmployeeListResponse,
    EmployeeMutationResponse,
    EmployeeResponse,
    EmployeeUpdate,
    ManagerUpdateRequest,
    PositionUpdateRequest,
    SalaryUpdateRequest,
    StatusChangeRequest,
)
from employee_api.security.auth import CurrentUser, require_permission
from employee_api.services.audit_service import AuditContext, OperationResult
from employee_api.services.employee_service import EmployeeService
from employee_api.utils.validation import sanitize_department, sanitize_search

router = APIRouter()

ReadUser = Annotated[CurrentUser, Depends(require_permission(Permission.EMPLOYEE_READ))]
WriteUser = Annotated[CurrentUser, Depends(require_permission(Permission.EMPLOYEE_WRITE))]
Service = Annotated[EmployeeService, Depends(get_employee_service)]
Context = Annotated[AuditContext, Depends(get_audit_context)]


def _list_response(page: Page[Employee], current_user: CurrentUser) -> EmployeeListResponse:
    include_salary = current_user.can_access_salary()
    return EmployeeListResponse(
        items=[EmployeeResponse.from_domain(e, include_salary) for e in page.items],
        total=page.total,
        page=page.page,
        page_size=page.page_size,
        has_next=page.has_next,
        has_prev=page.has_prev,
        next_cursor=page.next_cursor,
        prev_cursor=page.prev_cursor,
    )


def _mutation_response(
    result: OperationResult[Employee], current_user: CurrentUser
) -> EmployeeMutationResponse:
    return EmployeeMutationResponse(
        employee=EmployeeResponse.from_domain(result.value, current_user.can_access_salary()),
        warnings=warnings_from(result.advisories),
    )


def _pagination(page: int, page_size: int, cursor: str | None) -> Pagination:
    if cursor is not None:
        return Pagination.after(cursor, page_size)
    return Pagination.of(page, page_size)


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    current_user: ReadUser,
    service: Service,
    department: str | None = Query(default=None, max_length=100),
    status_filter: EmployeeStatus | None = Query(default=None, alias="status"),
    manager_id: UUID | None = None,
    search: str | None = Query(default=None, max_length=200),
    min_salary: Decimal | None = Query(default=None, ge=0),
    max_salary: Decimal | None = Query(default=None, ge=0),
    hire_date_from: date | None = None,
    hire_date_to: date | None = None,
    sort_by: EmployeeSortField = EmployeeSortField.CREATED_AT,
    sort_order: SortDirection = SortDirection.DESC,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    cursor: str | None = Query(default=None, max_length=100),
) -> EmployeeListResponse:
    """List employees with filters, sorting and pagination.

    Salary filters and salaries in the response are only honored for roles
    that may see compensation.
    """
    can_see_salary = current_user.can_access_salary()
    filter = EmployeeFilter(
        department=sanitize_department(department),
        status=status_filter,
        manager_id=manager_id,
        search=sanitize_search(search),
        min_salary=min_salary if can_see_salary else None,
        max_salary=max_salary if can_see_salary else None,
        hire_date_from=hire_date_from,
        hire_date_to=hire_date_to,
    )
    if sort_by is EmployeeSortField.SALARY and not can_see_salary:
        sort_by = EmployeeSortField.CREATED_AT
    page_result = await service.list_employees(
        filter,
        EmployeeSort(field=sort_by, direction=sort_order),
        _pagination(page, page_size, cursor),
    )
    return _list_response(page_result, current_user)


@router.get("/search", response_model=EmployeeListResponse)
async def search_employees(
    current_user: ReadUser,
    service: Service,
    q: str = Query(min_length=1, max_length=200),
    department: str | None = Query(default=None, max_length=100),
    status_filter: EmployeeStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> EmployeeListResponse:
    """Search employees by name or email, ordered by name."""
    page_result = await service.search_employees(
        sanitize_search(q) or "",
        department=sanitize_department(department),
        status=status_filter,
        pagination=Pagination.of(page, page_size),
    )
    return _list_response(page_result, current_user)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(
    employee_id: UUID,
    current_user: ReadUser,
    service: Service,
) -> EmployeeResponse:
    """Get an employee by ID."""
    employee = await service.get_employee_by_id(employee_id)
    return EmployeeResponse.from_domain(employee, current_user.can_access_salary())


@router.get("/{employee_id}/reports", response_model=list[EmployeeResponse])
async def get_direct_reports(
    employee_id: UUID,
    current_user: ReadUser,
    service: Service,
) -> list[EmployeeResponse]:
    """List the employees who report directly to an employee."""
    reports = await service.get_direct_reports(employee_id)
    include_salary = current_user.can_access_salary()
    return [EmployeeResponse.from_domain(e, include_salary) for e in reports]


@router.post("", response_model=EmployeeMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    request: EmployeeCreate,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Create an employee."""
    result = await service.create_employee(request, str(current_user.id), context)
    return _mutation_response(result, current_user)


@router.patch("/{employee_id}", response_model=EmployeeMutationResponse)
async def update_employee(
    employee_id: UUID,
    request: EmployeeUpdate,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Apply a partial update; only fields present in the body change."""
    result = await service.update_employee(employee_id, request, str(current_user.id), context)
    return _mutation_response(result, current_user)


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_permission(Permission.EMPLOYEE_DELETE))],
    service: Service,
    context: Context,
) -> DeleteResponse:
    """Delete an employee without direct reports."""
    result = await service.delete_employee(employee_id, str(current_user.id), context)
    return DeleteResponse(warnings=warnings_from(result.advisories))


@router.post("/{employee_id}/status", response_model=EmployeeMutationResponse)
async def change_employee_status(
    employee_id: UUID,
    request: StatusChangeRequest,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Move an employee to ACTIVE, ON_LEAVE or TERMINATED."""
    result = await service.change_employee_status(
        employee_id, parse_employee_status(request.status), str(current_user.id), context
    )
    return _mutation_response(result, current_user)


@router.post("/{employee_id}/salary", response_model=EmployeeMutationResponse)
async def update_employee_salary(
    employee_id: UUID,
    request: SalaryUpdateRequest,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Set an employee's salary."""
    result = await service.update_employee_salary(
        employee_id, request.salary, str(current_user.id), context
    )
    return _mutation_response(result, current_user)


@router.put("/{employee_id}/position", response_model=EmployeeMutationResponse)
async def update_employee_position(
    employee_id: UUID,
    request: PositionUpdateRequest,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Change an employee's position and department together."""
    result = await service.update_employee_position(
        employee_id, request.position, request.department, str(current_user.id), context
    )
    return _mutation_response(result, current_user)


@router.put("/{employee_id}/address", response_model=EmployeeMutationResponse)
async def update_employee_address(
    employee_id: UUID,
    current_user: WriteUser,
    service: Service,
    context: Context,
    request: Annotated[AddressPayload | None, Body()] = None,
) -> EmployeeMutationResponse:
    """Replace an employee's address; an empty body clears it."""
    result = await service.update_employee_address(
        employee_id,
        request.model_dump() if request else None,
        str(current_user.id),
        context,
    )
    return _mutation_response(result, current_user)


@router.put("/{employee_id}/manager", response_model=EmployeeMutationResponse)
async def set_employee_manager(
    employee_id: UUID,
    request: ManagerUpdateRequest,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> EmployeeMutationResponse:
    """Assign or remove an employee's manager."""
    result = await service.set_employee_manager(
        employee_id, request.manager_id, str(current_user.id), context
    )
    return _mutation_response(result, current_user)
