"""Users router."""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from employee_api.constants.validation import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from employee_api.dependencies import get_audit_context, get_user_service
from employee_api.models.domain.query import (
    Pagination,
    UserFilter,
    UserSort,
    UserSortField,
    SortDirection,
)
from employee_api.models.domain.user import User
from employee_api.models.domain.user_role import Permission, UserRole
from employee_api.models.dto.audit import AuditLogResponse
from employee_api.models.dto.common import warnings_from
from employee_api.models.dto.user import (
    PasswordResetRequest,
    UserCreate,
    UserListResponse,
    UserMutationResponse,
    UserResponse,
    UserUpdate,
)
from employee_api.security.auth import CurrentUser, require_permission
from employee_api.services.audit_service import AuditContext, OperationResult
from employee_api.services.user_service import UserService
from employee_api.utils.validation import sanitize_search

router = APIRouter()

ReadUser = Annotated[CurrentUser, Depends(require_permission(Permission.USER_READ))]
WriteUser = Annotated[CurrentUser, Depends(require_permission(Permission.USER_WRITE))]
Service = Annotated[UserService, Depends(get_user_service)]
Context = Annotated[AuditContext, Depends(get_audit_context)]


def _mutation_response(result: OperationResult[User]) -> UserMutationResponse:
    return UserMutationResponse(
        user=UserResponse.from_domain(result.value),
        warnings=warnings_from(result.advisories),
    )


@router.get("", response_model=UserListResponse)
async def list_users(
    current_user: ReadUser,
    service: Service,
    role: UserRole | None = None,
    is_active: bool | None = None,
    search: str | None = Query(default=None, max_length=200),
    sort_by: UserSortField = UserSortField.CREATED_AT,
    sort_order: SortDirection = SortDirection.DESC,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> UserListResponse:
    """List users with filters, sorting and pagination."""
    page_result = await service.list_users(
        UserFilter(role=role, is_active=is_active, search=sanitize_search(search)),
        UserSort(field=sort_by, direction=sort_order),
        Pagination.of(page, page_size),
    )
    return UserListResponse(
        items=[UserResponse.from_domain(u) for u in page_result.items],
        total=page_result.total,
        page=page_result.page,
        page_size=page_result.page_size,
        has_next=page_result.has_next,
        has_prev=page_result.has_prev,
    )


@router.get("/inactive", response_model=list[UserResponse])
async def get_inactive_users(
    current_user: ReadUser,
    service: Service,
    days: int = Query(default=30, ge=1, le=3650),
) -> list[UserResponse]:
    """List users who have not logged in for the given number of days."""
    since = datetime.now(timezone.utc) - timedelta(days=days)
    users = await service.get_inactive_users(since)
    return [UserResponse.from_domain(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    current_user: ReadUser,
    service: Service,
) -> UserResponse:
    """Get a user by ID."""
    return UserResponse.from_domain(await service.get_user_by_id(user_id))


@router.get("/{user_id}/activity", response_model=list[AuditLogResponse])
async def get_user_activity(
    user_id: UUID,
    current_user: Annotated[CurrentUser, Depends(require_permission(Permission.AUDIT_READ))],
    service: Service,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[AuditLogResponse]:
    """List the audit logs a user produced, newest first (default: last 30 days)."""
    end = end or datetime.now(timezone.utc)
    start = start or end - timedelta(days=30)
    await service.get_user_by_id(user_id)
    logs = await service.get_user_activity(str(user_id), start, end)
    return [AuditLogResponse.from_domain(log) for log in logs]


@router.post("", response_model=UserMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreate,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> UserMutationResponse:
    """Create a user account."""
    result = await service.create_user(request, str(current_user.id), context)
    return _mutation_response(result)


@router.patch("/{user_id}", response_model=UserMutationResponse)
async def update_user(
    user_id: UUID,
    request: UserUpdate,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> UserMutationResponse:
    """Update a user's username, email or role."""
    result = await service.update_user_profile(user_id, request, str(current_user.id), context)
    return _mutation_response(result)


@router.post("/{user_id}/activate", response_model=UserMutationResponse)
async def activate_user(
    user_id: UUID,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> UserMutationResponse:
    """Re-enable a deactivated account."""
    result = await service.activate_user(user_id, str(current_user.id), context)
    return _mutation_response(result)


@router.post("/{user_id}/deactivate", response_model=UserMutationResponse)
async def deactivate_user(
    user_id: UUID,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> UserMutationResponse:
    """Disable an account."""
    result = await service.deactivate_user(user_id, str(current_user.id), context)
    return _mutation_response(result)


@router.post("/{user_id}/password-reset", response_model=UserMutationResponse)
async def reset_password(
    user_id: UUID,
    request: PasswordResetRequest,
    current_user: WriteUser,
    service: Service,
    context: Context,
) -> UserMutationResponse:
    """Set a user's password without knowing the current one."""
    result = await service.reset_password(
        user_id, request.new_password, str(current_user.id), context
    )
    return _mutation_response(result)
