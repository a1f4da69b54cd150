"""Authentication router."""

from typing import Annotated

from fastapi import APIRouter, Depends

from employee_api.dependencies import get_audit_context, get_user_service
from employee_api.models.dto.auth import LoginRequest, PasswordChangeRequest, TokenResponse
from employee_api.models.dto.common import warnings_from
from employee_api.models.dto.user import UserMutationResponse, UserResponse
from employee_api.security.auth import CurrentUser, create_access_token, get_current_user
from employee_api.services.audit_service import AuditContext
from employee_api.services.user_service import UserService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    service: Annotated[UserService, Depends(get_user_service)],
    context: Annotated[AuditContext, Depends(get_audit_context)],
) -> TokenResponse:
    """Authenticate with username and password and get an access token."""
    result = await service.authenticate_user(request.username, request.password, context)
    user = result.value
    token, expires_in = create_access_token(user.id, user.username, user.role)
    return TokenResponse(
        access_token=token,
        expires_in=expires_in,
        user=UserResponse.from_domain(user),
        warnings=warnings_from(result.advisories),
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
) -> UserResponse:
    """Get the account behind the access token."""
    return UserResponse.from_domain(await service.get_user_by_id(current_user.id))


@router.post("/password", response_model=UserMutationResponse)
async def change_password(
    request: PasswordChangeRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[UserService, Depends(get_user_service)],
    context: Annotated[AuditContext, Depends(get_audit_context)],
) -> UserMutationResponse:
    """Change the current user's password."""
    result = await service.change_password(
        current_user.id, request.current_password, request.new_password, context
    )
    return UserMutationResponse(
        user=UserResponse.from_domain(result.value),
        warnings=warnings_from(result.advisories),
    )
