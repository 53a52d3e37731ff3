"""
User management endpoints.

Listing, creating and updating users requires the Admin role; reading a single
user's details requires any valid access token.
"""
from fastapi import APIRouter, Depends, status
import logging

from ..dependencies import get_auth_service, get_current_user, require_admin
from ..schemas import CreateUserRequest, UpdateUserRequest, UserListResponse, UserOut
from ..service import AuthService

router = APIRouter(prefix="/api/users", tags=["user-management"])
logger = logging.getLogger(__name__)


@router.get("/list", response_model=UserListResponse)
def list_users(
    admin: dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    users = service.list_users()
    logger.info("Retrieved %s users", len(users))
    return UserListResponse(users=users)


@router.get("/details/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    claims: dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.get_user(user_id)


@router.post("/create", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: CreateUserRequest,
    admin: dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    user = service.admin_create_user(
        full_name=payload.full_name,
        email=payload.email,
        password=payload.password,
        role_name=payload.role_name,
        phone=payload.phone,
    )
    logger.info("Created new user with ID %s (by %s)", user.id, admin.get("sub"))
    return user


@router.put("/update/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    admin: dict = Depends(require_admin),
    service: AuthService = Depends(get_auth_service),
):
    user = service.admin_update_user(
        user_id,
        email=payload.email,
        full_name=payload.full_name,
        phone=payload.phone,
        password=payload.password,
        status=payload.status,
    )
    logger.info("Updated user with ID %s (by %s)", user_id, admin.get("sub"))
    return user
