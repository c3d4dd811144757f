"""
User, role and permission administration endpoints (ADMIN only).
"""
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from dental_lab.dependencies import get_db, pagination_params
from dental_lab.schemas.common import ApiResponse, Page
from dental_lab.schemas.user import (
    PermissionResponse, RoleCreate, RoleResponse, RoleUpdate, UserCreate, UserResponse, UserUpdate
)
from dental_lab.services.user_service import UserService

router = APIRouter()


# Roles and permissions come first so they are not captured by /{user_id}

@router.get("/roles", response_model=ApiResponse[List[RoleResponse]])
async def list_roles(db: Session = Depends(get_db)):
    roles = UserService(db).list_roles()
    return ApiResponse(data=[RoleResponse.model_validate(r) for r in roles])


@router.post("/roles", response_model=ApiResponse[RoleResponse], status_code=status.HTTP_201_CREATED)
async def create_role(payload: RoleCreate, db: Session = Depends(get_db)):
    role = UserService(db).create_role(payload)
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role created successfully")


@router.get("/roles/{role_id}", response_model=ApiResponse[RoleResponse])
async def get_role(role_id: str, db: Session = Depends(get_db)):
    role = UserService(db).get_role(role_id)
    return ApiResponse(data=RoleResponse.model_validate(role))


@router.put("/roles/{role_id}", response_model=ApiResponse[RoleResponse])
async def update_role(role_id: str, payload: RoleUpdate, db: Session = Depends(get_db)):
    role = UserService(db).update_role(role_id, payload)
    return ApiResponse(data=RoleResponse.model_validate(role), message="Role updated successfully")


@router.delete("/roles/{role_id}", response_model=ApiResponse[None])
async def delete_role(role_id: str, db: Session = Depends(get_db)):
    """Delete a role that is not assigned to any user."""
    UserService(db).delete_role(role_id)
    return ApiResponse(message="Role deleted successfully")


@router.get("/permissions", response_model=ApiResponse[List[PermissionResponse]])
async def list_permissions(db: Session = Depends(get_db)):
    permissions = UserService(db).list_permissions()
    return ApiResponse(data=[PermissionResponse.model_validate(p) for p in permissions])


# Users

@router.get("/search", response_model=ApiResponse[Page[UserResponse]])
async def search_users(
    q: Optional[str] = Query(None),
    paging: Tuple[int, int] = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    page, limit = paging
    users, total = UserService(db).search_users(q, page, limit)
    return ApiResponse(data=Page.build([UserResponse.model_validate(u) for u in users], total, page, limit))


@router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    user = UserService(db).create_user(payload)
    return ApiResponse(data=UserResponse.model_validate(user), message="User created successfully")


@router.get("", response_model=ApiResponse[Page[UserResponse]])
async def list_users(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    paging: Tuple[int, int] = Depends(pagination_params),
    db: Session = Depends(get_db)
):
    page, limit = paging
    users, total = UserService(db).list_users(page, limit, is_active)
    return ApiResponse(data=Page.build([UserResponse.model_validate(u) for u in users], total, page, limit))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: str, db: Session = Depends(get_db)):
    user = UserService(db).get_user(user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db)):
    user = UserService(db).update_user(user_id, payload)
    return ApiResponse(data=UserResponse.model_validate(user), message="User updated successfully")


@router.delete("/{user_id}", response_model=ApiResponse[UserResponse])
async def deactivate_user(user_id: str, db: Session = Depends(get_db)):
    """Deactivate a user; users are never hard-deleted."""
    user = UserService(db).deactivate_user(user_id)
    return ApiResponse(data=UserResponse.model_validate(user), message="User deactivated successfully")
