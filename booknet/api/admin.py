# =============================================================================
# Admin API Routes
# =============================================================================
#
# Endpoints (ADMIN role only):
#   POST /admin/users/{user_id}/lock
#   POST /admin/users/{user_id}/unlock
#   POST /admin/users/{user_id}/enable
#   POST /admin/users/{user_id}/disable
#   POST /admin/users/{user_id}/roles/{role}
#
# =============================================================================

from fastapi import APIRouter, Depends, Request

from booknet.auth.context import AuthContext
from booknet.auth.policies import require_role
from booknet.auth.service import UserResponse
from booknet.core.models import Role
from booknet.services.users import UserAdminService

router = APIRouter(prefix="/admin/users", tags=["admin"])


def get_admin_service(request: Request) -> UserAdminService:
    return request.app.state.container.admin


@router.post("/{user_id}/lock", response_model=UserResponse)
async def lock_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.ADMIN)),
    service: UserAdminService = Depends(get_admin_service),
):
    return UserResponse.from_identity(await service.lock(user_id, ctx))


@router.post("/{user_id}/unlock", response_model=UserResponse)
async def unlock_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.ADMIN)),
    service: UserAdminService = Depends(get_admin_service),
):
    return UserResponse.from_identity(await service.unlock(user_id, ctx))


@router.post("/{user_id}/enable", response_model=UserResponse)
async def enable_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.ADMIN)),
    service: UserAdminService = Depends(get_admin_service),
):
    return UserResponse.from_identity(await service.enable(user_id, ctx))


@router.post("/{user_id}/disable", response_model=UserResponse)
async def disable_user(
    user_id: str,
    ctx: AuthContext = Depends(require_role(Role.ADMIN)),
    service: UserAdminService = Depends(get_admin_service),
):
    return UserResponse.from_identity(await service.disable(user_id, ctx))


@router.post("/{user_id}/roles/{role}", response_model=UserResponse)
async def grant_role(
    user_id: str,
    role: str,
    ctx: AuthContext = Depends(require_role(Role.ADMIN)),
    service: UserAdminService = Depends(get_admin_service),
):
    return UserResponse.from_identity(await service.grant_role(user_id, role, ctx))
