# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /auth/register          - Create account (disabled until activated)
#   POST /auth/authenticate      - Exchange credentials for a bearer token
#   GET  /auth/activate-account  - Consume an activation code
#   POST /auth/logout            - Revoke the current token
#   GET  /auth/me                - Get current user
#
# =============================================================================

from fastapi import APIRouter, Depends, Query, Request, status

from booknet.auth.context import AuthContext
from booknet.auth.policies import require_auth
from booknet.auth.service import (
    AuthenticationRequest,
    AuthenticationResponse,
    AuthService,
    RegistrationRequest,
    UserResponse,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.container.auth


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/register", status_code=status.HTTP_202_ACCEPTED)
async def register(
    data: RegistrationRequest,
    service: AuthService = Depends(get_auth_service),
):
    """
    Create a new account.
    
    The account stays disabled until the emailed activation code is used.
    """
    await service.register(data)
    return {"message": "Registration accepted, check your email for the activation code"}


@router.post("/authenticate", response_model=AuthenticationResponse)
async def authenticate(
    data: AuthenticationRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Authenticate and get a bearer token."""
    return await service.authenticate(data)


@router.get("/activate-account")
async def activate_account(
    token: str = Query(..., min_length=1),
    service: AuthService = Depends(get_auth_service),
):
    """
    Activate an account.
    
    An expired code is answered with an error and a fresh code is mailed.
    """
    await service.activate(token)
    return {"message": "Account activated"}


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.post("/logout")
async def logout(
    ctx: AuthContext = Depends(require_auth()),
    service: AuthService = Depends(get_auth_service),
):
    """Revoke the token used for this request."""
    await service.logout(ctx)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def get_current_user(
    ctx: AuthContext = Depends(require_auth()),
    service: AuthService = Depends(get_auth_service),
):
    """Get the current authenticated user."""
    return await service.me(ctx)
