"""
Authentication router.
Handles sign-in, customer and staff sign-up and current user info.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status

from shared.config.settings import settings
from shared.security.auth import current_user_context, sign_jwt
from shared.security.rate_limit import limiter
from shared.utils.exceptions import AuthenticationError
from shared.utils.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    StaffAccountOutput,
    StaffRegisterRequest,
    UserInfo,
)
from rest_api.core.dependencies import get_identity_provider
from rest_api.services.identity import IdentityProvider, SessionIdentity


router = APIRouter(prefix="/api/auth", tags=["auth"])


def _login_response(identity: SessionIdentity) -> LoginResponse:
    return LoginResponse(
        access_token=sign_jwt(identity.to_claims()),
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserInfo(
            id=identity.uid,
            email=identity.email,
            role=identity.role,
            display_name=identity.display_name,
        ),
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> LoginResponse:
    """
    Authenticate any user and return an access token.

    The token carries sub (user id), email, role and name (display name).
    Unapproved staff accounts are refused with 403.
    """
    identity = identity_provider.authenticate(body.email, body.password)
    return _login_response(identity)


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> LoginResponse:
    """Customer self sign-up; the new customer is signed in right away."""
    identity = identity_provider.register_customer(
        body.email, body.password, body.first_name, body.last_name
    )
    return _login_response(identity)


@router.post("/register/staff", response_model=StaffAccountOutput, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.register_rate_limit)
def register_staff(
    request: Request,
    response: Response,
    body: StaffRegisterRequest,
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> StaffAccountOutput:
    """
    Staff sign-up (waiter, chef, cashier). No token is issued: sign-in is
    refused with 403 until an admin approves the account.
    """
    profile = identity_provider.register_staff(
        body.email, body.password, body.first_name, body.last_name, body.role
    )
    return StaffAccountOutput.model_validate(profile)


@router.get("/me", response_model=UserInfo)
def me(
    ctx: dict[str, Any] = Depends(current_user_context),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> UserInfo:
    """Current user, re-read from the profile store."""
    identity = identity_provider.resolve(ctx["sub"])
    if identity is None:
        raise AuthenticationError("Account no longer exists", user_id=ctx["sub"])
    return UserInfo(
        id=identity.uid,
        email=identity.email,
        role=identity.role,
        display_name=identity.display_name,
    )
