"""
Authentication Router

API endpoints for accounts and sessions.

Endpoints:
- POST /auth/register - Create an account
- POST /auth/login - Log in
- GET /auth/me - Current user
- PUT /auth/me - Update name/email
- PUT /auth/password - Change password
- POST /auth/forgot-password - Email a password reset link
- PUT /auth/reset-password/{token} - Set a new password with a reset token
- GET /auth/logout - Clear the session cookie

Successful login-type responses return the session token in the body and
also set it as an HttpOnly ``token`` cookie.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from schoolhub.core.config import settings
from schoolhub.core.exceptions import AuthServiceError
from schoolhub.modules.auth.dependencies import SESSION_COOKIE, get_auth_service, get_session_token
from schoolhub.modules.auth.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UpdateDetailsRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from schoolhub.modules.auth.service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter()

COOKIE_MAX_AGE_SECONDS = settings.cookie_expire_days * 24 * 60 * 60


def _http_error(e: Exception) -> HTTPException:
    """Translate a service error (or anything unexpected) into an HTTPException."""
    if isinstance(e, AuthServiceError):
        if e.status_code >= 500:
            logger.error(f"Auth service error: {e.error_code} - {e.message}")
        headers = {"WWW-Authenticate": "Bearer"} if e.status_code == 401 else None
        return HTTPException(status_code=e.status_code, detail=e.to_detail(), headers=headers)

    logger.exception(f"Unexpected error in auth endpoint: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


def _with_session_cookie(response: Response, token: TokenResponse) -> TokenResponse:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token.access_token,
        max_age=COOKIE_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return token


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    responses={400: {"description": "Invalid input or email already registered"}},
)
async def register(
    data: RegisterRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Create an account and return a session token.

    Raises:
        HTTPException 400: Validation error or duplicate email
    """
    try:
        token = await auth.register(data)
    except Exception as e:
        raise _http_error(e) from e
    return _with_session_cookie(response, token)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log In",
    responses={401: {"description": "Invalid email or password"}},
)
async def login(
    credentials: LoginRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Authenticate with email and password.

    Raises:
        HTTPException 401: Invalid credentials
    """
    try:
        token = await auth.login(credentials.email, credentials.password)
    except Exception as e:
        raise _http_error(e) from e
    return _with_session_cookie(response, token)


@router.get("/me", response_model=UserResponse, summary="Current User")
async def get_me(
    token: str = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Return the authenticated user's profile."""
    try:
        user = await auth.get_current_user(token)
    except Exception as e:
        raise _http_error(e) from e
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserResponse, summary="Update Details")
async def update_details(
    data: UpdateDetailsRequest,
    token: str = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """Update the authenticated user's name and/or email."""
    try:
        user = await auth.update_details(token, data)
    except Exception as e:
        raise _http_error(e) from e
    return UserResponse.model_validate(user)


@router.put("/password", response_model=TokenResponse, summary="Update Password")
async def update_password(
    data: UpdatePasswordRequest,
    response: Response,
    token: str = Depends(get_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Change the password and return a fresh session token.

    Raises:
        HTTPException 401: Invalid session or wrong current password
    """
    try:
        new_token = await auth.update_password(token, data.current_password, data.new_password)
    except Exception as e:
        raise _http_error(e) from e
    return _with_session_cookie(response, new_token)


@router.post("/forgot-password", response_model=MessageResponse, summary="Forgot Password")
async def forgot_password(
    data: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """
    Email a single-use password reset link.

    Raises:
        HTTPException 404: No user with that email
        HTTPException 502: Email could not be sent
    """
    try:
        await auth.forgot_password(data.email)
    except Exception as e:
        raise _http_error(e) from e
    return MessageResponse(message="Password reset email sent.")


@router.put(
    "/reset-password/{reset_token}",
    response_model=TokenResponse,
    summary="Reset Password",
)
async def reset_password(
    reset_token: str,
    data: ResetPasswordRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Set a new password with a reset token and return a session token.

    Raises:
        HTTPException 400: Token unknown, already used or expired
    """
    try:
        token = await auth.reset_password(reset_token, data.password)
    except Exception as e:
        raise _http_error(e) from e
    return _with_session_cookie(response, token)


@router.get("/logout", response_model=MessageResponse, summary="Log Out")
async def logout(response: Response) -> MessageResponse:
    """Clear the session cookie. Bearer tokens stay valid until they expire."""
    response.delete_cookie(key=SESSION_COOKIE)
    return MessageResponse(message="Logged out.")
