"""
Authentication endpoints: email + password accounts with JWT session cookies.
"""

from fastapi import APIRouter, HTTPException, Request, Response, status

from app import db
from app.dependencies import CurrentUser, create_session_cookie
from app.models import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    SignupRequest,
    User,
)
from app.rate_limit import AUTH, STRICT, limiter
from app.services.passwords import hash_password, verify_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="signup",
    summary="Create a client account and start a session",
)
@limiter.limit(STRICT)
async def signup(request: Request, body: SignupRequest, response: Response) -> AuthResponse:
    if await db.get_user_credentials(body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        )
    try:
        user = await db.create_user(
            body.email,
            hash_password(body.password),
            first_name=body.first_name,
            last_name=body.last_name,
            phone=body.phone,
        )
    except db.IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email already exists",
        ) from None

    create_session_cookie(response, user)
    return AuthResponse(message="Account created successfully", user=user)


@router.post(
    "/login",
    response_model=AuthResponse,
    operation_id="login",
    summary="Verify email and password and receive a JWT session cookie",
)
@limiter.limit(AUTH)
async def login(request: Request, body: LoginRequest, response: Response) -> AuthResponse:
    found = await db.get_user_credentials(body.email)
    if found is None or not verify_password(body.password, found[1]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    user, _ = found
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been deactivated",
        )
    if body.portal == "admin" and user.role not in ("admin", "manager"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not an admin account",
        )

    create_session_cookie(response, user)
    return AuthResponse(message="Authenticated successfully", user=user)


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Clear the session cookie",
)
async def logout(current_user: CurrentUser, response: Response) -> MessageResponse:
    response.delete_cookie("session")
    return MessageResponse(message="Logged out successfully")


async def _load_user(user_id: str) -> User:
    user = await db.get_user(user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists. Please log in again.",
        )
    return user


@router.get(
    "/me",
    response_model=User,
    operation_id="getMe",
    summary="Get the authenticated user's profile",
)
async def get_me(current_user: CurrentUser) -> User:
    return await _load_user(current_user.id)


@router.patch(
    "/me",
    response_model=User,
    operation_id="updateMe",
    summary="Update the authenticated user's profile",
)
async def update_me(body: ProfileUpdate, current_user: CurrentUser) -> User:
    await _load_user(current_user.id)
    fields = body.model_dump(exclude_unset=True)
    updated = await db.update_user(current_user.id, fields)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {current_user.id} not found",
        )
    return updated
