import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, Depends, HTTPException, Query, Response, status

from app import db
from app.config import ENVIRONMENT, JWT_ALGORITHM, JWT_EXPIRY_DAYS, JWT_SECRET
from app.models import PaginationMeta, User, UserInfo

logger = logging.getLogger(__name__)


# ── Pagination ─────────────────────────────────────────────────────────────

class PaginationParams:
    def __init__(
        self,
        page: Annotated[int, Query(ge=1, description="Page number (1-indexed)")] = 1,
        page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 20,
    ):
        self.page = page
        self.page_size = page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def meta(self, total: int) -> PaginationMeta:
        return PaginationMeta(
            page=self.page,
            page_size=self.page_size,
            total_items=total,
            total_pages=max(1, -(-total // self.page_size)),
        )


Pagination = Annotated[PaginationParams, Depends(PaginationParams)]


# ── JWT / Session ──────────────────────────────────────────────────────────

def create_jwt(user: User | UserInfo) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user.email,
        "uid": user.id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def create_session_cookie(response: Response, user: User | UserInfo) -> None:
    token = create_jwt(user)
    response.set_cookie(
        key="session",
        value=token,
        httponly=True,
        samesite="lax",
        secure=ENVIRONMENT == "production",
        max_age=JWT_EXPIRY_DAYS * 86400,
    )


async def get_current_user(
    session: Annotated[str | None, Cookie()] = None,
) -> UserInfo:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please log in via /api/auth/login",
        )

    try:
        payload = jwt.decode(session, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please log in again.",
        ) from None
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        ) from None

    email: str | None = payload.get("sub")
    user_id: str | None = payload.get("uid")
    if not email or not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        )

    # Role and active flag are read from the database, not the token
    user = await db.get_user(user_id)
    if user is None or user.email != email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists. Please log in again.",
        )
    if not user.is_active:
        logger.info("Rejected session for deactivated user %s", user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been deactivated",
        )

    return UserInfo(
        id=user.id,
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
    )


CurrentUser = Annotated[UserInfo, Depends(get_current_user)]


async def get_staff_user(current_user: CurrentUser) -> UserInfo:
    if not current_user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin or manager access required",
        )
    return current_user


StaffUser = Annotated[UserInfo, Depends(get_staff_user)]
