"""
Session authentication endpoints.

- POST /api/auth/session - Exchange a Firebase ID token for a session cookie
- GET  /api/auth/user    - Current user
- POST /api/auth/logout  - Clear the session
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from backoffice.auth.dependencies import (
    SESSION_UID_KEY,
    SESSION_USER_KEY,
    AuthenticatedUser,
    get_current_user,
    sign_in_with_token,
)
from backoffice.db.storage import MemStorage, get_storage
from backoffice.schemas.auth import MessageResponse, SessionRequest, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post(
    "/session",
    response_model=User,
    summary="Create a session from a Firebase ID token",
    description="""
    Verify a Firebase ID token, create or update the matching user and
    store the user in the signed session cookie.

    Errors:
    - 400 when idToken is missing
    - 401 when the token is invalid or expired
    """
)
async def create_session(
    body: SessionRequest,
    request: Request,
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> User:
    if not body.id_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "invalid_request",
                "details": "Missing idToken"
            }
        )

    user, uid = await sign_in_with_token(body.id_token, storage)

    request.session[SESSION_USER_KEY] = user.id
    request.session[SESSION_UID_KEY] = uid

    logger.info(f"Session created for user_id={user.id}")
    return user


@router.get(
    "/user",
    response_model=User,
    summary="Get the signed-in user",
)
async def get_user(
    current: Annotated[Optional[AuthenticatedUser], Depends(get_current_user)],
    storage: Annotated[MemStorage, Depends(get_storage)],
) -> User:
    user = await storage.get_user(current.user_id) if current else None
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "unauthorized",
                "details": "Not authenticated"
            }
        )
    return user


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Sign out",
)
async def logout(request: Request) -> MessageResponse:
    user_id = request.session.get(SESSION_USER_KEY)
    request.session.clear()
    if user_id:
        logger.info(f"Session cleared for user_id={user_id}")
    return MessageResponse(message="Logged out successfully")
