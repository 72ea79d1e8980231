"""
FastAPI dependency functions for authentication.

Users sign in with Google through Firebase Auth on the client. The
resulting Firebase ID token is either exchanged once for a signed session
cookie (POST /api/auth/session) or sent on every request as
`Authorization: Bearer <token>`.

ID tokens are RS256 JWTs signed by Google's securetoken service account;
they are verified against its JWKS with the Firebase project id as the
audience.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jwt import PyJWKClient, decode
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from backoffice.config import settings
from backoffice.db.storage import MemStorage, get_storage
from backoffice.schemas.auth import User, UserUpsert

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_UID_KEY = "firebase_uid"

_jwks_client: PyJWKClient | None = None


@dataclass
class AuthenticatedUser:
    """
    The caller of a protected endpoint.

    Attributes:
        user_id: Local user id (MemStorage)
        firebase_uid: Firebase uid; keys the user's Firestore config
        email: Verified email address
        role: "user" or "admin"
    """
    user_id: str
    firebase_uid: str
    email: str = ""
    role: str = "user"


def get_jwks_client() -> PyJWKClient:
    """
    Get or create the JWKS client for Firebase ID tokens.

    The client caches keys and follows Google's key rotation.
    """
    global _jwks_client

    if _jwks_client is None:
        logger.info(f"Initializing JWKS client with URL: {settings.FIREBASE_JWKS_URL}")
        _jwks_client = PyJWKClient(
            settings.FIREBASE_JWKS_URL,
            cache_keys=True,
            max_cached_keys=16,
        )

    return _jwks_client


def _unauthorized(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "details": details},
    )


def verify_firebase_token(token: str) -> Dict[str, Any]:
    """
    Verify a Firebase ID token and return its claims.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or the
            Firebase project is not configured.
    """
    if not settings.FIREBASE_PROJECT_ID:
        logger.error("FIREBASE_PROJECT_ID is not configured; cannot verify ID tokens")
        raise _unauthorized("unauthorized", "Token verification is not configured")

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)
        claims = decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.FIREBASE_PROJECT_ID,
            issuer=settings.FIREBASE_ISSUER,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_aud": True,
                "verify_iss": True,
            },
        )
    except ExpiredSignatureError:
        logger.warning("ID token has expired")
        raise _unauthorized("token_expired", "Authentication token has expired")
    except PyJWKClientError as e:
        logger.error(f"JWKS client error: {str(e)}")
        raise _unauthorized("jwks_error", "Unable to verify token signature")
    except InvalidTokenError as e:
        logger.warning(f"Invalid token: {str(e)}")
        raise _unauthorized("invalid_token", "Invalid authentication token")

    if not claims.get("sub"):
        logger.error("Token payload missing 'sub' claim")
        raise _unauthorized("unauthorized", "Invalid token: missing user ID")

    return claims


def user_from_claims(claims: Dict[str, Any]) -> UserUpsert:
    """Map Firebase token claims to user fields."""
    identities = (claims.get("firebase") or {}).get("identities") or {}
    google_ids = identities.get("google.com") or []
    return UserUpsert(
        google_id=str(google_ids[0]) if google_ids else "",
        email=claims.get("email") or "",
        name=claims.get("name") or "",
        picture=claims.get("picture"),
    )


async def sign_in_with_token(token: str, storage: MemStorage) -> tuple[User, str]:
    """
    Verify an ID token and upsert the matching user.

    Returns:
        (user, firebase uid)
    """
    claims = verify_firebase_token(token)
    user = await storage.upsert_user(user_from_claims(claims))
    logger.info(f"Signed in user_id={user.id}")
    return user, str(claims["sub"])


async def get_current_user(
    request: Request,
    storage: Annotated[MemStorage, Depends(get_storage)],
    authorization: Annotated[str | None, Header()] = None,
) -> Optional[AuthenticatedUser]:
    """
    Resolve the caller from the session cookie, else from a Bearer token.

    Returns None when neither is present. A Bearer token that is present
    but invalid raises 401.
    """
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id:
        user = await storage.get_user(user_id)
        if user is not None:
            return AuthenticatedUser(
                user_id=user.id,
                firebase_uid=request.session.get(SESSION_UID_KEY, ""),
                email=user.email,
                role=user.role,
            )
        # Cache was reset since the cookie was issued
        request.session.clear()

    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Invalid Authorization header format")
        raise _unauthorized("unauthorized", "Invalid Authorization header format")

    user, uid = await sign_in_with_token(parts[1], storage)
    return AuthenticatedUser(user_id=user.id, firebase_uid=uid, email=user.email, role=user.role)


async def require_auth(
    current: Annotated[Optional[AuthenticatedUser], Depends(get_current_user)],
) -> AuthenticatedUser:
    """Dependency for protected endpoints: 401 when nobody is signed in."""
    if current is None:
        raise _unauthorized("unauthorized", "Not authenticated")
    return current


async def require_admin(
    current: Annotated[AuthenticatedUser, Depends(require_auth)],
) -> AuthenticatedUser:
    """Dependency for admin-only endpoints: 403 for non-admin users."""
    if current.role != "admin":
        logger.warning(f"Admin access denied for user_id={current.user_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "forbidden", "details": "Admin access required"},
        )
    return current
