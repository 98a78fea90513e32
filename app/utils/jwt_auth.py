"""
JWT verification for the authenticated photo endpoints.
Tokens are issued by the auth service; this module verifies them and checks
role and permission claims.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status, Header, Request, Depends
from app.config import settings


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # Matches the auth service's 7 day sessions
TOKEN_COOKIE = "admin_token"
SUPER_ADMIN_ROLES = ("SUPER_ADMIN", "SUPER_ADMIN_MAX")


class CurrentUser:
    """Authenticated caller, built from token claims"""
    def __init__(self, id: str, role: str, permissions: Optional[List[str]] = None, email: Optional[str] = None):
        self.id = id
        self.role = role
        self.permissions = permissions or []
        self.email = email

    @property
    def is_super_admin(self) -> bool:
        return self.role in SUPER_ADMIN_ROLES

    def has_any_permission(self, *permissions: str) -> bool:
        return self.is_super_admin or any(p in self.permissions for p in permissions)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to include in token
        expires_delta: Optional custom expiration time

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        dict: Decoded token payload

    Raises:
        HTTPException: 401 if token is invalid, expired, or malformed
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized - Invalid token"},
            headers={"WWW-Authenticate": "Bearer"}
        )


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (fallback to admin_token cookie)")
) -> CurrentUser:
    """
    FastAPI dependency resolving the caller from the admin_token cookie
    (preferred) or the Authorization header.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired
    """
    token = request.cookies.get(TOKEN_COOKIE)

    if not token and authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized - No token provided"},
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = verify_token(token)

    # Auth service sessions nest the user under "user"
    claims = payload.get("user") if isinstance(payload.get("user"), dict) else payload
    user_id = claims.get("id") or claims.get("sub")
    role = claims.get("role")
    if not user_id or not role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized - Invalid token"},
        )

    return CurrentUser(
        id=str(user_id),
        role=role,
        permissions=list(claims.get("permissions") or []),
        email=claims.get("email"),
    )


def require_permission(*permissions: str):
    """
    Dependency factory: allow super admins, or users holding any of the
    given permissions. With no permissions, any authenticated user passes.
    """
    def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if permissions and not user.has_any_permission(*permissions):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "Forbidden - Insufficient permissions"}
            )
        return user

    return dependency
