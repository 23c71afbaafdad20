from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import os

import jwt

from timebill.core.authorization import Role, parse_role

JWT_ALGORITHM = "HS256"
JWT_ISSUER = "timebill"
DEFAULT_EXP_HOURS = 8


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    tenant_id: int
    role: Role


def _get_jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET is required")
    if len(secret) < 32:
        raise ValueError("JWT_SECRET must be at least 32 characters")
    return secret


def _get_exp_hours() -> int:
    try:
        return max(int(os.getenv("JWT_EXP_HOURS", DEFAULT_EXP_HOURS)), 1)
    except ValueError:
        return DEFAULT_EXP_HOURS


def create_access_token(user_id: str, tenant_id: int, role: str = "STAFF") -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "tenant_id": int(tenant_id),
        "role": str(role).upper(),
        "iss": JWT_ISSUER,
        "iat": now,
        "exp": now + timedelta(hours=_get_exp_hours()),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> TokenClaims:
    """
    Decode and check a bearer token.

    Raises ValueError for a bad signature, expiry or missing claims, and
    PermissionError for a role claim that names no known role. A token
    without a role claim belongs to STAFF.
    """
    try:
        payload = jwt.decode(
            token,
            _get_jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            issuer=JWT_ISSUER,
        )
    except Exception as exc:
        raise ValueError("Invalid or expired token") from exc

    if not payload.get("sub") or "tenant_id" not in payload:
        raise ValueError("Invalid token claims")

    try:
        tenant_id = int(payload["tenant_id"])
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid token claims") from exc

    try:
        role = parse_role(payload.get("role"))
    except ValueError as exc:
        raise PermissionError("Invalid role claim") from exc

    return TokenClaims(user_id=str(payload["sub"]), tenant_id=tenant_id, role=role)
