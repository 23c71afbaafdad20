from fastapi import HTTPException, Request

from timebill.core.authorization import CallerContext
from timebill.services.auth_service import verify_token

TENANT_HEADER = "X-Tenant-Id"


def _parse_bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=401, detail="Invalid Authorization header")

    return parts[1].strip()


def _parse_tenant_header(request: Request) -> int:
    raw = request.headers.get(TENANT_HEADER)
    if raw is None:
        raise HTTPException(status_code=403, detail=f"Missing {TENANT_HEADER} header")

    try:
        return int(raw)
    except ValueError as exc:
        raise HTTPException(status_code=403, detail=f"Invalid {TENANT_HEADER} header") from exc


def require_auth(request: Request) -> CallerContext:
    """
    Resolve the caller from the bearer token and pin the request to the
    token's tenant. The tenant header must name the same tenant.
    """
    token = _parse_bearer_token(request)

    try:
        claims = verify_token(token)
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    if _parse_tenant_header(request) != claims.tenant_id:
        raise HTTPException(status_code=403, detail="Tenant mismatch")

    caller = CallerContext(user_id=claims.user_id, tenant_id=claims.tenant_id, role=claims.role)
    request.state.user_id = caller.user_id
    request.state.tenant_id = caller.tenant_id
    request.state.role = caller.role.value

    return caller
