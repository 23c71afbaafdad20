import os

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from timebill.core.authorization import CallerContext, Role
from timebill.deps.auth import require_auth
from timebill.services.auth_service import create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])

DEV_ENVIRONMENTS = {"dev", "local", "test"}


class TokenRequest(BaseModel):
    user_id: str = Field(min_length=1)
    tenant_id: int
    role: Role = Role.STAFF


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    tenant_id: int
    role: Role


class WhoAmIResponse(BaseModel):
    user_id: str
    tenant_id: int
    role: Role


def _dev_tokens_enabled() -> bool:
    return os.getenv("ENV", "dev").lower() in DEV_ENVIRONMENTS


@router.post("/token", response_model=TokenResponse)
def issue_token(payload: TokenRequest):
    # no identity provider here; production tokens are minted elsewhere
    if not _dev_tokens_enabled():
        raise HTTPException(status_code=404, detail="Not Found")

    try:
        token = create_access_token(
            user_id=payload.user_id,
            tenant_id=payload.tenant_id,
            role=payload.role.value,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return {"access_token": token, "tenant_id": payload.tenant_id, "role": payload.role}


@router.get("/me", response_model=WhoAmIResponse)
def who_am_i(caller: CallerContext = Depends(require_auth)):
    return {"user_id": caller.user_id, "tenant_id": caller.tenant_id, "role": caller.role}
