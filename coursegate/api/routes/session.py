"""GET /me — the caller's principal and effective capabilities."""

from __future__ import annotations

from fastapi import APIRouter

from coursegate.api.dependencies import PrincipalDep
from coursegate.api.schemas import PrincipalResponse
from coursegate.security.permissions import permissions_for

router = APIRouter(tags=["session"])


@router.get("/me", response_model=PrincipalResponse, summary="Current principal")
async def me(principal: PrincipalDep) -> PrincipalResponse:
    return PrincipalResponse(
        **principal.to_dict(),
        capabilities=sorted(permissions_for(principal.role)),
    )
