"""POST /audit/events — record a client-side event for the caller.

The actor is always the authenticated principal and classification always
happens server-side, so a client cannot forge either.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from coursegate.api.dependencies import AuditDep, PrincipalDep, rate_limit_by_ip
from coursegate.api.schemas import (
    AuditRecordResponse,
    RecordEventRequest,
    RecordEventResponse,
)

router = APIRouter(prefix="/audit", tags=["audit"])


@router.post(
    "/events",
    response_model=RecordEventResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record an audit event",
    dependencies=[Depends(rate_limit_by_ip("audit-events", "api"))],
)
async def record_event(
    body: RecordEventRequest,
    principal: PrincipalDep,
    audit: AuditDep,
) -> RecordEventResponse:
    record = await audit.log(
        body.action,
        actor_id=principal.id,
        target_type=body.target_type,
        target_id=body.target_id,
        details=body.details,
    )
    if record is None:
        return RecordEventResponse(recorded=False)
    return RecordEventResponse(recorded=True, record=AuditRecordResponse.from_record(record))
