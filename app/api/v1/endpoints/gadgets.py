import logging
import uuid
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlmodel import Session

from app.api.v1.endpoints.users import get_current_user
from app.core.config import settings
from app.core.rate_limit import limiter
from app.db.session import get_session
from app.models.audit_log import AuditAction, AuditLogResponse
from app.models.gadget import Gadget, GadgetStatus
from app.models.user import User
from app.schemas.gadget import (
    DestructionConfirmRequest,
    DestructionInitiatedResponse,
    GadgetList,
    GadgetRead,
    GadgetResponse,
    GadgetUpdate,
    GadgetWithProbability,
)
from app.services.audit_service import AuditService, AuditServiceError
from app.services.destruction_service import (
    DestructionError,
    DestructionService,
    PendingDestructionRegistry,
    utc_now,
)
from app.services.gadget_service import GadgetService, GadgetServiceError, success_probability
from app.services.notification_service import DestructionNotifier

logger = logging.getLogger(__name__)

router = APIRouter()

ENTITY_TYPE = "gadget"


def get_gadget_service(db: Session = Depends(get_session)) -> GadgetService:
    return GadgetService(db)


def get_audit_service(db: Session = Depends(get_session)) -> AuditService:
    return AuditService(db)


def get_destruction_registry(request: Request) -> PendingDestructionRegistry:
    return request.app.state.destruction_registry


def get_destruction_notifier(request: Request) -> DestructionNotifier:
    return request.app.state.destruction_notifier


def get_destruction_clock():
    return utc_now


def get_destruction_service(
    gadget_service: GadgetService = Depends(get_gadget_service),
    registry: PendingDestructionRegistry = Depends(get_destruction_registry),
    notifier: DestructionNotifier = Depends(get_destruction_notifier),
    clock=Depends(get_destruction_clock),
) -> DestructionService:
    return DestructionService(gadget_service, registry, notifier, clock=clock)


def _client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def _humanize_seconds(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds} seconds"


async def _record_audit(audit: AuditService, action: AuditAction, **fields) -> None:
    """Write an audit entry without letting a failed write change the response."""
    try:
        await audit.log_action(action, **fields)
    except AuditServiceError as e:
        logger.error(f"Audit entry {action.value} for gadget {fields.get('entity_id')} was lost: {e}")


def _gadget_response(message: str, gadget: Gadget) -> GadgetResponse:
    return GadgetResponse(message=message, gadget=GadgetRead.model_validate(gadget))


@router.get("/", response_model=GadgetList)
async def read_gadgets(
    status_filter: Optional[GadgetStatus] = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    service: GadgetService = Depends(get_gadget_service),
) -> Any:
    """
    Retrieve all gadgets, optionally filtered by status.
    Every gadget comes with a freshly rolled mission success probability.
    """
    gadgets = await service.get_all(status=status_filter)
    results = [
        GadgetWithProbability(
            **GadgetRead.model_validate(gadget).model_dump(),
            success_probability=success_probability(),
        )
        for gadget in gadgets
    ]
    message = (
        f"Gadgets with status '{status_filter.value}' fetched successfully."
        if status_filter else "All gadgets fetched successfully."
    )
    return GadgetList(message=message, count=len(results), gadgets=results)


@router.post("/", response_model=GadgetResponse, status_code=201)
async def create_gadget(
    request: Request,
    current_user: User = Depends(get_current_user),
    service: GadgetService = Depends(get_gadget_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """Create a new gadget with a random codename."""
    gadget = await service.create(owner_id=current_user.id)
    await _record_audit(
        audit,
        AuditAction.GADGET_CREATED,
        user_id=current_user.id,
        entity_type=ENTITY_TYPE,
        entity_id=gadget.id,
        details={"name": gadget.name},
        ip_address=_client_ip(request),
    )
    return _gadget_response("Gadget created successfully.", gadget)


@router.patch("/{gadget_id}", response_model=GadgetResponse)
async def update_gadget(
    gadget_id: uuid.UUID,
    payload: GadgetUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: GadgetService = Depends(get_gadget_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """Update the name and/or status of a gadget."""
    try:
        gadget = await service.update(gadget_id, name=payload.name, status=payload.status)
    except GadgetServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    await _record_audit(
        audit,
        AuditAction.GADGET_UPDATED,
        user_id=current_user.id,
        entity_type=ENTITY_TYPE,
        entity_id=gadget.id,
        details=payload.model_dump(exclude_none=True, mode="json"),
        ip_address=_client_ip(request),
    )
    return _gadget_response("Gadget updated successfully.", gadget)


@router.delete("/{gadget_id}", response_model=GadgetResponse)
async def decommission_gadget(
    gadget_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: GadgetService = Depends(get_gadget_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """Decommission a gadget. Gadgets are never hard-deleted."""
    try:
        gadget = await service.decommission(gadget_id)
    except GadgetServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    await _record_audit(
        audit,
        AuditAction.GADGET_DECOMMISSIONED,
        user_id=current_user.id,
        entity_type=ENTITY_TYPE,
        entity_id=gadget.id,
        ip_address=_client_ip(request),
    )
    return _gadget_response("Gadget decommissioned successfully.", gadget)


@router.post("/{gadget_id}/self-destruct", response_model=DestructionInitiatedResponse)
async def initiate_self_destruct(
    gadget_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: DestructionService = Depends(get_destruction_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """
    Start the self-destruct sequence for a gadget.

    A confirmation code is sent to the gadget's owner and must be submitted to
    the confirm-destruct endpoint before it expires.
    """
    try:
        ticket = await service.begin_destruction(gadget_id, requested_by=current_user)
    except DestructionError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    await _record_audit(
        audit,
        AuditAction.DESTRUCTION_INITIATED,
        user_id=current_user.id,
        entity_type=ENTITY_TYPE,
        entity_id=gadget_id,
        details={"expires_at": ticket.expires_at.isoformat()},
        ip_address=_client_ip(request),
    )
    return DestructionInitiatedResponse(
        message="Gadget destruction has been initiated. Please confirm your code.",
        expires_in=_humanize_seconds(ticket.expires_in_seconds),
        expires_in_seconds=ticket.expires_in_seconds,
        expires_at=ticket.expires_at,
        confirmation_code=ticket.code if settings.expose_confirmation_code else None,
    )


@router.post("/{gadget_id}/confirm-destruct", response_model=GadgetResponse)
@limiter.limit("10/minute")  # Slow down online guessing on top of the attempt cap
async def confirm_self_destruct(
    gadget_id: uuid.UUID,
    payload: DestructionConfirmRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    service: DestructionService = Depends(get_destruction_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """Confirm a pending self-destruct sequence with the code that was sent out."""
    try:
        gadget = await service.confirm_destruction(gadget_id, payload.confirmation_code)
    except DestructionError as e:
        await _record_audit(
            audit,
            AuditAction.DESTRUCTION_REJECTED,
            user_id=current_user.id,
            entity_type=ENTITY_TYPE,
            entity_id=gadget_id,
            details=e.to_detail(),
            ip_address=_client_ip(request),
            status="failure",
            error_message=str(e),
        )
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())

    await _record_audit(
        audit,
        AuditAction.DESTRUCTION_CONFIRMED,
        user_id=current_user.id,
        entity_type=ENTITY_TYPE,
        entity_id=gadget.id,
        ip_address=_client_ip(request),
    )
    return _gadget_response("Gadget has been successfully destroyed.", gadget)


@router.get("/{gadget_id}/history", response_model=List[AuditLogResponse])
async def read_gadget_history(
    gadget_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: GadgetService = Depends(get_gadget_service),
    audit: AuditService = Depends(get_audit_service),
) -> Any:
    """Audit trail of a gadget, newest first."""
    if not await service.find_by_id(gadget_id):
        raise HTTPException(status_code=404, detail="Gadget not found.")
    return await audit.get_entity_history(ENTITY_TYPE, gadget_id, limit=limit)
