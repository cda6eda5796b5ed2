from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import async_session_maker, get_async_session
from schemas.transfers import ReconciliationOut, TransferAction, TransferCreate, TransferOut
from services import transfers as transfer_service

router = APIRouter()


def get_session_maker():
    return async_session_maker


@router.get("/", response_model=List[TransferOut])
async def list_transfers(
    bar_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    direction: Literal["any", "incoming", "outgoing"] = "any",
    db: AsyncSession = Depends(get_async_session),
):
    rows = await transfer_service.list_transfers(db, bar_id=bar_id, status=status_filter, direction=direction)
    return [TransferOut.model_validate(t) for t in rows]


@router.get("/pending-count", response_model=dict)
async def pending_transfer_count(
    bar_id: UUID = Query(...),
    db: AsyncSession = Depends(get_async_session),
):
    return {"bar_id": bar_id, "count": await transfer_service.count_pending_incoming(db, bar_id)}


@router.post("/", response_model=TransferOut, status_code=status.HTTP_201_CREATED)
async def create_transfer(
    payload: TransferCreate,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Send stock from one bar to another.

    The quantity leaves the source bar immediately; the destination only receives it
    when the transfer is accepted. Unaccepted transfers are returned after the expiry window.
    """
    transfer = await transfer_service.create_transfer(
        db,
        source_bar_id=payload.source_bar_id,
        destination_bar_id=payload.destination_bar_id,
        inventory_item_id=payload.inventory_item_id,
        quantity=payload.quantity,
        actor_id=payload.actor_id,
        notes=payload.notes,
    )
    return TransferOut.model_validate(transfer)


@router.post("/expire", response_model=ReconciliationOut)
async def run_expiry_reconciliation(session_maker=Depends(get_session_maker)):
    result = await transfer_service.expire_overdue_transfers(session_maker)
    return ReconciliationOut(**result.to_dict())


@router.post("/{transfer_id}/accept", response_model=TransferOut)
async def accept_transfer(
    transfer_id: UUID,
    payload: Optional[TransferAction] = None,
    db: AsyncSession = Depends(get_async_session),
):
    transfer = await transfer_service.accept_transfer(
        db, transfer_id, actor_id=payload.actor_id if payload else None
    )
    return TransferOut.model_validate(transfer)


@router.post("/{transfer_id}/cancel", response_model=TransferOut)
async def cancel_transfer(
    transfer_id: UUID,
    payload: Optional[TransferAction] = None,
    db: AsyncSession = Depends(get_async_session),
):
    transfer = await transfer_service.cancel_transfer(
        db,
        transfer_id,
        actor_id=payload.actor_id if payload else None,
        reason=payload.reason if payload else None,
    )
    return TransferOut.model_validate(transfer)
