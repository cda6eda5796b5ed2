"""
Bar-to-bar transfers and the expiry reconciliation job.

A transfer takes stock out of the source bar when it is created and parks it as
`pending` until the destination accepts it. Pending transfers nobody accepts are
returned to the source by `expire_overdue_transfers`, which is meant to run on a
timer (see core/scheduler.py) and is safe to run any number of times.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.exceptions import InvalidTransferStateError, NotFoundError, StockValidationError
from db.bar import Bar as BarModel
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.transfer import (
    TRANSFER_CANCELLED,
    TRANSFER_COMPLETED,
    TRANSFER_EXPIRED,
    TRANSFER_PENDING,
    BarToBarTransfer as TransferModel,
)
from services.stock_ledger import apply_movement, restore_stock

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def append_note(existing: Optional[str], note: str) -> str:
    existing = (existing or "").strip()
    return f"{existing} | {note}" if existing else note


def expiry_note(hours: int) -> str:
    return f"Auto-expired after {hours} hours"


@dataclass
class ReconciliationResult:
    total: int = 0
    succeeded: List[UUID] = field(default_factory=list)
    failures: List[Tuple[UUID, str]] = field(default_factory=list)
    # Already resolved by a concurrent run between fetch and update
    skipped: List[UUID] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.succeeded)

    @property
    def errors(self) -> List[str]:
        return [f"Error processing transfer {transfer_id}: {message}" for transfer_id, message in self.failures]

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": (
                f"Processed {self.processed} expired transfers"
                if self.total
                else "No expired transfers to process"
            ),
            "processed": self.processed,
            "total": self.total,
            "errors": self.errors,
        }


async def get_transfer(db: AsyncSession, transfer_id: UUID) -> TransferModel:
    res = await db.execute(
        select(TransferModel)
        .where(TransferModel.id == transfer_id)
        .execution_options(populate_existing=True)
    )
    transfer = res.scalar_one_or_none()
    if transfer is None:
        raise NotFoundError("Transfer not found")
    return transfer


async def _resolve_pending(
    db: AsyncSession,
    transfer: TransferModel,
    to_status: str,
    *,
    now: datetime,
    notes: Optional[str],
) -> bool:
    """Move a transfer out of `pending`; False when it is no longer pending."""
    tbl = TransferModel.__table__
    res = await db.execute(
        update(tbl)
        .where(tbl.c.id == transfer.id)
        .where(tbl.c.status == TRANSFER_PENDING)
        .values(status=to_status, completed_at=now, notes=notes)
    )
    return res.rowcount == 1


async def list_transfers(
    db: AsyncSession,
    *,
    bar_id: Optional[UUID] = None,
    status: Optional[str] = None,
    direction: str = "any",
) -> List[TransferModel]:
    stmt = select(TransferModel)
    if bar_id:
        if direction == "incoming":
            stmt = stmt.where(TransferModel.destination_bar_id == bar_id)
        elif direction == "outgoing":
            stmt = stmt.where(TransferModel.source_bar_id == bar_id)
        else:
            stmt = stmt.where(
                (TransferModel.source_bar_id == bar_id) | (TransferModel.destination_bar_id == bar_id)
            )
    if status:
        stmt = stmt.where(TransferModel.status == status)
    res = await db.execute(stmt.order_by(TransferModel.created_at.desc()))
    return list(res.scalars().all())


async def count_pending_incoming(db: AsyncSession, bar_id: UUID) -> int:
    res = await db.execute(
        select(func.count(TransferModel.id)).where(
            TransferModel.destination_bar_id == bar_id,
            TransferModel.status == TRANSFER_PENDING,
        )
    )
    return int(res.scalar_one() or 0)


async def create_transfer(
    db: AsyncSession,
    *,
    source_bar_id: UUID,
    destination_bar_id: UUID,
    inventory_item_id: UUID,
    quantity: int,
    actor_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> TransferModel:
    quantity = int(quantity)
    if quantity <= 0:
        raise StockValidationError("quantity must be > 0")
    if source_bar_id == destination_bar_id:
        raise StockValidationError("source and destination bars must differ")

    for bar_id in (source_bar_id, destination_bar_id):
        if await db.get(BarModel, bar_id) is None:
            raise NotFoundError(f"Bar {bar_id} not found")
    if await db.get(InventoryItemModel, inventory_item_id) is None:
        raise NotFoundError("Inventory item not found")

    transfer = TransferModel(
        source_bar_id=source_bar_id,
        destination_bar_id=destination_bar_id,
        inventory_item_id=inventory_item_id,
        quantity=quantity,
        status=TRANSFER_PENDING,
        notes=notes,
        created_by=actor_id,
    )
    db.add(transfer)
    await db.flush()

    # Stock in flight belongs to neither bar until accepted
    await apply_movement(
        db,
        bar_id=source_bar_id,
        inventory_item_id=inventory_item_id,
        movement_type="out",
        quantity=quantity,
        actor_id=actor_id,
        notes=f"Transfer {transfer.id} to bar {destination_bar_id}",
        allow_negative=False,
    )
    await db.commit()
    await db.refresh(transfer)
    logger.info("Transfer %s created: %s x%s", transfer.id, inventory_item_id, quantity)
    return transfer


async def accept_transfer(db: AsyncSession, transfer_id: UUID, *, actor_id: Optional[UUID] = None) -> TransferModel:
    transfer = await get_transfer(db, transfer_id)
    now = utc_now()
    if not await _resolve_pending(db, transfer, TRANSFER_COMPLETED, now=now, notes=transfer.notes):
        raise InvalidTransferStateError(f"Transfer is already {transfer.status}")

    await restore_stock(
        db,
        transfer.destination_bar_id,
        transfer.inventory_item_id,
        transfer.quantity,
        actor_id=actor_id,
        notes=f"Transfer {transfer.id} received",
    )
    await db.commit()
    logger.info("Transfer %s accepted", transfer.id)
    return await get_transfer(db, transfer_id)


async def cancel_transfer(
    db: AsyncSession,
    transfer_id: UUID,
    *,
    actor_id: Optional[UUID] = None,
    reason: Optional[str] = None,
) -> TransferModel:
    transfer = await get_transfer(db, transfer_id)
    now = utc_now()
    notes = append_note(transfer.notes, f"Cancelled: {reason}") if reason else transfer.notes
    if not await _resolve_pending(db, transfer, TRANSFER_CANCELLED, now=now, notes=notes):
        raise InvalidTransferStateError(f"Transfer is already {transfer.status}")

    await restore_stock(
        db,
        transfer.source_bar_id,
        transfer.inventory_item_id,
        transfer.quantity,
        actor_id=actor_id,
        notes=f"Transfer {transfer.id} cancelled",
    )
    await db.commit()
    logger.info("Transfer %s cancelled", transfer.id)
    return await get_transfer(db, transfer_id)


async def expire_overdue_transfers(
    session_maker: async_sessionmaker,
    *,
    now: Optional[datetime] = None,
    timeout_hours: Optional[int] = None,
) -> ReconciliationResult:
    """
    Return stock for pending transfers older than the timeout and mark them expired.

    Each transfer is handled in its own transaction: the conditional status flip
    (only while still `pending`) and the restore to the source bar commit together
    or not at all. A failure is recorded against that transfer and the batch carries
    on. Expired transfers no longer match the pending filter, so re-running is a no-op.
    """
    now = now or utc_now()
    hours = settings.transfer_expiry_hours if timeout_hours is None else timeout_hours
    cutoff = now - timedelta(hours=hours)

    async with session_maker() as db:
        res = await db.execute(
            select(TransferModel)
            .where(TransferModel.status == TRANSFER_PENDING)
            .where(TransferModel.created_at < cutoff)
            .order_by(TransferModel.created_at.asc())
        )
        overdue = list(res.scalars().all())

    result = ReconciliationResult(total=len(overdue))
    if not overdue:
        logger.info("No expired transfers to process")
        return result

    note = expiry_note(hours)
    for transfer in overdue:
        async with session_maker() as db:
            try:
                claimed = await _resolve_pending(
                    db, transfer, TRANSFER_EXPIRED, now=now, notes=append_note(transfer.notes, note)
                )
                if not claimed:
                    await db.rollback()
                    result.skipped.append(transfer.id)
                    continue
                await restore_stock(
                    db,
                    transfer.source_bar_id,
                    transfer.inventory_item_id,
                    transfer.quantity,
                    notes=f"Transfer {transfer.id} expired, returned to source",
                )
                await db.commit()
                result.succeeded.append(transfer.id)
            except Exception as exc:  # collected per transfer, the batch continues
                await db.rollback()
                result.failures.append((transfer.id, str(exc)))
                logger.warning("Failed to expire transfer %s: %s", transfer.id, exc)

    logger.info(
        "Transfer expiry: processed=%d total=%d skipped=%d errors=%d",
        result.processed, result.total, len(result.skipped), len(result.failures),
    )
    return result
