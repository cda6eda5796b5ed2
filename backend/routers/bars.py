from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from db.bar import Bar as BarModel
from db.database import get_async_session
from schemas.bars import BarRead, BarCreate

router = APIRouter()


@router.get("/", response_model=List[BarRead])
async def list_bars(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(
        select(BarModel)
        .where(BarModel.is_active == True)  # noqa: E712
        .order_by(func.lower(BarModel.name).asc())
    )
    return [BarRead(**b.to_schema) for b in res.scalars().all()]


@router.get("/{bar_id}", response_model=BarRead)
async def get_bar(bar_id: UUID, db: AsyncSession = Depends(get_async_session)):
    bar = await db.get(BarModel, bar_id)
    if not bar:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Bar not found")
    return BarRead(**bar.to_schema)


@router.post("/", response_model=BarRead, status_code=status.HTTP_201_CREATED)
async def create_bar(payload: BarCreate, db: AsyncSession = Depends(get_async_session)):
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")

    existing = await db.execute(select(BarModel).where(func.lower(BarModel.name) == name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Bar already exists")

    m = BarModel(name=name, is_active=True)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return BarRead(**m.to_schema)
