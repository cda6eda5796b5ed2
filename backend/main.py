import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging import setup_logging
from core.scheduler import IntervalJob
from db.database import async_session_maker, create_db_and_tables
from routers.bars import router as bars_router
from routers.inventory import router as inventory_router
from routers.menu import router as menu_router
from routers.orders import router as orders_router
from routers.pos import router as pos_router
from routers.transfers import router as transfers_router
from services.transfers import expire_overdue_transfers

logger = logging.getLogger(__name__)


async def _expire_transfers_job():
    await expire_overdue_transfers(async_session_maker)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await create_db_and_tables()
    job = None
    if settings.expiry_job_enabled:
        job = IntervalJob(
            name="expire-transfers",
            func=_expire_transfers_job,
            interval_seconds=settings.expiry_job_interval_seconds,
        )
        job.start()
    yield
    if job is not None:
        await job.stop()


app = FastAPI(
    title="Bar POS API",
    description="Stock-aware point of sale and inventory for bars",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(bars_router, prefix="/bars", tags=["bars"])
app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
app.include_router(menu_router, prefix="/menu", tags=["menu"])
app.include_router(pos_router, prefix="/pos", tags=["pos"])
app.include_router(orders_router, prefix="/orders", tags=["orders"])
app.include_router(transfers_router, prefix="/transfers", tags=["transfers"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
