import asyncio
import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Settings are read at import time; point them at SQLite before any app module loads
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_barpos.db")
os.environ["EXPIRY_JOB_ENABLED"] = "false"

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from db.bar import Bar  # noqa: E402
from db.database import Base, get_async_session, import_all_models  # noqa: E402
from db.inventory.item import InventoryItem  # noqa: E402
from db.inventory.stock import LocationStock  # noqa: E402
from db.menu import MenuItem  # noqa: E402
from main import app  # noqa: E402
from routers.transfers import get_session_maker  # noqa: E402


def _make_engine(path: Path):
    # NullPool: no connection outlives the event loop that opened it
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def _create_all(engine):
    import_all_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def session_maker(tmp_path):
    engine = _make_engine(tmp_path / "stock.db")
    await _create_all(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def save(session_maker):
    # Fixture rows are committed from their own session so a rollback in `db` never expires them
    async def _save(*rows):
        async with session_maker() as session:
            session.add_all(rows)
            await session.commit()
        return list(rows)
    return _save


@pytest.fixture
async def bars(save):
    return await save(Bar(name="Bar A"), Bar(name="Bar B"))


@pytest.fixture
async def lager(save):
    [item] = await save(InventoryItem(name="Lager", unit="pint", category="Beer"))
    return item


@pytest.fixture
def stock_item(save):
    async def _stock_item(bar, item, current_stock, min_stock_level=2):
        row = LocationStock(
            bar_id=bar.id,
            inventory_item_id=item.id,
            current_stock=current_stock,
            min_stock_level=min_stock_level,
        )
        [row] = await save(row)
        return row
    return _stock_item


@pytest.fixture
def add_menu_item(save):
    async def _add_menu_item(name, price, item=None, track_inventory=True):
        menu_item = MenuItem(
            name=name,
            price=Decimal(str(price)),
            track_inventory=track_inventory and item is not None,
            inventory_item_id=item.id if item is not None else None,
        )
        [menu_item] = await save(menu_item)
        return menu_item
    return _add_menu_item


@pytest.fixture
def api_session_maker(tmp_path):
    engine = _make_engine(tmp_path / "api.db")
    asyncio.run(_create_all(engine))
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def client(api_session_maker):
    async def override_session():
        async with api_session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_session_maker] = lambda: api_session_maker
    # Not entered as a context manager: the lifespan (table creation, expiry job) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()
