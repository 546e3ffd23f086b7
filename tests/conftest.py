# tests/conftest.py
from datetime import date

import pytest
from httpx import ASGITransport, AsyncClient

from clinicslots.db.sql import get_session, init_db, make_engine, make_session_factory
from clinicslots.main import app
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.engine import build_engine

# 2026-10-19 is a Monday
MONDAY = date(2026, 10, 19)
TUESDAY = date(2026, 10, 20)
SUNDAY = date(2026, 10, 25)

HOURS = {
    "mon": {"is_working": True, "start": "09:00", "end": "12:00", "slot_minutes": 30},
    "tue": "09:00-10:00",
    "wed": {"is_working": True, "start": "09:00", "end": "11:00", "slot_minutes": 20},
    "sat": "Not Available",
    "sun": "-",
}


@pytest.fixture
async def db_engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'clinicslots-test.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s
        await s.rollback()


@pytest.fixture
def scheduling():
    return build_engine()


async def _add_provider(session_factory, code: str, **kwargs):
    async with session_factory() as s:
        async with s.begin():
            return await providers_repo.create_provider(
                s, code=code, display_name=f"Provider {code}", **kwargs
            )


@pytest.fixture
async def provider(session_factory):
    return await _add_provider(session_factory, "DR-01", working_hours=HOURS)


@pytest.fixture
async def other_provider(session_factory):
    return await _add_provider(session_factory, "DR-02", working_hours=HOURS)


@pytest.fixture
async def inactive_provider(session_factory):
    return await _add_provider(session_factory, "DR-99", working_hours=HOURS, is_active=False)


@pytest.fixture
async def client(session_factory, scheduling):
    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.state.engine = scheduling
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
