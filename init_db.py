# init_db.py
import argparse
import asyncio
from datetime import date, timedelta

from clinicslots.core.config import settings
from clinicslots.core.logging import configure_logging
from clinicslots.db.sql import AsyncSessionLocal, engine, init_db
from clinicslots.modules.providers import repository as providers_repo
from clinicslots.modules.slots.engine import build_engine

DEMO_HOURS = {
    "mon": {"is_working": True, "start": "09:00", "end": "17:00", "slot_minutes": 30},
    "tue": {"is_working": True, "start": "09:00", "end": "17:00", "slot_minutes": 30},
    "wed": {"is_working": True, "start": "09:00", "end": "13:00", "slot_minutes": 20},
    "thu": {"is_working": True, "start": "09:00", "end": "17:00", "slot_minutes": 30},
    "fri": "09:00-15:00",
    "sat": "Not Available",
    "sun": "Not Available",
}


async def init_models(drop: bool, seed: bool) -> None:
    # All models are imported inside init_db so Base.metadata knows them
    await init_db(engine, drop=drop)
    print("Database schema ready" + (" (recreated)" if drop else ""))

    if not seed:
        return

    scheduling = build_engine()
    today = date.today()
    async with AsyncSessionLocal() as session:
        async with session.begin():
            provider = await providers_repo.create_provider(
                session, code="DEMO-01", display_name="Demo Provider", working_hours=DEMO_HOURS
            )
            days = await scheduling.blocking.materialize_range(
                session,
                provider.id,
                today,
                today + timedelta(days=settings.GRID_HORIZON_DAYS - 1),
                actor="init_db",
            )
    print(f"Seeded provider {provider.id} with grid for {len(days)} days")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the clinic slots schema")
    parser.add_argument("--drop", action="store_true", help="drop all tables first")
    parser.add_argument("--seed", action="store_true", help="add a demo provider and its grid")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(init_models(args.drop, args.seed))
