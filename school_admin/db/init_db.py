"""
Create all tables from the ORM metadata, then seed the default admin.

Run once against an empty database:
  python -m school_admin.db.init_db
"""
import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

import school_admin.core.models  # noqa: F401  (registers every table on Base.metadata)
from school_admin.db.seed_admin import seed_admin
from school_admin.db.session import AsyncSessionLocal, Base, engine


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Tables ensured:", ", ".join(sorted(Base.metadata.tables)))


async def main() -> None:
    await create_tables(engine)
    async with AsyncSessionLocal() as db:
        await seed_admin(db)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
