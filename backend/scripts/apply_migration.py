import asyncio
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BACKEND_DIR))

from fdrs.infra.postgres import close_pool, get_pool

MIGRATIONS_DIR = BACKEND_DIR / "migrations"


async def apply_migration(filename: str) -> int:
    migration_path = MIGRATIONS_DIR / filename
    if not migration_path.exists():
        print(f"Migration file not found: {migration_path}")
        return 1

    print(f"Applying migration: {filename}")
    sql = migration_path.read_text(encoding="utf-8")

    pool = await get_pool()
    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute(sql)
    finally:
        await close_pool()
    print("Migration applied successfully.")
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python apply_migration.py <migration_filename>")
        sys.exit(1)

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    sys.exit(asyncio.run(apply_migration(os.path.basename(sys.argv[1]))))
