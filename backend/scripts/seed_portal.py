import argparse
import asyncio
import sys
import uuid
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.append(str(BACKEND_DIR))

from fdrs.infra.postgres import close_pool, init_pool


async def seed(faculties: list[str], admin_email: str | None, admin_username: str | None) -> None:
    pool = await init_pool()
    try:
        async with pool.acquire() as conn:
            for name in faculties:
                existing = await conn.fetchval("SELECT id FROM faculties WHERE name = $1", name)
                if existing:
                    print(f"Faculty '{name}' already exists ({existing}).")
                    continue
                faculty_id = uuid.uuid4()
                await conn.execute("INSERT INTO faculties (id, name) VALUES ($1, $2)", faculty_id, name)
                print(f"Created faculty '{name}' ({faculty_id}).")

            if not admin_email:
                return
            user_id = await conn.fetchval("SELECT id FROM users WHERE email = $1", admin_email)
            if user_id:
                await conn.execute("UPDATE users SET is_admin = TRUE WHERE id = $1", user_id)
                print(f"Promoted {admin_email} to admin.")
                return
            user_id = uuid.uuid4()
            await conn.execute(
                "INSERT INTO users (id, email, username, is_admin) VALUES ($1, $2, $3, TRUE)",
                user_id,
                admin_email,
                admin_username or admin_email.split("@", 1)[0],
            )
            print(f"Created admin {admin_email} ({user_id}).")
    finally:
        await close_pool()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed faculties and an admin account")
    parser.add_argument("--faculty", action="append", default=[], help="faculty name (repeatable)")
    parser.add_argument("--admin-email")
    parser.add_argument("--admin-username")
    args = parser.parse_args()

    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(seed(args.faculty, args.admin_email, args.admin_username))
