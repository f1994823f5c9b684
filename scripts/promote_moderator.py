import asyncio
import os
import sys

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BACKEND_DIR = os.path.join(ROOT_DIR, "backend")
if BACKEND_DIR not in sys.path:
    sys.path.append(BACKEND_DIR)

from app.infra.postgres import close_pool, init_pool


async def promote(username: str, *, revoke: bool = False) -> None:
    pool = await init_pool()
    try:
        async with pool.acquire() as conn:
            user_id = await conn.fetchval(
                "UPDATE profiles SET is_moderator = $2 WHERE username = $1 RETURNING id",
                username,
                not revoke,
            )
        if user_id is None:
            print(f"ERROR: profile '{username}' not found.")
            return
        action = "Revoked moderator flag from" if revoke else "Granted moderator flag to"
        print(f"{action} {username} ({user_id}).")
    finally:
        await close_pool()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        raise SystemExit("usage: promote_moderator.py <username> [--revoke]")
    asyncio.run(promote(sys.argv[1], revoke="--revoke" in sys.argv[2:]))
