"""Recompute profiles.ban_reason/banned_until from user_bans.

Safe to run at any time; expired bans fall out of the projection.
"""

import asyncio
import os
import sys

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BACKEND_DIR = os.path.join(ROOT_DIR, "backend")
if BACKEND_DIR not in sys.path:
    sys.path.append(BACKEND_DIR)

from app.infra.postgres import close_pool, init_pool
from app.infra.redis import redis_client
from app.moderation.domain import container


async def refresh() -> None:
    pool = await init_pool()
    try:
        container.configure_postgres(pool, redis_client)
        count = await container.get_ban_service().refresh_all()
        print(f"Refreshed ban state for {count} user(s).")
    finally:
        await close_pool()


if __name__ == "__main__":
    asyncio.run(refresh())
