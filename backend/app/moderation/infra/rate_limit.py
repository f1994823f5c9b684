"""Fixed-window report submission limiter backed by Redis."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from redis.exceptions import RedisError

from app.infra.redis import RedisProxy
from app.obs import metrics

logger = logging.getLogger(__name__)


@dataclass
class RedisReportLimiter:
    """Counts submissions per reporter in fixed windows.

    Redis failures admit the submission; reporting must not depend on the cache.
    """

    redis: RedisProxy
    limit: int
    window_seconds: int = 3600
    prefix: str = "rl:report"
    clock: Callable[[], float] = time.time

    async def allow(self, reporter_id: str) -> bool:
        if self.limit <= 0:
            return True
        window = max(1, int(self.window_seconds))
        slot = int(self.clock() // window)
        key = f"{self.prefix}:{reporter_id}:{slot}"
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, window)
                count, _ = await pipe.execute()
        except RedisError:
            logger.warning("report_rate_limit_unavailable", extra={"reporter_id": reporter_id}, exc_info=True)
            metrics.record_store_error("report_rate_limit")
            return True
        return int(count) <= self.limit
