"""Translate asyncpg failures into moderation errors."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import asyncpg

from app.moderation.domain.errors import Internal, SetupRequired
from app.obs import metrics

logger = logging.getLogger(__name__)

_MISSING_SCHEMA = (
    asyncpg.exceptions.UndefinedTableError,
    asyncpg.exceptions.UndefinedColumnError,
)


@contextmanager
def store_errors(operation: str, *, target: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except _MISSING_SCHEMA as exc:
        metrics.record_store_error(operation)
        logger.error(
            "moderation_store_missing_schema",
            extra={"operation": operation, "target": target, "error": type(exc).__name__},
        )
        raise SetupRequired() from exc
    except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
        metrics.record_store_error(operation)
        logger.error(
            "moderation_store_error",
            extra={"operation": operation, "target": target, "error": type(exc).__name__},
        )
        raise Internal() from exc


def as_uuid(value: Any) -> uuid.UUID | None:
    """Return ``value`` as a UUID, or None when it is not UUID-shaped."""

    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def opt_str(value: Any) -> str | None:
    return str(value) if value is not None else None
