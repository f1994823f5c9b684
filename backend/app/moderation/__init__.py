"""Moderation package integration helpers exposed to the application."""

from app.moderation.api import router
from app.moderation.domain.container import configure, configure_postgres
from app.moderation.middleware.ban_gate import install as install_ban_enforcement

__all__ = ["router", "configure", "configure_postgres", "install_ban_enforcement"]
