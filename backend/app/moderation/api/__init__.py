"""Moderation API routers."""

from fastapi import APIRouter

from . import bans, pages, reports, review

router = APIRouter()
router.include_router(reports.router)
router.include_router(review.router)
router.include_router(bans.router)
router.include_router(pages.router)

__all__ = ["router"]
