"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.matches import router as matches_router
from api.v1.routes.messages import router as messages_router
from api.v1.routes.scent import router as scent_router

router = APIRouter()
router.include_router(matches_router)
router.include_router(messages_router)
router.include_router(scent_router)
