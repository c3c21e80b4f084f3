from fastapi import APIRouter

from app.api.v1.endpoints.health import router as health_router
from app.api.v1.endpoints.advertisements import router as advertisements_router
from app.api.v1.endpoints.admin_advertisements import router as admin_router


router = APIRouter(prefix="/api")
router.include_router(health_router, tags=["health"])
router.include_router(advertisements_router, tags=["advertisements"])
router.include_router(admin_router, tags=["admin"])
