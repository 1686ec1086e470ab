from fastapi import APIRouter

from .health import router as health_router
from .project import router as project_router
from .report import router as report_router


api_router = APIRouter()

api_router.include_router(health_router, tags=["health"])
api_router.include_router(project_router)
api_router.include_router(report_router)
