from fastapi import APIRouter

from .health import health_router
from .reference import reference_router
from .students import students_router

main_router = APIRouter()
main_router.include_router(health_router, prefix="/health", tags=["health"])
main_router.include_router(students_router, prefix="/students", tags=["students"])
main_router.include_router(reference_router, prefix="/reference", tags=["reference"])

__all__ = ["main_router"]
