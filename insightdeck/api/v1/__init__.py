"""API v1 routers"""

from fastapi import APIRouter

from .chat import router as chat_router
from .slides import router as slides_router
from .system import router as system_router

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(slides_router)
v1_router.include_router(chat_router)
v1_router.include_router(system_router)
