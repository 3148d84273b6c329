from fastapi import APIRouter

from .endpoints import activity, health

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(activity.router)
