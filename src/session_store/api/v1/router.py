from fastapi import APIRouter

from . import conversations, health, users

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(conversations.router)
api_router.include_router(users.router)
