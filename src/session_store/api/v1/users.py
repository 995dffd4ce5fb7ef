from fastapi import APIRouter, Depends

from session_store.core.dependencies import get_store
from session_store.database.store import Store
from session_store.repositories.user_repository import UserRepository
from session_store.schemas.user import LoginRequest, SessionsView, UserRecord

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post("/login", response_model=UserRecord)
async def login(payload: LoginRequest, store: Store = Depends(get_store)):
    """Log in (or implicitly register) a user by name."""
    async with store.session() as db:
        return await UserRepository(db).login_or_create(payload.user_name)


@router.get("/{user_name}/sessions", response_model=SessionsView)
async def get_sessions(user_name: str, store: Store = Depends(get_store)):
    async with store.session() as db:
        return await UserRepository(db).get_sessions(user_name)
