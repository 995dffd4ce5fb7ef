from fastapi import APIRouter

from session_store.utils.timestamps import utc_now_iso

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    # Liveness only; does not touch the database
    return {"status": "ok", "timestamp": utc_now_iso()}
