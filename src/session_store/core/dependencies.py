from fastapi import Request

from session_store.database.store import Store
from session_store.exceptions.base import StoreUnavailableError


def get_store(request: Request) -> Store:
    # Set by the application lifespan; absent only if startup failed or has not run
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailableError()
    return store
