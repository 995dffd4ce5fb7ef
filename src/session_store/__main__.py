import uvicorn

from session_store.config.settings import get_settings
from session_store.main import create_app


def main() -> None:
    settings = get_settings()
    # log_config=None keeps uvicorn from replacing the dictConfig applied at startup
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
