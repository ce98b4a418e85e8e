import uvicorn

from contact_relay.core.config import settings


def main() -> None:
    uvicorn.run(
        "contact_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_config=None,
    )


if __name__ == "__main__":
    main()
