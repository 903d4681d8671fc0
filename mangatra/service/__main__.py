import uvicorn

from mangatra.core.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("mangatra.service.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
