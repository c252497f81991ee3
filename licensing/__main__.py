"""Run the API server: python -m licensing"""
import uvicorn

from licensing.config import settings


def main():
    uvicorn.run(
        "licensing.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
