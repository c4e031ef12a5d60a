import os

from reviewbot.logger import get_logger

logger = get_logger()


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    display_url = f"http://localhost:{port}"

    logger.info(
        "Starting reviewbot webhook server on {display_url} (binding to {host}:{port})",
        display_url=display_url,
        host=host,
        port=port,
    )

    import uvicorn

    uvicorn.run(
        app="reviewbot.main:app",
        host=host,
        port=port,
        reload=os.getenv("RELOAD", "").lower() in {"1", "true", "yes"},
        workers=1,
        log_level="info",
    )


if __name__ == "__main__":
    main()
