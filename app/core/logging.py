import logging
import time

from fastapi import FastAPI, Request

logger = logging.getLogger("app.request")

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler()
    handler.set_name("default")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    if not any(h.get_name() == "default" for h in root.handlers):
        root.addHandler(handler)
    root.setLevel(level.upper())

    # SQL пишет только при явном echo
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def setup_request_logging(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        level = logging.INFO
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        logger.log(
            level,
            "%-7s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response
