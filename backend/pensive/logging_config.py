"""Logging setup for the dev server and scripts."""
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route pensive loggers through one stream handler.

    Under uvicorn the server's own handlers stay in place; this only adds a
    format for the ``pensive`` namespace and quiets chatty HTTP clients.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("pensive").setLevel(level)
    for noisy in ("httpx", "urllib3", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
