import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
QUIET_LOGGERS = {
    "googleapiclient.discovery_cache": logging.ERROR,
    "httpx": logging.WARNING,
}


def setup_logging(level) -> None:
    """Настраивает корневой логгер, если его ещё никто не настроил (uvicorn, rq, pytest)."""
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
