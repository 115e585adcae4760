"""Process-wide logging setup."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once at startup.

    Modules log through ``logging.getLogger(__name__)``; this only decides
    where records go and which level passes.
    """
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)
    # httpx logs every request at INFO, which drowns the application logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
