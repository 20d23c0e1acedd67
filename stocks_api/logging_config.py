"""
Logging setup for applications embedding the client
"""

import logging

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: int = logging.INFO) -> None:
    """Apply the standard log format; the package never calls this on import"""
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("stocks_api").setLevel(level)
