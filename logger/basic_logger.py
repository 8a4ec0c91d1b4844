import logging
from typing import Optional, Union


def setup_logger(
    level: Union[int, str] = logging.INFO, name: Optional[str] = None
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.propagate = False

    # loggers are singletons: clear handlers so repeated setup does not duplicate lines
    logger.handlers.clear()
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
