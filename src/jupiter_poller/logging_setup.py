import logging
import sys
import time
from pathlib import Path
from typing import Optional

LOGGER_NAME = "jupiter_poller"


class UTCFormatter(logging.Formatter):
    converter = time.gmtime


def configure_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)
    fmt = UTCFormatter(
        fmt="%(asctime)sZ %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for old in list(log.handlers):
        log.removeHandler(old)
    for h in handlers:
        h.setFormatter(fmt)
        log.addHandler(h)
    return log
