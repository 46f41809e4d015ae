import logging
from typing import Callable

cleanup: dict[Callable, tuple[tuple, dict]] = {}


def addCleanup(func, *args, **kwargs):
    cleanup[func] = (args, kwargs)


def removeCleanup(func):
    cleanup.pop(func, None)


def runCleanup():
    logger = logging.getLogger("Cleanup")
    logger.info("Running cleanup")
    for func, (args, kwargs) in list(cleanup.items()):
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception("Cleanup step %s failed", func)
