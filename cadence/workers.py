import logging
from typing import Any, Callable, Optional

from PySide6.QtCore import QRunnable, QThreadPool

import cadence.misc.cleanup as cleanup


class JobRunnable(QRunnable):
    def __init__(self, func: Callable[..., Any], args: tuple, kwargs: dict, logger: logging.Logger):
        super().__init__()
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.logger = logger
        self.setAutoDelete(True)

    def run(self):
        try:
            self.func(*self.args, **self.kwargs)
        except Exception:
            self.logger.exception("Job %s failed (args=%s, kwargs=%s)", getattr(self.func, "__name__", self.func), self.args, self.kwargs)


class BackgroundWorker:
    """Runs blocking jobs (network, stream resolution, backend imports) off the Qt main thread.

    Jobs must not touch playback state directly; they report back through
    signals, which Qt delivers on the main thread.
    """

    def __init__(self, max_threads: int = 4, threadpool: Optional[QThreadPool] = None):
        self.threadpool = threadpool or QThreadPool()
        self.threadpool.setMaxThreadCount(max_threads)
        self.logger = logging.getLogger("BackgroundWorker")
        self.stopped = False
        cleanup.addCleanup(self.stop)

    def add_job(self, func: Callable[..., Any], *args, **kwargs) -> bool:
        if self.stopped:
            self.logger.warning("Worker stopped, dropping job %s", func)
            return False
        self.threadpool.start(JobRunnable(func, args, kwargs, self.logger))
        return True

    def stop(self, timeoutMs: int = 5000):
        """Refuse new jobs and wait for running ones."""
        self.stopped = True
        self.threadpool.clear()
        if not self.threadpool.waitForDone(timeoutMs):
            self.logger.warning("Jobs still running after %sms, leaving them", timeoutMs)
        self.logger.info("BackgroundWorker stopped")


_bgworker: Optional[BackgroundWorker] = None


def bgworker() -> BackgroundWorker:
    global _bgworker
    if _bgworker is None:
        _bgworker = BackgroundWorker()
    return _bgworker
