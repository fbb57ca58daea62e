"""
Fire-and-forget side effects (donor receipts).

Jobs are submitted to a thread pool and never joined with the request.
Every failure is logged on the ``notifications`` logger and dropped.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

failure_log = logging.getLogger("notifications")


class Notifier:
    def __init__(self, app=None, max_workers: int = 2, sync: bool = False):
        self.sync = sync
        self.max_workers = max_workers
        self._executor = None
        self.app = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        self.sync = app.config.get("NOTIFY_SYNC", self.sync)
        self.max_workers = app.config.get("NOTIFY_MAX_WORKERS", self.max_workers)
        if not self.sync:
            self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="notify")
        app.extensions["notifier"] = self

    def submit(self, job, *args, **kwargs):
        if self.sync:
            self._run(job, args, kwargs)
            return None
        return self._executor.submit(self._run_in_context, job, args, kwargs)

    def _run_in_context(self, job, args, kwargs):
        with self.app.app_context():
            self._run(job, args, kwargs)

    def _run(self, job, args, kwargs):
        try:
            job(*args, **kwargs)
        except Exception:
            failure_log.exception("notification job %s failed", getattr(job, "__name__", job))

    def shutdown(self, wait: bool = True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
