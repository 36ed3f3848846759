import threading

from flask import current_app


class BackgroundCheckMonitor:
    """Owned handle that runs the reconciliation loop on an interval.

    Nothing is global: the app factory (or a test) creates an instance,
    starts it and stops it. ``run_once`` is the manual trigger.
    """

    def __init__(self, app, interval=300, runner=None):
        self.app = app
        self.interval = interval
        self._runner = runner
        self._stop = threading.Event()
        self._thread = None
        self.last_results = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def run_once(self):
        with self.app.app_context():
            runner = self._runner
            if runner is None:
                from ..jobs.reconcile import run_background_check_reconciliation
                runner = run_background_check_reconciliation
            try:
                self.last_results = runner()
            except Exception:
                # configuration errors are reported but do not kill the thread
                current_app.logger.exception('Background check monitor run failed')
                self.last_results = None
            return self.last_results

    def _loop(self):
        while not self._stop.is_set():
            self.run_once()
            self._stop.wait(self.interval)

    def start(self):
        if self.running:
            return False
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="background-check-monitor", daemon=True)
        self._thread.start()
        self.app.logger.info('Background check monitor started, checking every %ss', self.interval)
        return True

    def stop(self, timeout=5):
        if not self._thread:
            return False
        self._stop.set()
        self._thread.join(timeout)
        self._thread = None
        self.app.logger.info('Background check monitor stopped')
        return True
