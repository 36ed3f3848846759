from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from redis import Redis
from rq import Queue
from flask import current_app

# RQ options that must not leak into a direct function call
RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description', 'job_id'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        if app.config.get("RQ_SYNC"):
            # tests and one-off scripts run jobs inline
            self.redis = None
            self.queue = None
            return
        try:
            self.redis = Redis.from_url(app.config.get("REDIS_URL"))
            self.queue = Queue("default", connection=self.redis)
        except Exception:
            # no redis server on this machine: run jobs synchronously
            app.logger.exception('Redis/RQ init failed, falling back to sync execution')
            self.redis = None
            self.queue = None

    def _run_sync(self, func, *args, **kwargs):
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in RQ_KEYS}
        try:
            return func(*args, **safe_kwargs)
        except Exception:
            current_app.logger.exception('Synchronous job %s failed', getattr(func, '__name__', func))
            return None

    def enqueue(self, func, *args, **kwargs):
        if not self.queue:
            return self._run_sync(func, *args, **kwargs)
        try:
            return self.queue.enqueue(func, *args, **kwargs)
        except Exception:
            current_app.logger.exception('RQ enqueue failed, falling back to sync execution')
            return self._run_sync(func, *args, **kwargs)


db = SQLAlchemy()
migrate = Migrate()
rq = RQWrapper()
