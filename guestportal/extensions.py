from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from redis import Redis
from rq import Queue
from flask import current_app

# RQ-only keyword arguments that must not leak into a synchronous call
RQ_KEYS = {'job_timeout', 'timeout', 'at_front', 'depends_on', 'result_ttl', 'ttl', 'meta', 'description', 'job_id'}


class RQWrapper:
    def __init__(self):
        self.redis = None
        self.queue = None

    def init_app(self, app):
        self.redis = None
        self.queue = None
        if app.config.get("TESTING") or not app.config.get("REDIS_URL"):
            return
        try:
            self.redis = Redis.from_url(app.config["REDIS_URL"])
            self.redis.ping()
            self.queue = Queue("default", connection=self.redis)
        except Exception:
            # no redis server (dev machine): jobs run inline
            app.logger.warning('Redis/RQ init failed, falling back to sync execution', exc_info=True)
            self.redis = None
            self.queue = None

    def _run_inline(self, args, kwargs):
        func = args[0] if args else None
        if func is None:
            return None
        safe_kwargs = {k: v for k, v in kwargs.items() if k not in RQ_KEYS}
        return func(*args[1:], **safe_kwargs)

    def enqueue(self, *args, **kwargs):
        """Enqueue onto RQ when available, otherwise call the job synchronously.

        The synchronous result is returned as-is, so callers must not assume
        an RQ ``Job`` comes back.
        """
        if not self.queue:
            return self._run_inline(args, kwargs)
        try:
            return self.queue.enqueue(*args, **kwargs)
        except Exception:
            current_app.logger.exception('RQ enqueue failed, falling back to sync execution')
            return self._run_inline(args, kwargs)


db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
rq = RQWrapper()
