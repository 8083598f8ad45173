"""Run an RQ worker for notification jobs inside the Flask app context.

Usage:
  python scripts/run_rq_worker.py            # long-running
  python scripts/run_rq_worker.py --burst    # drain the queue and exit

Jobs enqueued by ``POST /jobs/process-notifications?async=1`` and
``scripts/process_notifications.py --enqueue`` land on the ``default`` queue.
On macOS set OBJC_DISABLE_INITIALIZE_FORK_SAFETY=YES before starting.
"""

import argparse
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import redis
from rq import Queue, Worker

from guestportal import create_app


def main(argv=None):
    parser = argparse.ArgumentParser(description='RQ worker for guestportal jobs')
    parser.add_argument('--burst', action='store_true', help='exit once the queue is empty')
    parser.add_argument('--queue', action='append', dest='queues', help='queue name (repeatable)')
    args = parser.parse_args(argv)

    app = create_app()
    redis_url = app.config.get('REDIS_URL') or 'redis://localhost:6379/0'
    conn = redis.from_url(redis_url)
    with app.app_context():
        queues = [Queue(name, connection=conn) for name in (args.queues or ['default'])]
        worker = Worker(queues, connection=conn)
        app.logger.info('RQ worker starting on %s (pid %s)', ', '.join(q.name for q in queues), os.getpid())
        try:
            worker.work(burst=args.burst, with_scheduler=not args.burst, logging_level='INFO')
        finally:
            app.logger.info('RQ worker exiting (pid %s)', os.getpid())


if __name__ == '__main__':
    main()
