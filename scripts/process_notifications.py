"""Drain one batch of the notification queue. Meant for cron.

Usage:
  python scripts/process_notifications.py            # run inline, print JSON summary
  python scripts/process_notifications.py --enqueue  # hand the batch to the RQ worker

Exit status is 1 when the batch could not be fetched or a status update
failed, so cron mail / monitoring picks it up.
"""

import argparse
import json
import os
import sys

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from guestportal import create_app
from guestportal.errors import StoreUnavailable
from guestportal.extensions import rq
from guestportal.jobs.process_notifications import process_notifications, run_process_notifications


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('--enqueue', action='store_true', help='enqueue onto RQ instead of running inline')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        if args.enqueue:
            job = rq.enqueue(run_process_notifications, job_timeout=300)
            print(json.dumps({'job_id': getattr(job, 'id', None)}))
            return 0
        try:
            summary = process_notifications()
        except StoreUnavailable as e:
            app.logger.exception('Failed to fetch notifications')
            print(json.dumps({'error': 'Failed to fetch notifications', 'details': str(e)}))
            return 1
    print(json.dumps(summary, indent=2))
    return 1 if summary.get('error') else 0


if __name__ == '__main__':
    sys.exit(main())
