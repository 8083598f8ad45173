from flask import current_app, jsonify, request
from ...errors import StoreUnavailable
from ...extensions import rq
from ...jobs.process_notifications import process_notifications, run_process_notifications
from ...utils.decorators import cron_secret_required
from . import bp


@bp.post("/process-notifications")
@cron_secret_required
def trigger_process_notifications():
    """Scheduler hook: drain one batch of the notification queue.

    ``?async=1`` hands the batch to RQ instead and returns the job id.
    """
    if request.args.get("async") == "1":
        job = rq.enqueue(run_process_notifications, job_timeout=300)
        return jsonify({"job_id": getattr(job, "id", None)}), 202

    try:
        summary = process_notifications()
    except StoreUnavailable as e:
        current_app.logger.exception("Failed to fetch notifications")
        return jsonify({"error": "Failed to fetch notifications", "details": str(e)}), 500
    except Exception as e:
        current_app.logger.exception("Notification worker error")
        return jsonify({"error": "Internal server error", "details": str(e)}), 500

    status = 500 if summary.get("error") else 200
    return jsonify(summary), status
