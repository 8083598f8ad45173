from flask import current_app, render_template, jsonify, abort, request
from . import bp
from ...models.notification import Notification
from ...services.notification_queue import get_notification_status, get_notification_timeline
from ...services.notification_store import NotificationStore
from ...utils.decorators import admin_required


def _store():
    return NotificationStore.from_config(current_app.config)


@bp.get("")
@admin_required
def index():
    status = request.args.get("status")
    query = Notification.query
    if status:
        query = query.filter(Notification.status == status)
    recent = query.order_by(Notification.created_at.desc()).limit(50).all()
    store = _store()
    return render_template("admin/index.html", counts=store.status_counts(),
                           queue=store.queue_status(), errors=store.error_summary(),
                           notifications=recent, status=status)


@bp.get("/notifications/failed")
@admin_required
def failed_report():
    limit = request.args.get("limit", default=100, type=int)
    rows = _store().failed_notifications_report(limit=min(max(limit, 1), 500))
    return jsonify({"notifications": [r.to_dict() for r in rows]})


@bp.get("/notifications/<notification_id>")
@admin_required
def notification_timeline(notification_id):
    status = get_notification_status(notification_id)
    if status is None:
        abort(404)
    return jsonify({"notification": status, "timeline": get_notification_timeline(notification_id)})


@bp.get("/notifications/errors")
@admin_required
def error_summary():
    return jsonify({"errors": _store().error_summary()})


@bp.get("/notifications/queue-status")
@admin_required
def queue_status():
    return jsonify(_store().queue_status())
