from flask import Blueprint, jsonify, request, current_app

from ..errors import ValidationError
from ..extensions import get_pipeline
from ..storage.activity_log import LOG_LEVELS
from .responses import json_object, respond, to_int

bp = Blueprint("pipeline_api", __name__)


@bp.get("/stats")
def stats():
    pipeline = get_pipeline()
    counts = {status: len(pipeline.designs.list_designs(status=status, limit=10**6))
              for status in pipeline.designs.status_labels()}
    return jsonify({**pipeline.designs.get_stats(), "designs_by_status": counts})


@bp.post("/sales/sync")
def sync_sales():
    return respond(get_pipeline().orchestrator.sync_sales())


@bp.post("/storefront/test")
def test_storefront():
    return respond(get_pipeline().orchestrator.test_connection())


@bp.post("/maintenance")
def run_maintenance():
    return respond(get_pipeline().orchestrator.run_maintenance())


@bp.get("/settings")
def get_settings():
    return jsonify(get_pipeline().settings.all())


@bp.patch("/settings")
def update_settings():
    payload = json_object()
    try:
        updated = get_pipeline().settings.update(payload)
    except ValidationError as e:
        return jsonify({"success": False, "message": str(e), "code": e.code}), 400
    current_app.logger.info("Settings updated: %s", ", ".join(sorted(payload)))
    return jsonify(updated)


@bp.get("/logs")
def list_logs():
    activity = get_pipeline().activity
    level = request.args.get("level") or None
    if level and level not in LOG_LEVELS:
        return jsonify({"success": False, "message": f"Unknown level: {level}"}), 400
    design_id = to_int(request.args.get("design_id"), 0) or None
    logs = activity.get_logs(level=level, design_id=design_id,
                             limit=to_int(request.args.get("limit"), 50, minimum=0),
                             offset=to_int(request.args.get("offset"), 0, minimum=0))
    return jsonify({"logs": logs, "total": activity.count(level)})


@bp.delete("/logs")
def clear_logs():
    days = request.args.get("older_than_days")
    activity = get_pipeline().activity
    deleted = activity.clear_old_logs(to_int(days, 30, minimum=0)) if days else activity.delete_all()
    return jsonify({"success": True, "message": f"Deleted {deleted} log entries.", "count": deleted})


@bp.get("/notifications")
def list_notifications():
    return jsonify(get_pipeline().notifier.pending())


@bp.post("/notifications/<key>/dismiss")
def dismiss_notification(key):
    if not get_pipeline().notifier.acknowledge(key):
        return jsonify({"success": False, "message": "Notification not found"}), 404
    return jsonify({"success": True, "message": "Notification dismissed."})
