from flask import Blueprint, jsonify, request

from ..extensions import get_pipeline
from .responses import respond, to_bool, to_int

bp = Blueprint("trends_api", __name__)


@bp.get("/trends")
def list_trends():
    args = request.args
    if to_bool(args.get("current")):
        return jsonify(get_pipeline().trends.get_current_trends(to_int(args.get("limit"), 10, minimum=0)))
    trends = get_pipeline().trends.get_trends(
        source=args.get("source") or None,
        hours=to_int(args.get("hours"), 24, minimum=0),
        order_by=args.get("order_by") or "engagement_score",
        order=args.get("order") or "desc",
        limit=to_int(args.get("limit"), 20, minimum=0),
        offset=to_int(args.get("offset"), 0, minimum=0),
    )
    return jsonify(trends)


@bp.post("/trends/scan")
def scan_trends():
    return respond(get_pipeline().orchestrator.scan_trends())


@bp.get("/trends/<int:trend_id>")
def get_trend(trend_id):
    trend = get_pipeline().trends.get_trend(trend_id)
    if not trend:
        return jsonify({"success": False, "message": "Trend not found"}), 404
    return jsonify(trend)
