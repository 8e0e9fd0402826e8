from flask import Blueprint, jsonify, request, current_app

from ..extensions import get_pipeline
from ..storage.designs import DESIGN_STATUSES
from .responses import json_object, respond, to_int

bp = Blueprint("designs_api", __name__)

EDITABLE_META = ("custom_prompt", "highlight_word", "highlight_color", "text_color", "text_only")


def _design_ids(payload: dict) -> list[int]:
    raw_ids = payload.get("design_ids")
    if not isinstance(raw_ids, list):
        return []
    ids = []
    for raw in raw_ids:
        value = to_int(raw, 0)
        if value > 0:
            ids.append(value)
    return ids


def _with_links(design: dict) -> dict:
    out = dict(design)
    out["status_label"] = DESIGN_STATUSES.get(design.get("status"), design.get("status"))
    if design.get("image"):
        out["asset_url"] = f"/designs/{design['id']}/asset"
        out["thumbnail_url"] = f"/designs/{design['id']}/thumbs/medium"
    return out


@bp.get("/designs")
def list_designs():
    status = request.args.get("status") or None
    if status and status not in DESIGN_STATUSES:
        return jsonify({"success": False, "message": f"Unknown status: {status}"}), 400
    designs = get_pipeline().designs.list_designs(
        status=status,
        limit=to_int(request.args.get("limit"), 20, minimum=0),
        offset=to_int(request.args.get("offset"), 0, minimum=0),
    )
    return jsonify([_with_links(d) for d in designs])


@bp.get("/designs/<int:design_id>")
def get_design(design_id):
    design = get_pipeline().designs.get_design(design_id)
    if not design:
        return jsonify({"success": False, "message": "Design not found"}), 404
    return jsonify(_with_links(design))


@bp.patch("/designs/<int:design_id>/meta")
def update_design_meta(design_id):
    """Accepts ``{key: value}``; an empty value removes the key."""
    payload = json_object()
    unknown = sorted(k for k in payload if k not in EDITABLE_META)
    if unknown:
        return jsonify({"success": False, "message": f"Unknown meta keys: {', '.join(unknown)}"}), 400
    designs = get_pipeline().designs
    if not designs.get_design(design_id):
        return jsonify({"success": False, "message": "Design not found"}), 404
    for key, value in payload.items():
        designs.set_meta(design_id, key, value)
    return jsonify(_with_links(designs.get_design(design_id)))


@bp.post("/designs/<int:design_id>/approve")
def approve_design(design_id):
    return respond(get_pipeline().orchestrator.approve_design(design_id))


@bp.post("/designs/<int:design_id>/reject")
def reject_design(design_id):
    return respond(get_pipeline().orchestrator.reject_design(design_id))


@bp.post("/designs/<int:design_id>/publish")
def publish_design(design_id):
    outcome = get_pipeline().orchestrator.publish_design(design_id)
    if not outcome.ok:
        current_app.logger.warning("Publish failed for design %s: %s", design_id, outcome.message)
    return respond(outcome)


@bp.post("/designs/<int:design_id>/regenerate")
def regenerate_design(design_id):
    return respond(get_pipeline().orchestrator.regenerate_design(design_id))


@bp.post("/designs/<int:design_id>/image")
def generate_image(design_id):
    return respond(get_pipeline().orchestrator.generate_image(design_id))


@bp.post("/designs/<int:design_id>/remove-background")
def remove_background(design_id):
    return respond(get_pipeline().orchestrator.remove_background(design_id))


@bp.post("/designs/<int:design_id>/upscale")
def upscale_image(design_id):
    return respond(get_pipeline().orchestrator.upscale_image(design_id))


@bp.post("/designs/bulk-approve")
def bulk_approve():
    ids = _design_ids(json_object())
    if not ids:
        return jsonify({"success": False, "message": "No designs selected."}), 400
    return respond(get_pipeline().orchestrator.bulk_approve(ids))


@bp.post("/designs/bulk-reject")
def bulk_reject():
    ids = _design_ids(json_object())
    if not ids:
        return jsonify({"success": False, "message": "No designs selected."}), 400
    return respond(get_pipeline().orchestrator.bulk_reject(ids))


@bp.post("/designs/generate")
def generate_designs():
    payload = json_object()
    count = payload.get("count")
    return respond(get_pipeline().orchestrator.generate_designs(to_int(count, 5) if count is not None else None))
