from flask import Blueprint, send_from_directory

from ..extensions import get_pipeline

bp = Blueprint("designs_pages", __name__)


@bp.get("/designs/<int:design_id>/asset")
def serve_design_asset(design_id):
    """
    Serves the design's current print file. Storefronts fetch artwork from here
    (PUBLIC_BASE_URL + this path) when a product is created.
    """
    pipeline = get_pipeline()
    design = pipeline.designs.get_design(design_id)
    if not design or not pipeline.assets.exists(design.get("image")):
        return "Not found", 404
    p = pipeline.assets.path_for(design["image"])
    return send_from_directory(p.parent, p.name)


@bp.get("/designs/<int:design_id>/thumbs/<size>")
def serve_design_thumbnail(design_id, size):
    p = get_pipeline().assets.thumbnail_path(design_id, size)
    if p is None:
        return "Not found", 404
    return send_from_directory(p.parent, p.name)
