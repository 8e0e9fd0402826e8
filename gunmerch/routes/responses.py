from flask import jsonify, request

from ..errors import Outcome, ValidationError

NOT_FOUND_CODES = {"design_not_found"}


def to_bool(param):
    if isinstance(param, bool):
        return param
    if isinstance(param, (int, float)):
        return param != 0
    if isinstance(param, str):
        return param.strip().lower() in ("1", "true", "yes", "y", "on")
    return False


def to_int(param, default: int, minimum: int | None = None) -> int:
    try:
        value = int(param)
    except (TypeError, ValueError):
        return default
    if minimum is not None and value < minimum:
        return minimum
    return value


def respond(outcome: Outcome):
    """``{"success", "message", ...}``; 404 for unknown designs, 400 for other failures."""
    if outcome.ok:
        return jsonify(outcome.to_dict())
    status = 404 if outcome.code in NOT_FOUND_CODES else 400
    return jsonify(outcome.to_dict()), status


def json_object() -> dict:
    """Request body as a dict, ``{}`` when absent. Any other JSON type is a 400."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", code="invalid_body")
    return payload
