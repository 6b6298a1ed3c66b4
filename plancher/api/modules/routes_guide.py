# routes_guide.py
# Page guide: step table per page + transitions computed server-side.

from flask import Blueprint, jsonify

from plancher.api.modules import request_data
from plancher.core.errors import ValidationError
from plancher.guide import state as guide_state
from plancher.guide.steps import steps_for

bp = Blueprint("guide", __name__)


@bp.route("/api/guide/<page>")
def api_guide_steps(page):
    return jsonify({"page": page, "steps": steps_for(page)})


@bp.route("/api/guide/<page>/transition", methods=["POST"])
def api_guide_transition(page):
    """Body: {"action", "state": {active, step}, "present": [targets]?}

    Returns {"state", "effects"}. ``present`` omitted = every target present.
    On page load send {"action": "restore", "storage": {guideActive, guideStep}}.
    """
    data = request_data()
    action = data.get("action")
    if action == "restore":
        storage = data.get("storage")
        if storage is not None and not isinstance(storage, dict):
            raise ValidationError("storage must be an object")
        nxt, effects = guide_state.restore(storage)
        return jsonify({"state": nxt.to_dict(), "effects": effects})
    if action not in guide_state.TRANSITIONS:
        raise ValidationError(f"unknown action: {action}")
    present = data.get("present")
    if present is not None:
        if not isinstance(present, list):
            raise ValidationError("present must be a list")
        present = set(present)
    current = guide_state.GuideState.from_dict(data.get("state"))
    nxt, effects = guide_state.apply(action, current, steps_for(page), present)
    return jsonify({"state": nxt.to_dict(), "effects": effects})
