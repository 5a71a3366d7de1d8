"""Flask application exposing badge layouts, field validation and printing."""

import json
import logging
import uuid
from io import BytesIO
from urllib.parse import urlparse

from flask import Flask, request, jsonify, send_file

from eventbadges import config
from eventbadges.errors import (
    BadgeAlreadyExists,
    BadgeAppError,
    BarcodeEncodingError,
    InvalidBadgeRequest,
    InvalidLayout,
    PersistenceError,
    RecordNotFound,
    SchemaError,
)
from eventbadges.export.badge_renderer import render_preview
from eventbadges.export.compositor import BadgeGenerationRequest, compose
from eventbadges.models.badge_layout import (
    BadgeLayoutConfig,
    BadgeTextElement,
    default_layout,
    generate_element_id,
    load_layout_config,
    looks_like_layout,
    save_layout_config,
)
from eventbadges.models.fields import schema_from_list, schema_to_list
from eventbadges.models.records import coerce_values, validate_values
from eventbadges.printing import (
    BadgeRecord,
    generate_badge,
    lookup_badge,
    print_badge,
    scan_code_for,
)
from eventbadges.web.state import state

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["MAX_CONTENT_LENGTH"] = config.MAX_CONTENT_LENGTH

# URL segment -> badge kind
KIND_SEGMENTS = {"participants": "participant", "staff": "staff"}

TEXT_ELEMENT_KEYS = {"fieldName", "label", "position", "fontSize", "fontWeight", "align"}

PREVIEW_BARCODE = "123456789012"


@app.before_request
def csrf_check():
    """Reject non-GET/HEAD/OPTIONS requests with a foreign Origin or Referer."""
    if request.method in ("GET", "HEAD", "OPTIONS"):
        return
    origin = request.headers.get("Origin") or request.headers.get("Referer")
    if origin:
        host = urlparse(origin).hostname
        if host not in config.ALLOWED_HOSTS:
            return jsonify(error="Forbidden: cross-origin request"), 403


@app.errorhandler(BadgeAppError)
def handle_badge_error(e):
    if isinstance(e, RecordNotFound):
        status = 404
    elif isinstance(e, (SchemaError, InvalidBadgeRequest, InvalidLayout)):
        status = 400
    elif isinstance(e, BadgeAlreadyExists):
        status = 409
    elif isinstance(e, BarcodeEncodingError):
        status = 422
    elif isinstance(e, PersistenceError):
        status = 502
    else:
        status = 500
    payload = {"error": str(e), "kind": type(e).__name__}
    if isinstance(e, SchemaError) and e.field_name:
        payload["field"] = e.field_name
    return jsonify(payload), status


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _values(data: dict) -> dict:
    values = data.get("values", {})
    if not isinstance(values, dict):
        raise InvalidBadgeRequest("values must be an object")
    return values


def _kind(segment: str) -> str:
    kind = KIND_SEGMENTS.get(segment)
    if kind is None:
        raise InvalidBadgeRequest(f"Unknown record type {segment!r}")
    return kind


# ---------------------------------------------------------------------------
# Badge layout
# ---------------------------------------------------------------------------

@app.route("/api/layout")
def get_layout():
    return jsonify(load_layout_config(state.store).to_dict())


@app.route("/api/layout", methods=["PUT"])
def update_layout():
    data = _json_body()
    if not looks_like_layout(data):
        return jsonify(error="Layout needs textElements and barcode"), 400
    layout = BadgeLayoutConfig.from_dict(data)
    saved = save_layout_config(state.store, layout)
    return jsonify(ok=True, saved=saved, config=layout.to_dict())


@app.route("/api/layout/reset", methods=["POST"])
def reset_layout():
    layout = default_layout()
    saved = save_layout_config(state.store, layout)
    return jsonify(ok=True, saved=saved, config=layout.to_dict())


@app.route("/api/layout/elements", methods=["POST"])
def add_text_element():
    data = _json_body()
    if not data.get("fieldName"):
        return jsonify(error="fieldName is required"), 400
    layout = load_layout_config(state.store)
    page_w, page_h = layout.dimensions
    element = BadgeTextElement.from_dict({
        "id": generate_element_id(),
        "fieldName": data["fieldName"],
        "label": data.get("label", data["fieldName"]),
        "position": data.get("position", {"x": page_w / 2, "y": page_h / 2}),
        "fontSize": data.get("fontSize", 12),
        "fontWeight": data.get("fontWeight", "normal"),
        "align": data.get("align", "center"),
    })
    layout.textElements.append(element)
    saved = save_layout_config(state.store, layout)
    return jsonify(ok=True, saved=saved, element=element.to_dict())


@app.route("/api/layout/elements/<element_id>", methods=["PUT"])
def update_text_element(element_id):
    layout = load_layout_config(state.store)
    element = layout.find_element(element_id)
    if element is None:
        return jsonify(error="Unknown element"), 404
    changes = {k: v for k, v in _json_body().items() if k in TEXT_ELEMENT_KEYS}
    updated = BadgeTextElement.from_dict({**element.to_dict(), **changes})
    layout.textElements[layout.textElements.index(element)] = updated
    saved = save_layout_config(state.store, layout)
    return jsonify(ok=True, saved=saved, element=updated.to_dict())


@app.route("/api/layout/elements/<element_id>", methods=["DELETE"])
def delete_text_element(element_id):
    layout = load_layout_config(state.store)
    element = layout.find_element(element_id)
    if element is None:
        return jsonify(error="Unknown element"), 404
    layout.textElements.remove(element)
    saved = save_layout_config(state.store, layout)
    return jsonify(ok=True, saved=saved)


@app.route("/api/layout/preview")
def preview_layout():
    """Render the saved layout with manually supplied values as a PNG."""
    values_json = request.args.get("values", "{}")
    try:
        values = json.loads(values_json)
    except json.JSONDecodeError:
        return jsonify(error="Invalid JSON"), 400
    if not isinstance(values, dict):
        return jsonify(error="values must be an object"), 400

    badge_request = BadgeGenerationRequest(
        record_id="preview",
        name=request.args.get("name", "Sample Name"),
        role=request.args.get("role", "Participant"),
        barcode=request.args.get("barcode", PREVIEW_BARCODE),
        values=values,
    )
    img = render_preview(compose(badge_request, load_layout_config(state.store)))
    buf = BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return send_file(buf, mimetype="image/png")


@app.route("/api/events/<event_id>/layout", methods=["POST"])
def set_event_layout(event_id):
    data = _json_body()
    if not looks_like_layout(data):
        return jsonify(error="Layout needs textElements and barcode"), 400
    layout = BadgeLayoutConfig.from_dict(data)
    state.repository.set_event_layout(event_id, layout)
    return jsonify(ok=True, config=layout.to_dict())


# ---------------------------------------------------------------------------
# Field schemas & record values
# ---------------------------------------------------------------------------

@app.route("/api/schema/validate", methods=["POST"])
def validate_schema_route():
    fields = schema_from_list(_json_body().get("fields", []))
    return jsonify(ok=True, fields=schema_to_list(fields))


@app.route("/api/records/validate", methods=["POST"])
def validate_record_values():
    data = _json_body()
    schema = schema_from_list(data.get("schema", []))
    result = validate_values(schema, coerce_values(schema, _values(data)))
    return jsonify(values=result.values, errors=result.errors, kinds=result.error_kinds)


# ---------------------------------------------------------------------------
# Records & printing
# ---------------------------------------------------------------------------

@app.route("/api/<segment>", methods=["POST"])
def create_record(segment):
    kind = _kind(segment)
    data = _json_body()
    schema = schema_from_list(data.get("schema", []))
    values = coerce_values(schema, _values(data))
    record = BadgeRecord(
        id=data.get("id") or str(uuid.uuid4()),
        values=values,
        event_id=data.get("eventId"),
        badge_id=data.get("badgeId"),
    )
    state.repository.add_record(kind, record)
    # Validation is advisory: the record is stored either way
    errors = validate_values(schema, values).errors
    return jsonify(ok=True, record=record.to_dict(), errors=errors), 201


@app.route("/api/<segment>/<record_id>")
def get_record(segment, record_id):
    record = state.repository.get_record(_kind(segment), record_id)
    return jsonify(record=record.to_dict())


@app.route("/api/badges/<segment>/<record_id>/print", methods=["POST"])
def print_record_badge(segment, record_id):
    data = _json_body()
    printed_by = data.get("printedBy")
    if not printed_by:
        return jsonify(error="printedBy is required"), 400

    result = print_badge(
        state.repository,
        record_id,
        _kind(segment),
        printed_by,
        event_id=data.get("eventId"),
        layout_store=state.store,
    )
    artifact_id = str(uuid.uuid4())[:8]
    state.add_artifact(artifact_id, result.artifact)
    return jsonify(artifact=artifact_id, **result.to_dict())


@app.route("/api/badges/<segment>/<record_id>", methods=["POST"])
def create_badge(segment, record_id):
    kind = _kind(segment)
    record = generate_badge(state.repository, kind, record_id)
    return jsonify(type=kind, record=record.to_dict()), 201


@app.route("/api/badges/scan", methods=["POST"])
def scan_badge():
    data = _json_body()
    kind, record = lookup_badge(state.repository, data.get("badgeId"), data.get("eventId"))
    return jsonify(type=kind, record=record.to_dict())


@app.route("/api/<segment>/<record_id>/scan-code")
def record_scan_code(segment, record_id):
    course_id = request.args.get("courseId")
    if not course_id:
        return jsonify(error="courseId is required"), 400
    record = state.repository.get_record(_kind(segment), record_id)
    return jsonify(code=scan_code_for(record, course_id))


@app.route("/api/badges/artifacts/<artifact_id>")
def download_badge(artifact_id):
    pdf = state.get_artifact(artifact_id)
    if pdf is None:
        return jsonify(error="Unknown artifact"), 404
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=f"badge_{artifact_id}.pdf",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Event Badges - http://localhost:%d", config.PORT)
    app.run(host="127.0.0.1", port=config.PORT, debug=config.DEBUG)


if __name__ == "__main__":
    main()
