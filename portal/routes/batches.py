from flask import Blueprint, request, jsonify, current_app
from portal.extensions import limiter, socketio
from portal.middleware.auth import require_capability
from portal.models.batch import BATCH
from portal.models.registration import REGISTRATION
from portal.utils.access import verify_meeting_access
from portal.utils.csv_export import csv_download
from portal.utils.meeting_links import resolve_meeting_link
from portal.utils.validation import validate_batch_data, validate_registration_data, clean_text

batches_bp = Blueprint("batches", __name__)


def _batch_or_404(batch_id):
    batch = BATCH.get_by_id(batch_id)
    if not batch:
        return None, (jsonify({"error": "Batch not found"}), 404)
    return batch, None


@batches_bp.route("", methods=["GET"])
@require_capability("batches", "read")
def list_batches():
    """
    All batches with nested registrations, newest first.
    ---
    responses:
      200:
        description: list of batches
      503:
        description: the database could not be read
    """
    return jsonify({"batches": BATCH.get_all()}), 200


@batches_bp.route("", methods=["POST"])
@require_capability("batches", "write")
def create_batch():
    data = request.get_json(silent=True) or {}
    errors, cleaned = validate_batch_data(data)
    if errors:
        return jsonify({"errors": errors}), 400
    batch_id = BATCH.create(cleaned)
    current_app.logger.info(f"Created batch {batch_id}")
    return jsonify({"message": "Batch created", "batch": BATCH.get_by_id(batch_id)}), 201


@batches_bp.route("/<batch_id>", methods=["GET"])
@require_capability("batches", "read")
def get_batch(batch_id):
    batch = BATCH.get_by_id(batch_id, with_registrations=True)
    if not batch:
        return jsonify({"error": "Batch not found"}), 404
    return jsonify(batch), 200


@batches_bp.route("/<batch_id>", methods=["PUT"])
@require_capability("batches", "write")
def update_batch(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    errors, cleaned = validate_batch_data(data)
    if errors:
        return jsonify({"errors": errors}), 400
    BATCH.update(batch_id, cleaned)
    return jsonify({"message": "Batch updated", "batch": BATCH.get_by_id(batch_id)}), 200


@batches_bp.route("/<batch_id>/name", methods=["PATCH"])
@require_capability("batches", "write")
def rename_batch(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    name = clean_text((request.get_json(silent=True) or {}).get("name"), 255)
    if not name:
        return jsonify({"errors": {"name": "Batch name cannot be empty."}}), 400
    BATCH.rename(batch_id, name)
    return jsonify({"message": "Batch renamed"}), 200


@batches_bp.route("/<batch_id>/active", methods=["PATCH"])
@require_capability("batches", "write")
def set_batch_active(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    active = (request.get_json(silent=True) or {}).get("active")
    if not isinstance(active, bool):
        return jsonify({"errors": {"active": "active must be true or false"}}), 400
    BATCH.set_active(batch_id, active)
    return jsonify({"message": "Batch updated", "active": active}), 200


@batches_bp.route("/<batch_id>/cancel", methods=["POST"])
@require_capability("batches", "write")
def cancel_batch(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    reason = clean_text((request.get_json(silent=True) or {}).get("reason"), 500)
    if not reason:
        return jsonify({"errors": {"reason": "A reason for cancellation is required."}}), 400
    BATCH.cancel(batch_id, reason)
    return jsonify({"message": "Batch cancelled"}), 200


@batches_bp.route("/<batch_id>/cancel", methods=["DELETE"])
@require_capability("batches", "write")
def uncancel_batch(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    BATCH.uncancel(batch_id)
    return jsonify({"message": "Batch restored"}), 200


@batches_bp.route("/<batch_id>", methods=["DELETE"])
@require_capability("batches", "write")
def delete_batch(batch_id):
    _, err = _batch_or_404(batch_id)
    if err:
        return err
    removed = BATCH.delete(batch_id)
    current_app.logger.info(f"Deleted batch {batch_id} with {removed} registration(s)")
    return jsonify({"message": "Batch deleted", "registrations_deleted": removed}), 200


@batches_bp.route("/<batch_id>/export", methods=["GET"])
@require_capability("batches", "export")
def export_batch(batch_id):
    batch = BATCH.get_by_id(batch_id, with_registrations=True)
    if not batch:
        return jsonify({"error": "Batch not found"}), 404
    filename = request.args.get("filename") or f"{batch['name'].replace(' ', '_')}_registrations.csv"
    resp = csv_download(batch["registrations"], filename)
    if resp is None:
        return "", 204
    return resp


# --- Public endpoints used by the registration and join pages ---

@batches_bp.route("/<batch_id>/registrations", methods=["POST"])
@limiter.limit('10 per minute')
def register_for_batch(batch_id):
    """
    Register for a batch meeting.
    Body: { "name": "string", "iitpNo": "string", "organization": "string", "mobile": "string" }
    """
    batch, err = _batch_or_404(batch_id)
    if err:
        return err

    errors, cleaned = validate_registration_data(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400

    if not BATCH.accepting_registrations(batch):
        return jsonify({"error": "This batch is not accepting registrations."}), 409

    registration = REGISTRATION.create(
        batch_id,
        name=cleaned["name"],
        iitp_no=cleaned["iitpNo"],
        organization=cleaned["organization"],
        mobile=cleaned["mobile"],
    )
    socketio.emit("registration_added", {"batch_id": batch["id"], "registration": registration})

    meeting_link = resolve_meeting_link(cleaned["name"], cleaned["iitpNo"], cleaned["organization"])
    return jsonify({
        "message": "Registration successful",
        "registration": registration,
        "meetingLink": meeting_link,
    }), 201


@batches_bp.route("/<batch_id>/join", methods=["POST"])
@limiter.limit('10 per minute')
def join_batch(batch_id):
    """
    Verify an IITP No. against the participant list and return the meeting link.
    Body: { "iitpNo": "string" }
    """
    iitp_no = (request.get_json(silent=True) or {}).get("iitpNo")
    result = verify_meeting_access(iitp_no, batch_id)
    if not result["success"]:
        return jsonify(result), 400

    if result["created"]:
        socketio.emit("registration_added", {"batch_id": result["batch_id"], "registration": result["registration"]})
    return jsonify({**result, "meetingLink": BATCH.get_redirect_link(batch_id)}), 200


@batches_bp.route("/<batch_id>/redirect-link", methods=["GET"])
def redirect_link(batch_id):
    return jsonify({"link": BATCH.get_redirect_link(batch_id)}), 200
