import csv
from flask import Blueprint, request, jsonify, current_app, redirect, url_for
from portal.middleware.auth import require_capability
from portal.models.participant import PARTICIPANT
from portal.utils.csv_export import read_participant_rows
from portal.utils.validation import validate_participant_data, validate_bulk_update, normalize_iitp_no, clean_text

participants_bp = Blueprint("participants", __name__)
supervisor_bp = Blueprint("supervisor", __name__)


@participants_bp.route("", methods=["GET"])
@require_capability("participants", "read")
def list_participants():
    return jsonify({"participants": PARTICIPANT.get_all()}), 200


@participants_bp.route("", methods=["POST"])
@require_capability("participants", "write")
def add_participant():
    errors, cleaned = validate_participant_data(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400
    participant_id, error = PARTICIPANT.create(cleaned)
    if error:
        return jsonify({"error": error}), 409
    return jsonify({"message": "Participant added", "participant_id": participant_id}), 201


@participants_bp.route("/import", methods=["POST"])
@require_capability("participants", "write")
def import_participants():
    """
    Bulk import from a CSV upload (form field "file").
    Columns: Name, IITP No, Mobile, Organization, Email, Enrolled Courses (";" separated)
    """
    file = request.files.get("file")
    if not file or not file.filename.lower().endswith(".csv"):
        return jsonify({"error": "CSV file required"}), 400

    try:
        rows = read_participant_rows(file.read().decode("utf-8-sig"))
    except UnicodeDecodeError:
        return jsonify({"error": "The file must be UTF-8 encoded CSV"}), 400
    except csv.Error as e:
        return jsonify({"error": f"Could not read the CSV file: {e}"}), 400
    if not rows:
        return jsonify({"error": "The file has no participant rows"}), 400

    inserted, skipped = PARTICIPANT.bulk_create(rows)
    current_app.logger.info(f"Participant import: {inserted} added, {skipped} skipped")
    body = {"message": "Import complete", "inserted": inserted, "skipped": skipped}
    if skipped:
        body["warning"] = f"{skipped} participant(s) were skipped due to invalid data or duplicate IITP Nos."
    return jsonify(body), 200


@participants_bp.route("/bulk-update", methods=["POST"])
@require_capability("participants", "write")
def bulk_update_participants():
    """
    Body: { "ids": ["..."], "year": "string", "semester": "string", "enrollmentSeason": "Summer" | "Winter" }
    """
    data = request.get_json(silent=True) or {}
    errors, cleaned = validate_bulk_update(data)
    if errors:
        return jsonify({"errors": errors}), 400
    updated = PARTICIPANT.update_many(data["ids"], cleaned)
    return jsonify({"message": "Participants updated", "updatedCount": updated}), 200


@participants_bp.route("/transfer", methods=["POST"])
@require_capability("participants", "write")
def transfer_participants():
    """
    Move every participant enrolled in one course to another.
    Body: { "sourceCourseName": "string", "destinationCourseName": "string" }
    """
    data = request.get_json(silent=True) or {}
    source = clean_text(data.get("sourceCourseName"), 255)
    destination = clean_text(data.get("destinationCourseName"), 255)
    if not source or not destination:
        return jsonify({"error": "Source and destination courses are required."}), 400
    if source == destination:
        return jsonify({"error": "Source and destination courses cannot be the same."}), 400

    moved = PARTICIPANT.transfer_course(source, destination)
    current_app.logger.info(f"Transferred {moved} participant(s) from {source} to {destination}")
    body = {"message": "Transfer complete", "transferredCount": moved}
    if not moved:
        body["warning"] = "No students found in the source course to transfer."
    return jsonify(body), 200


@participants_bp.route("/<iitp_no>", methods=["GET"])
@require_capability("participants", "read")
def get_participant(iitp_no):
    participant = PARTICIPANT.get_by_iitp_no(normalize_iitp_no(iitp_no))
    if not participant:
        return jsonify({"error": "Participant not found"}), 404
    return jsonify(participant), 200


@participants_bp.route("/<iitp_no>", methods=["PUT"])
@require_capability("participants", "write")
def update_participant(iitp_no):
    doc = PARTICIPANT.get_doc_by_iitp_no(normalize_iitp_no(iitp_no))
    if not doc:
        return jsonify({"error": "Participant not found"}), 404

    errors, cleaned = validate_participant_data(request.get_json(silent=True) or {}, partial=True)
    if errors:
        return jsonify({"errors": errors}), 400

    new_iitp_no = cleaned.get("iitpNo")
    if new_iitp_no and new_iitp_no != doc["iitpNo"] and PARTICIPANT.get_doc_by_iitp_no(new_iitp_no):
        return jsonify({"error": "A participant with this IITP No. already exists."}), 409

    PARTICIPANT.update(doc["_id"], cleaned)
    return jsonify({"message": "Participant updated"}), 200


@supervisor_bp.route("/trainees/<iitp_no>", methods=["GET"])
def supervisor_trainee(iitp_no):
    # supervisors share the admin trainee view
    return redirect(url_for("participants.get_participant", iitp_no=iitp_no), code=302)
