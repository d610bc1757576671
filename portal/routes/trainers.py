from flask import Blueprint, request, jsonify, current_app
from portal.middleware.auth import require_capability
from portal.models.staff import TRAINER
from portal.utils.validation import validate_trainer_data

trainers_bp = Blueprint("trainers", __name__)


@trainers_bp.route("", methods=["GET"])
@require_capability("trainers", "read")
def list_trainers():
    return jsonify({"trainers": TRAINER.get_all()}), 200


@trainers_bp.route("", methods=["POST"])
@require_capability("trainers", "write")
def add_trainer():
    errors, cleaned = validate_trainer_data(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400
    trainer_id, error = TRAINER.create(cleaned)
    if error:
        return jsonify({"error": error}), 409
    current_app.logger.info(f"Added trainer {cleaned['username']}")
    return jsonify({"message": "Trainer added", "trainer_id": trainer_id}), 201


@trainers_bp.route("/<trainer_id>", methods=["DELETE"])
@require_capability("trainers", "write")
def delete_trainer(trainer_id):
    if not TRAINER.get_by_id(trainer_id):
        return jsonify({"error": "Trainer not found"}), 404
    ok, error = TRAINER.delete(trainer_id)
    if not ok:
        return jsonify({"error": error}), 409
    return jsonify({"message": "Trainer deleted"}), 200
