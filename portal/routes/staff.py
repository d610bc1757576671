from flask import Blueprint, request, jsonify, current_app, g
from portal.middleware.auth import require_capability
from portal.models.staff import STAFF, create_staff
from portal.utils.validation import validate_staff_data

staff_bp = Blueprint("staff", __name__)

# url segment -> role
STAFF_KINDS = {
    "superadmins": "superadmin",
    "supervisors": "supervisor",
    "formadmins": "formadmin",
}


def _role_or_404(kind):
    role = STAFF_KINDS.get(kind)
    if role is None:
        return None, (jsonify({"error": "Resource not found"}), 404)
    return role, None


def _may_manage(role):
    # other superadmins are managed only by the primary admin or admins granted canManageAdmins
    return role != "superadmin" or STAFF.can_manage_admins(g.auth.subject_id)


@staff_bp.route("/<kind>", methods=["GET"])
@require_capability("staff", "read")
def list_staff(kind):
    role, err = _role_or_404(kind)
    if err:
        return err
    return jsonify({kind: STAFF.get_all(role)}), 200


@staff_bp.route("/<kind>", methods=["POST"])
@require_capability("staff", "write")
def add_staff(kind):
    """
    Body: { "name": "string", "username": "string", "password": "string",
            "mobile": "string", "canManageAdmins": bool (superadmins only) }
    """
    role, err = _role_or_404(kind)
    if err:
        return err
    if not _may_manage(role):
        return jsonify({"error": "You are not allowed to manage admins."}), 403

    errors, cleaned = validate_staff_data(role, request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400

    extra = {k: v for k, v in cleaned.items() if k not in ("name", "username", "password")}
    if role == "superadmin":
        extra.setdefault("canManageAdmins", False)
        extra["createdBy"] = g.auth.subject_id
    staff_id, error = create_staff(role, cleaned["name"], cleaned["username"], cleaned["password"], **extra)
    if error:
        return jsonify({"error": error}), 409
    current_app.logger.info(f"Added {role} {cleaned['username']}")
    return jsonify({"message": "Account added", "id": staff_id}), 201


@staff_bp.route("/<kind>/<staff_id>", methods=["PUT"])
@require_capability("staff", "write")
def update_staff(kind, staff_id):
    role, err = _role_or_404(kind)
    if err:
        return err

    errors, cleaned = validate_staff_data(role, request.get_json(silent=True) or {}, partial=True)
    if errors:
        return jsonify({"errors": errors}), 400

    editing_self = role == "superadmin" and staff_id == g.auth.subject_id
    if not _may_manage(role) and not (editing_self and "canManageAdmins" not in cleaned):
        return jsonify({"error": "You are not allowed to manage admins."}), 403
    if "canManageAdmins" in cleaned and STAFF.is_primary_admin(staff_id) and not cleaned["canManageAdmins"]:
        return jsonify({"error": "The primary admin always manages admins."}), 409

    error = STAFF.update(role, staff_id, cleaned)
    if error == "Account not found.":
        return jsonify({"error": error}), 404
    if error:
        return jsonify({"error": error}), 409
    return jsonify({"message": "Account updated"}), 200


@staff_bp.route("/<kind>/<staff_id>", methods=["DELETE"])
@require_capability("staff", "write")
def delete_staff(kind, staff_id):
    role, err = _role_or_404(kind)
    if err:
        return err
    if not _may_manage(role):
        return jsonify({"error": "You are not allowed to manage admins."}), 403
    if role == "superadmin" and STAFF.is_primary_admin(staff_id):
        return jsonify({"error": "The primary admin cannot be deleted."}), 409
    if not STAFF.delete(role, staff_id):
        return jsonify({"error": "Account not found."}), 404
    current_app.logger.info(f"Deleted {role} {staff_id}")
    return jsonify({"message": "Account deleted"}), 200


@staff_bp.route("/superadmins/<staff_id>/primary", methods=["GET"])
@require_capability("staff", "read")
def is_primary_admin(staff_id):
    return jsonify({"isPrimary": STAFF.is_primary_admin(staff_id)}), 200
