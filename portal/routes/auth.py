from flask import Blueprint, request, jsonify, current_app, g
import logging
from portal.extensions import limiter
from portal.middleware.auth import create_jwt, login_required
from portal.models.participant import PARTICIPANT
from portal.models.session import PORTAL_SESSION
from portal.models.staff import authenticate
from portal.utils.validation import clean_text, normalize_iitp_no

auth_bp = Blueprint("auth", __name__)
logger = logging.getLogger(__name__)


def _open_session(role, subject_id, user):
    session = PORTAL_SESSION.create(role, subject_id, user, current_app.config["SESSION_TTL"])
    token = create_jwt({"jti": session["jti"], "role": role, "sub": str(subject_id)})
    return {
        "token": token,
        "role": role,
        "user": user,
        "expires_at": session["expires_at"].isoformat(),
    }


@auth_bp.route("/login", methods=["POST"])
@limiter.limit('10 per minute')
def login():
    """
    Staff login (superadmin, trainer, supervisor, form admin).
    Body: { "username": "string", "password": "string" }
    """
    data = request.get_json(silent=True) or {}
    username = clean_text(data.get("username"), 64)
    password = data.get("password") or ""

    if not username or not password:
        return jsonify({"error": "Username and password are required"}), 400

    role, user = authenticate(username, password)
    if not role:
        return jsonify({"error": "Invalid username or password."}), 401

    logger.info(f"{role} {username} signed in")
    return jsonify(_open_session(role, user["id"], user)), 200


@auth_bp.route("/student-login", methods=["POST"])
@limiter.limit('10 per minute')
def student_login():
    """
    Student login. The passkey is the mobile number on the participant record.
    Body: { "iitpNo": "string", "passkey": "string" }
    """
    data = request.get_json(silent=True) or {}
    iitp_no = normalize_iitp_no(data.get("iitpNo"))
    passkey = clean_text(data.get("passkey"))

    if not iitp_no or not passkey:
        return jsonify({"error": "IITP No. and passkey are required"}), 400

    participant = PARTICIPANT.get_doc_by_iitp_no(iitp_no)
    if not participant or not participant.get("mobile") or participant["mobile"] != passkey:
        return jsonify({"error": "Invalid IITP No. or Passkey."}), 401

    user = {"id": str(participant["_id"]), "name": participant.get("name", ""), "iitpNo": iitp_no}
    return jsonify(_open_session("student", iitp_no, user)), 200


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    PORTAL_SESSION.revoke(g.auth.jti)
    return jsonify({"message": "Logged out"}), 200


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return jsonify({"role": g.auth.role, "user": g.auth.user}), 200
