from flask import Blueprint, request, jsonify
from portal.extensions import api_rate_limit
from portal.utils.meeting_links import resolve_meeting_link, ORGANIZATIONS
from portal.utils.validation import normalize_iitp_no

links_bp = Blueprint("links", __name__)


@links_bp.route("/resolve", methods=["POST"])
@api_rate_limit("30/minute")
def resolve_link():
    """
    Meeting link for a registrant.
    Body: { "name": "string", "iitpNo": "string", "organization": "string" }
    """
    data = request.get_json(silent=True) or {}
    link = resolve_meeting_link(
        data.get("name"),
        normalize_iitp_no(data.get("iitpNo")),
        data.get("organization"),
    )
    return jsonify({"meetingLink": link}), 200


@links_bp.route("/organizations", methods=["GET"])
def list_organizations():
    return jsonify({"organizations": list(ORGANIZATIONS)}), 200
