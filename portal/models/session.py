import uuid
from flask import current_app
from portal.utils.serialization import utcnow, parse_iso


class PORTAL_SESSION:
    """Server-held login sessions. A token is only honoured while its row is live."""

    COLLECTION = "portal_sessions"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[PORTAL_SESSION.COLLECTION]

    @staticmethod
    def create(role, subject_id, user, ttl):
        now = utcnow()
        doc = {
            "jti": str(uuid.uuid4()),
            "role": role,
            "subject_id": str(subject_id),
            "user": user,
            "created_at": now,
            "expires_at": now + ttl,
            "revoked": False,
        }
        PORTAL_SESSION.get_collection().insert_one(doc)
        return doc

    @staticmethod
    def get_active(jti):
        if not jti:
            return None
        doc = PORTAL_SESSION.get_collection().find_one({"jti": jti, "revoked": False})
        if not doc:
            return None
        if parse_iso(doc["expires_at"]) <= utcnow():
            return None
        return doc

    @staticmethod
    def revoke(jti):
        result = PORTAL_SESSION.get_collection().update_one(
            {"jti": jti},
            {"$set": {"revoked": True, "revoked_at": utcnow()}}
        )
        return result.modified_count > 0
