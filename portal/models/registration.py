from flask import current_app
from portal.config import to_objectid
from portal.utils.serialization import to_iso, utcnow


class REGISTRATION:
    COLLECTION = "registrations"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[REGISTRATION.COLLECTION]

    @staticmethod
    def normalize(doc):
        return {
            "id": str(doc["_id"]),
            "name": doc.get("name", ""),
            "iitpNo": doc.get("iitpNo", ""),
            "mobile": doc.get("mobile", ""),
            "organization": doc.get("organization", ""),
            "submissionTime": to_iso(doc.get("submissionTime")),
        }

    @staticmethod
    def create(batch_id, name, iitp_no, organization="", mobile=""):
        doc = {
            "batch_id": to_objectid(batch_id),
            "name": name,
            "iitpNo": iitp_no,
            "mobile": mobile or "",
            "organization": organization or "",
            "submissionTime": utcnow(),
        }
        result = REGISTRATION.get_collection().insert_one(doc)
        doc["_id"] = result.inserted_id
        return REGISTRATION.normalize(doc)

    @staticmethod
    def find_in_batch(batch_id, iitp_no):
        return REGISTRATION.get_collection().find_one({
            "batch_id": to_objectid(batch_id),
            "iitpNo": iitp_no
        })

    @staticmethod
    def list_for_batch(batch_id):
        docs = REGISTRATION.get_collection().find({"batch_id": to_objectid(batch_id)})
        return [REGISTRATION.normalize(d) for d in docs]

    @staticmethod
    def group_by_batch(batch_ids):
        """Fetch registrations of many batches in one query, keyed by batch id string."""
        grouped = {str(b): [] for b in batch_ids}
        docs = REGISTRATION.get_collection().find({"batch_id": {"$in": [to_objectid(b) for b in batch_ids]}})
        for doc in docs:
            grouped.setdefault(str(doc["batch_id"]), []).append(REGISTRATION.normalize(doc))
        return grouped

    @staticmethod
    def delete_for_batch(batch_id):
        result = REGISTRATION.get_collection().delete_many({"batch_id": to_objectid(batch_id)})
        return result.deleted_count
