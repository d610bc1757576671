import logging
from flask import current_app
from pymongo.errors import PyMongoError
from portal.config import to_objectid, is_valid_objectid
from portal.errors import DataAccessError
from portal.models.registration import REGISTRATION
from portal.utils.serialization import to_iso, parse_iso, utcnow

logger = logging.getLogger(__name__)


class BATCH:
    COLLECTION = "batches"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[BATCH.COLLECTION]

    @staticmethod
    def normalize(doc, registrations=None):
        """Shape a stored batch for callers: ids as strings, dates as ISO-8601."""
        return {
            "id": str(doc["_id"]),
            "name": doc.get("name") or "Unnamed Batch",
            "createdAt": to_iso(doc.get("createdAt")),
            "active": bool(doc.get("active", True)),
            "course": doc.get("course") or "Other",
            "startDate": to_iso(doc.get("startDate"), default_now=False),
            "startTime": doc.get("startTime") or "00:00",
            "endTime": doc.get("endTime") or "00:00",
            "trainerId": doc.get("trainerId"),
            "organizations": doc.get("organizations") or [],
            "semester": doc.get("semester") or "",
            "meetingLink": doc.get("meetingLink") or "",
            "isCancelled": bool(doc.get("isCancelled", False)),
            "cancellationReason": doc.get("cancellationReason") or "",
            "registrations": registrations if registrations is not None else [],
        }

    @staticmethod
    def get_all():
        """
        All batches with their registrations, most recently created first.

        Raises DataAccessError when the store cannot be read, so an empty
        list always means there are no batches.
        """
        try:
            docs = list(BATCH.get_collection().find())
            grouped = REGISTRATION.group_by_batch([d["_id"] for d in docs])
        except PyMongoError as e:
            logger.exception("Error fetching batches")
            raise DataAccessError("Could not load batches", original=e) from e

        batches = [BATCH.normalize(d, grouped.get(str(d["_id"]), [])) for d in docs]
        batches.sort(key=lambda b: (parse_iso(b["createdAt"]), b["id"]), reverse=True)
        return batches

    @staticmethod
    def get_doc(batch_id):
        if not is_valid_objectid(batch_id):
            return None
        return BATCH.get_collection().find_one({"_id": to_objectid(batch_id)})

    @staticmethod
    def get_by_id(batch_id, with_registrations=False):
        doc = BATCH.get_doc(batch_id)
        if not doc:
            return None
        registrations = REGISTRATION.list_for_batch(doc["_id"]) if with_registrations else []
        return BATCH.normalize(doc, registrations)

    @staticmethod
    def create(data):
        doc = {
            "name": data["name"],
            "course": data.get("course") or "Other",
            "startTime": data.get("startTime", "00:00"),
            "endTime": data.get("endTime", "00:00"),
            "trainerId": data.get("trainerId"),
            "organizations": data.get("organizations", []),
            "semester": data.get("semester", ""),
            "meetingLink": data.get("meetingLink", ""),
            "active": True,
            "isCancelled": False,
            "cancellationReason": "",
            "createdAt": utcnow(),
        }
        if data.get("startDate"):
            doc["startDate"] = parse_iso(data["startDate"])
        result = BATCH.get_collection().insert_one(doc)
        return str(result.inserted_id)

    @staticmethod
    def update(batch_id, data):
        update_data = {k: v for k, v in data.items() if k in (
            "name", "course", "startTime", "endTime", "trainerId",
            "organizations", "semester", "meetingLink"
        )}
        if data.get("startDate"):
            update_data["startDate"] = parse_iso(data["startDate"])
        result = BATCH.get_collection().update_one(
            {"_id": to_objectid(batch_id)},
            {"$set": update_data}
        )
        return result.matched_count > 0

    @staticmethod
    def rename(batch_id, name):
        return BATCH.update(batch_id, {"name": name})

    @staticmethod
    def set_active(batch_id, active):
        result = BATCH.get_collection().update_one(
            {"_id": to_objectid(batch_id)},
            {"$set": {"active": bool(active)}}
        )
        return result.matched_count > 0

    @staticmethod
    def cancel(batch_id, reason):
        result = BATCH.get_collection().update_one(
            {"_id": to_objectid(batch_id)},
            {"$set": {"isCancelled": True, "cancellationReason": reason}}
        )
        return result.matched_count > 0

    @staticmethod
    def uncancel(batch_id):
        result = BATCH.get_collection().update_one(
            {"_id": to_objectid(batch_id)},
            {"$set": {"isCancelled": False, "cancellationReason": ""}}
        )
        return result.matched_count > 0

    @staticmethod
    def delete(batch_id):
        """Delete a batch and every registration in it. Returns the number of registrations removed."""
        removed = REGISTRATION.delete_for_batch(batch_id)
        BATCH.get_collection().delete_one({"_id": to_objectid(batch_id)})
        return removed

    @staticmethod
    def accepting_registrations(batch):
        return batch.get("active", True) and not batch.get("isCancelled", False)

    @staticmethod
    def get_redirect_link(batch_id):
        """The assigned trainer's meeting link, else the link stored on the batch."""
        doc = BATCH.get_doc(batch_id)
        if not doc:
            return None
        trainer_id = doc.get("trainerId")
        if trainer_id and is_valid_objectid(trainer_id):
            trainer = current_app.mongo.db.trainers.find_one({"_id": to_objectid(trainer_id)})
            if trainer:
                return trainer.get("meetingLink") or None
        return doc.get("meetingLink") or None
