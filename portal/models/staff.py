import logging
from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash
from portal.config import to_objectid, is_valid_objectid
from portal.utils.serialization import to_iso, utcnow

# checked in this order on login
ROLE_COLLECTIONS = (
    ("superadmin", "superadmins"),
    ("trainer", "trainers"),
    ("supervisor", "supervisors"),
    ("formadmin", "formadmins"),
)
COLLECTION_FOR_ROLE = dict(ROLE_COLLECTIONS)
logger = logging.getLogger(__name__)


def _collection(role):
    return current_app.mongo.db[COLLECTION_FOR_ROLE[role]]


def public_user(doc):
    """Staff document without its password hash."""
    out = {k: v for k, v in doc.items() if k not in ("_id", "password")}
    out["id"] = str(doc["_id"])
    out["createdAt"] = to_iso(doc.get("createdAt"))
    return out


def create_staff(role, name, username, password, **extra):
    if _collection(role).find_one({"username": username}):
        return None, "This username is already taken."
    doc = {
        "name": name,
        "username": username,
        "password": generate_password_hash(password),
        "createdAt": utcnow(),
        **extra,
    }
    result = _collection(role).insert_one(doc)
    return str(result.inserted_id), None


def authenticate(username, password):
    """Return (role, user) for the first role whose account matches, else (None, None)."""
    for role, _ in ROLE_COLLECTIONS:
        doc = _collection(role).find_one({"username": username})
        if doc and doc.get("password") and check_password_hash(doc["password"], password):
            return role, public_user(doc)
    return None, None


class STAFF:
    """Superadmin, supervisor and form admin accounts. Trainers have their own model."""

    @staticmethod
    def get_all(role):
        staff = [public_user(d) for d in _collection(role).find()]
        staff.sort(key=lambda s: s["createdAt"], reverse=True)
        return staff

    @staticmethod
    def get_doc(role, staff_id):
        if not is_valid_objectid(staff_id):
            return None
        return _collection(role).find_one({"_id": to_objectid(staff_id)})

    @staticmethod
    def update(role, staff_id, cleaned):
        """Apply validated changes. A new password is hashed; a blank one keeps the old. Returns an error or None."""
        doc = STAFF.get_doc(role, staff_id)
        if not doc:
            return "Account not found."
        update_data = {k: v for k, v in cleaned.items() if k != "password"}
        if cleaned.get("password"):
            update_data["password"] = generate_password_hash(cleaned["password"])
        new_username = update_data.get("username")
        if new_username and new_username != doc.get("username") and \
                _collection(role).find_one({"username": new_username}):
            return "This username is already taken."
        if update_data:
            _collection(role).update_one({"_id": doc["_id"]}, {"$set": update_data})
        return None

    @staticmethod
    def delete(role, staff_id):
        if not is_valid_objectid(staff_id):
            return False
        return _collection(role).delete_one({"_id": to_objectid(staff_id)}).deleted_count > 0

    @staticmethod
    def primary_admin_id():
        """The primary admin is the first superadmin ever created."""
        first = next(iter(_collection("superadmin").find().sort([("createdAt", 1), ("_id", 1)]).limit(1)), None)
        return str(first["_id"]) if first else None

    @staticmethod
    def is_primary_admin(staff_id):
        return staff_id is not None and STAFF.primary_admin_id() == str(staff_id)

    @staticmethod
    def can_manage_admins(staff_id):
        if STAFF.is_primary_admin(staff_id):
            return True
        doc = STAFF.get_doc("superadmin", staff_id)
        return bool(doc and doc.get("canManageAdmins"))


def ensure_primary_admin(username, password, name="Administrator"):
    """
    Create the first superadmin when none exists yet. Returns the new id,
    or None when a superadmin is already present.
    """
    if _collection("superadmin").count_documents({}) > 0:
        return None
    staff_id, _ = create_staff("superadmin", name, username, password, canManageAdmins=True)
    logger.info(f"Created primary superadmin {username}")
    return staff_id


class TRAINER:
    COLLECTION = "trainers"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[TRAINER.COLLECTION]

    @staticmethod
    def get_all():
        trainers = [public_user(d) for d in TRAINER.get_collection().find()]
        trainers.sort(key=lambda t: t["createdAt"], reverse=True)
        return trainers

    @staticmethod
    def get_by_id(trainer_id):
        if not is_valid_objectid(trainer_id):
            return None
        doc = TRAINER.get_collection().find_one({"_id": to_objectid(trainer_id)})
        return public_user(doc) if doc else None

    @staticmethod
    def create(cleaned):
        return create_staff(
            "trainer",
            cleaned["name"],
            cleaned["username"],
            cleaned["password"],
            mobile=cleaned.get("mobile", ""),
            meetingLink=cleaned["meetingLink"],
        )

    @staticmethod
    def delete(trainer_id):
        """Delete a trainer unless batches still reference them. Returns (ok, error)."""
        assigned = current_app.mongo.db.batches.count_documents({"trainerId": str(trainer_id)})
        if assigned:
            return False, (f"Cannot delete trainer. They are assigned to {assigned} batch(es). "
                           "Please reassign them first.")
        result = TRAINER.get_collection().delete_one({"_id": to_objectid(trainer_id)})
        if result.deleted_count == 0:
            return False, "Trainer not found."
        return True, None
