from flask import current_app
from portal.config import to_objectid, is_valid_objectid
from portal.utils.serialization import to_iso, utcnow, serialize_doc
from portal.utils.validation import validate_participant_data


class PARTICIPANT:
    COLLECTION = "participants"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[PARTICIPANT.COLLECTION]

    @staticmethod
    def normalize(doc):
        progress = {}
        for exam_id, attempt in (doc.get("examProgress") or {}).items():
            attempt = dict(attempt)
            for key in ("startedAt", "submittedAt"):
                if attempt.get(key):
                    attempt[key] = to_iso(attempt[key])
            progress[exam_id] = attempt

        out = serialize_doc({k: v for k, v in doc.items() if k not in ("_id", "examProgress")})
        out.update({
            "id": str(doc["_id"]),
            "createdAt": to_iso(doc.get("createdAt")),
            "enrolledCourses": doc.get("enrolledCourses") or [],
            "deniedCourses": doc.get("deniedCourses") or [],
            "completedLessons": doc.get("completedLessons") or [],
            "examProgress": serialize_doc(progress),
        })
        return out

    @staticmethod
    def get_all():
        docs = list(PARTICIPANT.get_collection().find())
        participants = [PARTICIPANT.normalize(d) for d in docs]
        participants.sort(key=lambda p: p["createdAt"], reverse=True)
        return participants

    @staticmethod
    def get_doc_by_iitp_no(iitp_no):
        return PARTICIPANT.get_collection().find_one({"iitpNo": iitp_no})

    @staticmethod
    def get_by_iitp_no(iitp_no):
        doc = PARTICIPANT.get_doc_by_iitp_no(iitp_no)
        return PARTICIPANT.normalize(doc) if doc else None

    @staticmethod
    def get_doc(participant_id):
        if not is_valid_objectid(participant_id):
            return None
        return PARTICIPANT.get_collection().find_one({"_id": to_objectid(participant_id)})

    @staticmethod
    def _new_doc(cleaned):
        return {
            **cleaned,
            "enrolledCourses": cleaned.get("enrolledCourses", []),
            "createdAt": utcnow(),
            "completedLessons": [],
            "deniedCourses": [],
            "examProgress": {},
        }

    @staticmethod
    def create(cleaned):
        """Insert a validated participant. Returns (id, error)."""
        if PARTICIPANT.get_doc_by_iitp_no(cleaned["iitpNo"]):
            return None, "A participant with this IITP No. already exists."
        result = PARTICIPANT.get_collection().insert_one(PARTICIPANT._new_doc(cleaned))
        return str(result.inserted_id), None

    @staticmethod
    def bulk_create(rows):
        """
        Insert many participants in one write. Rows that fail validation or
        repeat an IITP No. (already stored or earlier in the same upload) are
        skipped. Returns (inserted_count, skipped_count).
        """
        existing = {d["iitpNo"] for d in PARTICIPANT.get_collection().find({}, {"iitpNo": 1}) if "iitpNo" in d}
        seen = set()
        docs = []
        skipped = 0
        for row in rows:
            errors, cleaned = validate_participant_data(row)
            if errors:
                skipped += 1
                continue
            iitp_no = cleaned["iitpNo"]
            if iitp_no in existing or iitp_no in seen:
                skipped += 1
                continue
            seen.add(iitp_no)
            docs.append(PARTICIPANT._new_doc(cleaned))

        if docs:
            PARTICIPANT.get_collection().insert_many(docs)
        return len(docs), skipped

    @staticmethod
    def update(participant_id, cleaned):
        result = PARTICIPANT.get_collection().update_one(
            {"_id": to_objectid(participant_id)},
            {"$set": cleaned}
        )
        return result.matched_count > 0

    @staticmethod
    def is_enrolled(participant, course_name):
        wanted = (course_name or "").lower()
        return any(c.lower() == wanted for c in participant.get("enrolledCourses") or [])

    @staticmethod
    def save_submission(participant_id, exam_id, answers, score):
        doc = PARTICIPANT.get_doc(participant_id)
        attempt = dict((doc or {}).get("examProgress", {}).get(exam_id, {}))
        attempt.update({
            "answers": answers,
            "score": score,
            "isSubmitted": True,
            "submittedAt": utcnow(),
        })
        attempt.setdefault("startedAt", attempt["submittedAt"])
        PARTICIPANT.get_collection().update_one(
            {"_id": to_objectid(participant_id)},
            {"$set": {f"examProgress.{exam_id}": attempt}}
        )
        return attempt

    @staticmethod
    def submitted_for_exam(exam_id):
        return list(PARTICIPANT.get_collection().find({f"examProgress.{exam_id}.isSubmitted": True}))

    @staticmethod
    def delete_attempt(participant_id, exam_id):
        result = PARTICIPANT.get_collection().update_one(
            {"_id": to_objectid(participant_id)},
            {"$unset": {f"examProgress.{exam_id}": ""}}
        )
        return result.matched_count > 0

    @staticmethod
    def update_many(participant_ids, fields):
        """Apply the same field values to several participants. Returns the matched count."""
        ids = [to_objectid(pid) for pid in participant_ids if is_valid_objectid(pid)]
        if not ids:
            return 0
        result = PARTICIPANT.get_collection().update_many({"_id": {"$in": ids}}, {"$set": fields})
        return result.matched_count

    @staticmethod
    def transfer_course(source_course, destination_course):
        """
        Move everyone enrolled in source_course to destination_course.
        Participants already in the destination just lose the source.
        Returns the number of participants moved.
        """
        col = PARTICIPANT.get_collection()
        moved = 0
        for doc in col.find({"enrolledCourses": source_course}):
            courses = [c for c in doc.get("enrolledCourses") or [] if c != source_course]
            if destination_course not in courses:
                courses.append(destination_course)
            col.update_one({"_id": doc["_id"]}, {"$set": {"enrolledCourses": courses}})
            moved += 1
        return moved

    @staticmethod
    def mark_lesson_complete(participant_id, lesson_id):
        result = PARTICIPANT.get_collection().update_one(
            {"_id": to_objectid(participant_id)},
            {"$addToSet": {"completedLessons": lesson_id}}
        )
        return result.matched_count > 0

    @staticmethod
    def save_progress(participant_id, exam_id, answers):
        """Store draft answers for an unsubmitted attempt; startedAt is set on the first save."""
        doc = PARTICIPANT.get_doc(participant_id)
        attempt = dict((doc or {}).get("examProgress", {}).get(exam_id, {}))
        attempt["answers"] = answers
        attempt.setdefault("startedAt", utcnow())
        attempt.setdefault("isSubmitted", False)
        PARTICIPANT.get_collection().update_one(
            {"_id": to_objectid(participant_id)},
            {"$set": {f"examProgress.{exam_id}": attempt}}
        )
        return attempt
