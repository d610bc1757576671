import uuid
from flask import current_app
from bson import ObjectId
from portal.config import is_valid_objectid
from portal.utils.serialization import utcnow

COURSE_STATUSES = ("active", "coming-soon", "deactivated")
EXAM_STATUSES = ("active", "inactive")
QUESTION_TYPES = ("multiple-choice", "checkbox", "paragraph")


def _id_query(course_id):
    # seeded courses use readable string ids ("diploma"), added ones use ObjectIds
    if isinstance(course_id, ObjectId):
        return {"_id": course_id}
    if is_valid_objectid(course_id):
        return {"_id": {"$in": [ObjectId(str(course_id)), str(course_id)]}}
    return {"_id": str(course_id)}


class COURSE:
    COLLECTION = "courses"

    @staticmethod
    def get_collection():
        return current_app.mongo.db[COURSE.COLLECTION]

    @staticmethod
    def normalize(doc):
        subjects = [
            {**s, "units": [{**u, "lessons": u.get("lessons") or []} for u in s.get("units") or []]}
            for s in doc.get("subjects") or []
        ]
        return {
            "id": str(doc["_id"]),
            "name": doc.get("name", ""),
            "status": doc.get("status") or "active",
            "subjects": sorted(subjects, key=lambda s: s.get("name", "")),
            "exams": [{**e, "questions": e.get("questions") or []} for e in doc.get("exams") or []],
        }

    @staticmethod
    def seed_defaults():
        """Create the two standard courses when the collection is empty."""
        col = COURSE.get_collection()
        if col.count_documents({}) == 0:
            col.insert_many([
                {"_id": "diploma", "name": "Diploma", "subjects": [], "exams": [], "status": "active"},
                {"_id": "advance-diploma", "name": "Advance Diploma", "subjects": [], "exams": [], "status": "active"},
            ])

    @staticmethod
    def get_all():
        COURSE.seed_defaults()
        return [COURSE.normalize(d) for d in COURSE.get_collection().find()]

    @staticmethod
    def get_by_id(course_id):
        doc = COURSE.get_collection().find_one(_id_query(course_id))
        return COURSE.normalize(doc) if doc else None

    @staticmethod
    def create(name, status="active"):
        if status not in COURSE_STATUSES:
            return None, f"Status must be one of {', '.join(COURSE_STATUSES)}"
        if COURSE.get_collection().find_one({"name": name}):
            return None, "A course with this name already exists."
        result = COURSE.get_collection().insert_one({
            "name": name,
            "status": status,
            "subjects": [],
            "exams": [],
            "createdAt": utcnow(),
        })
        return str(result.inserted_id), None

    @staticmethod
    def validate_questions(questions):
        if not isinstance(questions, list):
            return False, "Questions must be a list"
        for idx, q in enumerate(questions):
            if not isinstance(q, dict):
                return False, f"Question {idx+1} must be an object"
            text = q.get("text")
            if not isinstance(text, str) or not text.strip():
                return False, f"Question {idx+1} needs a non-empty 'text' field"
            q_type = q.get("type")
            if q_type not in QUESTION_TYPES:
                return False, f"Question {idx+1} has invalid type '{q_type}'"
            if q_type != "paragraph":
                options = q.get("options", [])
                if not isinstance(options, list) or len(options) < 2:
                    return False, f"Question {idx+1} must have at least 2 options"
                answers = q.get("correctAnswers", [])
                if not isinstance(answers, list) or not answers:
                    return False, f"Question {idx+1} needs at least one correct answer"
                if any(a not in options for a in answers):
                    return False, f"Question {idx+1} has correct answers outside its options"
        return True, "Valid"

    @staticmethod
    def add_exam(course_id, title, questions=None, status="active", duration=None):
        questions = questions or []
        ok, msg = COURSE.validate_questions(questions)
        if not ok:
            return None, msg
        if status not in EXAM_STATUSES:
            return None, f"Status must be one of {', '.join(EXAM_STATUSES)}"
        exam = {
            "id": uuid.uuid4().hex,
            "title": title,
            "status": status,
            "duration": duration,
            "createdAt": utcnow().isoformat(),
            "questions": [{**q, "id": q.get("id") or uuid.uuid4().hex} for q in questions],
        }
        result = COURSE.get_collection().update_one(_id_query(course_id), {"$push": {"exams": exam}})
        if result.matched_count == 0:
            return None, "Course not found."
        return exam["id"], None

    @staticmethod
    def set_exam_status(course_id, exam_id, status):
        if status not in EXAM_STATUSES:
            return False
        doc = COURSE.get_collection().find_one(_id_query(course_id))
        if not doc or not any(e.get("id") == exam_id for e in doc.get("exams") or []):
            return False
        exams = [{**e, "status": status} if e.get("id") == exam_id else e for e in doc["exams"]]
        COURSE.get_collection().update_one({"_id": doc["_id"]}, {"$set": {"exams": exams}})
        return True

    @staticmethod
    def find_exam(exam_id):
        """Return (course, exam) for the course holding exam_id, or (None, None)."""
        doc = COURSE.get_collection().find_one({"exams.id": exam_id})
        if not doc:
            return None, None
        course = COURSE.normalize(doc)
        exam = next((e for e in course["exams"] if e.get("id") == exam_id), None)
        return course, exam

    # --- course settings ---

    @staticmethod
    def update(course_id, name=None, status=None):
        """Rename a course and/or change its status. Returns an error message or None."""
        update_data = {}
        if name is not None:
            update_data["name"] = name
        if status is not None:
            if status not in COURSE_STATUSES:
                return f"Status must be one of {', '.join(COURSE_STATUSES)}"
            update_data["status"] = status
        if not update_data:
            return "Nothing to update."
        result = COURSE.get_collection().update_one(_id_query(course_id), {"$set": update_data})
        if result.matched_count == 0:
            return "Course not found."
        return None

    @staticmethod
    def delete(course_id):
        return COURSE.get_collection().delete_one(_id_query(course_id)).deleted_count > 0

    # --- subjects, units and lessons ---
    #
    # The whole subjects tree is read, edited in Python and written back
    # with one $set, the same way exam status changes are saved.

    @staticmethod
    def _load(course_id):
        return COURSE.get_collection().find_one(_id_query(course_id))

    @staticmethod
    def _save(doc, field):
        COURSE.get_collection().update_one({"_id": doc["_id"]}, {"$set": {field: doc[field]}})

    @staticmethod
    def _locate(doc, subject_id, unit_id=None):
        """Return (subject, unit, error) inside a loaded course document."""
        subject = next((s for s in doc.get("subjects") or [] if s.get("id") == subject_id), None)
        if subject is None:
            return None, None, "Subject not found."
        if unit_id is None:
            return subject, None, None
        subject.setdefault("units", [])
        unit = next((u for u in subject["units"] if u.get("id") == unit_id), None)
        if unit is None:
            return subject, None, "Unit not found."
        unit.setdefault("lessons", [])
        return subject, unit, None

    @staticmethod
    def add_subject(course_id, name):
        doc = COURSE._load(course_id)
        if not doc:
            return None, "Course not found."
        subjects = doc.setdefault("subjects", [])
        if any(s.get("name", "").lower() == name.lower() for s in subjects):
            return None, "This subject already exists in this course."
        subject = {"id": uuid.uuid4().hex, "name": name, "units": []}
        subjects.append(subject)
        COURSE._save(doc, "subjects")
        return subject["id"], None

    @staticmethod
    def rename_subject(course_id, subject_id, name):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        subject, _, error = COURSE._locate(doc, subject_id)
        if error:
            return error
        subject["name"] = name
        COURSE._save(doc, "subjects")
        return None

    @staticmethod
    def delete_subject(course_id, subject_id):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        _, _, error = COURSE._locate(doc, subject_id)
        if error:
            return error
        doc["subjects"] = [s for s in doc["subjects"] if s.get("id") != subject_id]
        COURSE._save(doc, "subjects")
        return None

    @staticmethod
    def add_unit(course_id, subject_id, title):
        doc = COURSE._load(course_id)
        if not doc:
            return None, "Course not found."
        subject, _, error = COURSE._locate(doc, subject_id)
        if error:
            return None, error
        unit = {"id": uuid.uuid4().hex, "title": title, "lessons": []}
        subject.setdefault("units", []).append(unit)
        COURSE._save(doc, "subjects")
        return unit["id"], None

    @staticmethod
    def rename_unit(course_id, subject_id, unit_id, title):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        _, unit, error = COURSE._locate(doc, subject_id, unit_id)
        if error:
            return error
        unit["title"] = title
        COURSE._save(doc, "subjects")
        return None

    @staticmethod
    def delete_unit(course_id, subject_id, unit_id):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        subject, _, error = COURSE._locate(doc, subject_id, unit_id)
        if error:
            return error
        subject["units"] = [u for u in subject["units"] if u.get("id") != unit_id]
        COURSE._save(doc, "subjects")
        return None

    @staticmethod
    def add_lesson(course_id, subject_id, unit_id, lesson):
        doc = COURSE._load(course_id)
        if not doc:
            return None, "Course not found."
        _, unit, error = COURSE._locate(doc, subject_id, unit_id)
        if error:
            return None, error
        lesson = {**lesson, "id": uuid.uuid4().hex}
        unit["lessons"].append(lesson)
        COURSE._save(doc, "subjects")
        return lesson["id"], None

    @staticmethod
    def update_lesson(course_id, subject_id, unit_id, lesson_id, lesson):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        _, unit, error = COURSE._locate(doc, subject_id, unit_id)
        if error:
            return error
        for idx, existing in enumerate(unit["lessons"]):
            if existing.get("id") == lesson_id:
                unit["lessons"][idx] = {**lesson, "id": lesson_id}
                COURSE._save(doc, "subjects")
                return None
        return "Lesson not found."

    @staticmethod
    def delete_lesson(course_id, subject_id, unit_id, lesson_id):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        _, unit, error = COURSE._locate(doc, subject_id, unit_id)
        if error:
            return error
        unit["lessons"] = [l for l in unit["lessons"] if l.get("id") != lesson_id]
        COURSE._save(doc, "subjects")
        return None

    @staticmethod
    def find_lesson(lesson_id):
        """Return (course, lesson) for the course holding lesson_id, or (None, None)."""
        for doc in COURSE.get_collection().find({}, {"name": 1, "status": 1, "subjects": 1}):
            for subject in doc.get("subjects") or []:
                for unit in subject.get("units") or []:
                    for lesson in unit.get("lessons") or []:
                        if lesson.get("id") == lesson_id:
                            return COURSE.normalize(doc), lesson
        return None, None

    # --- exams and questions ---

    @staticmethod
    def _locate_exam(doc, exam_id):
        return next((e for e in doc.get("exams") or [] if e.get("id") == exam_id), None)

    @staticmethod
    def update_exam(course_id, exam_id, title, status="active", duration=None):
        if status not in EXAM_STATUSES:
            return f"Status must be one of {', '.join(EXAM_STATUSES)}"
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        exam = COURSE._locate_exam(doc, exam_id)
        if exam is None:
            return "Exam not found."
        exam.update({"title": title, "status": status, "duration": duration})
        COURSE._save(doc, "exams")
        return None

    @staticmethod
    def delete_exam(course_id, exam_id):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        if COURSE._locate_exam(doc, exam_id) is None:
            return "Exam not found."
        doc["exams"] = [e for e in doc["exams"] if e.get("id") != exam_id]
        COURSE._save(doc, "exams")
        return None

    @staticmethod
    def add_question(course_id, exam_id, question):
        ok, msg = COURSE.validate_questions([question])
        if not ok:
            return None, msg
        doc = COURSE._load(course_id)
        if not doc:
            return None, "Course not found."
        exam = COURSE._locate_exam(doc, exam_id)
        if exam is None:
            return None, "Exam not found."
        question = {**question, "id": uuid.uuid4().hex}
        exam.setdefault("questions", []).append(question)
        COURSE._save(doc, "exams")
        return question["id"], None

    @staticmethod
    def update_question(course_id, exam_id, question_id, question):
        ok, msg = COURSE.validate_questions([question])
        if not ok:
            return msg
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        exam = COURSE._locate_exam(doc, exam_id)
        if exam is None:
            return "Exam not found."
        questions = exam.setdefault("questions", [])
        for idx, existing in enumerate(questions):
            if existing.get("id") == question_id:
                questions[idx] = {**question, "id": question_id}
                COURSE._save(doc, "exams")
                return None
        return "Question not found."

    @staticmethod
    def delete_question(course_id, exam_id, question_id):
        doc = COURSE._load(course_id)
        if not doc:
            return "Course not found."
        exam = COURSE._locate_exam(doc, exam_id)
        if exam is None:
            return "Exam not found."
        exam["questions"] = [q for q in exam.get("questions") or [] if q.get("id") != question_id]
        COURSE._save(doc, "exams")
        return None
