from flask import Blueprint, request, jsonify, current_app, g
from portal.extensions import limiter
from portal.middleware.auth import require_capability
from portal.models.course import COURSE
from portal.models.participant import PARTICIPANT
from portal.utils.access import verify_exam_access
from portal.utils.scoring import answers_error, grade_submission, gradable_count
from portal.utils.serialization import to_iso
from portal.utils.validation import clean_text, normalize_iitp_no, validate_lesson_data

courses_bp = Blueprint("courses", __name__)
exams_bp = Blueprint("exams", __name__)
student_bp = Blueprint("student", __name__)

QUESTION_FIELDS = ("text", "type", "options", "correctAnswers", "rationale")


def _strip_answers(exam):
    """Exam as shown to a candidate: questions without their answer keys."""
    return {
        **exam,
        "questions": [{k: v for k, v in q.items() if k != "correctAnswers"} for q in exam.get("questions", [])],
    }


def _error_response(error):
    code = 404 if error.endswith("not found.") else 400
    return jsonify({"error": error}), code


def _name_from(data, field, label):
    value = clean_text(data.get(field), 255)
    if len(value) < 2:
        return value, jsonify({"errors": {field: f"{label} must be at least 2 characters."}}), 400
    return value, None, None


def _duration(data):
    duration = data.get("duration")
    if duration is None:
        return None, None
    if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
        return None, "duration must be a positive number of minutes"
    return duration, None


# --- Courses ---

@courses_bp.route("", methods=["GET"])
@require_capability("courses", "read")
def list_courses():
    return jsonify({"courses": COURSE.get_all()}), 200


@courses_bp.route("", methods=["POST"])
@require_capability("courses", "write")
def add_course():
    data = request.get_json(silent=True) or {}
    name = clean_text(data.get("name"), 255)
    if len(name) < 2:
        return jsonify({"errors": {"name": "Course name must be at least 2 characters."}}), 400
    course_id, error = COURSE.create(name, data.get("status", "active"))
    if error:
        return jsonify({"error": error}), 400
    return jsonify({"message": "Course added", "course_id": course_id}), 201


@courses_bp.route("/<course_id>", methods=["GET"])
@require_capability("courses", "read")
def get_course(course_id):
    course = COURSE.get_by_id(course_id)
    if not course:
        return jsonify({"error": "Course not found"}), 404
    return jsonify(course), 200


@courses_bp.route("/<course_id>", methods=["PATCH"])
@require_capability("courses", "write")
def update_course(course_id):
    """
    Body: { "name": "string", "status": "active" | "coming-soon" | "deactivated" } (either or both)
    """
    data = request.get_json(silent=True) or {}
    name = None
    if "name" in data:
        name, resp, code = _name_from(data, "name", "Course name")
        if resp:
            return resp, code
    error = COURSE.update(course_id, name=name, status=data.get("status"))
    if error:
        return _error_response(error)
    return jsonify({"message": "Course updated"}), 200


@courses_bp.route("/<course_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_course(course_id):
    if not COURSE.delete(course_id):
        return jsonify({"error": "Course not found"}), 404
    current_app.logger.info(f"Deleted course {course_id}")
    return jsonify({"message": "Course deleted"}), 200


# --- Subjects, units, lessons ---

@courses_bp.route("/<course_id>/subjects", methods=["POST"])
@require_capability("courses", "write")
def add_subject(course_id):
    name, resp, code = _name_from(request.get_json(silent=True) or {}, "name", "Subject name")
    if resp:
        return resp, code
    subject_id, error = COURSE.add_subject(course_id, name)
    if error:
        if error.endswith("not found."):
            return _error_response(error)
        return jsonify({"error": error}), 409
    return jsonify({"message": "Subject added", "subject_id": subject_id}), 201


@courses_bp.route("/<course_id>/subjects/<subject_id>", methods=["PATCH"])
@require_capability("courses", "write")
def rename_subject(course_id, subject_id):
    name, resp, code = _name_from(request.get_json(silent=True) or {}, "name", "Subject name")
    if resp:
        return resp, code
    error = COURSE.rename_subject(course_id, subject_id, name)
    if error:
        return _error_response(error)
    return jsonify({"message": "Subject updated"}), 200


@courses_bp.route("/<course_id>/subjects/<subject_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_subject(course_id, subject_id):
    error = COURSE.delete_subject(course_id, subject_id)
    if error:
        return _error_response(error)
    return jsonify({"message": "Subject deleted"}), 200


@courses_bp.route("/<course_id>/subjects/<subject_id>/units", methods=["POST"])
@require_capability("courses", "write")
def add_unit(course_id, subject_id):
    title, resp, code = _name_from(request.get_json(silent=True) or {}, "title", "Unit title")
    if resp:
        return resp, code
    unit_id, error = COURSE.add_unit(course_id, subject_id, title)
    if error:
        return _error_response(error)
    return jsonify({"message": "Unit added", "unit_id": unit_id}), 201


@courses_bp.route("/<course_id>/subjects/<subject_id>/units/<unit_id>", methods=["PATCH"])
@require_capability("courses", "write")
def rename_unit(course_id, subject_id, unit_id):
    title, resp, code = _name_from(request.get_json(silent=True) or {}, "title", "Unit title")
    if resp:
        return resp, code
    error = COURSE.rename_unit(course_id, subject_id, unit_id, title)
    if error:
        return _error_response(error)
    return jsonify({"message": "Unit updated"}), 200


@courses_bp.route("/<course_id>/subjects/<subject_id>/units/<unit_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_unit(course_id, subject_id, unit_id):
    error = COURSE.delete_unit(course_id, subject_id, unit_id)
    if error:
        return _error_response(error)
    return jsonify({"message": "Unit deleted"}), 200


@courses_bp.route("/<course_id>/subjects/<subject_id>/units/<unit_id>/lessons", methods=["POST"])
@require_capability("courses", "write")
def add_lesson(course_id, subject_id, unit_id):
    """
    Body: { "title": "string", "videoUrl": "url", "description": "string",
            "documentUrl": "url", "duration": number }
    """
    errors, cleaned = validate_lesson_data(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400
    lesson_id, error = COURSE.add_lesson(course_id, subject_id, unit_id, cleaned)
    if error:
        return _error_response(error)
    return jsonify({"message": "Lesson added", "lesson_id": lesson_id}), 201


@courses_bp.route("/<course_id>/subjects/<subject_id>/units/<unit_id>/lessons/<lesson_id>", methods=["PUT"])
@require_capability("courses", "write")
def update_lesson(course_id, subject_id, unit_id, lesson_id):
    errors, cleaned = validate_lesson_data(request.get_json(silent=True) or {})
    if errors:
        return jsonify({"errors": errors}), 400
    error = COURSE.update_lesson(course_id, subject_id, unit_id, lesson_id, cleaned)
    if error:
        return _error_response(error)
    return jsonify({"message": "Lesson updated"}), 200


@courses_bp.route("/<course_id>/subjects/<subject_id>/units/<unit_id>/lessons/<lesson_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_lesson(course_id, subject_id, unit_id, lesson_id):
    error = COURSE.delete_lesson(course_id, subject_id, unit_id, lesson_id)
    if error:
        return _error_response(error)
    return jsonify({"message": "Lesson deleted"}), 200


# --- Exams and questions ---

@courses_bp.route("/<course_id>/exams", methods=["POST"])
@require_capability("courses", "write")
def add_exam(course_id):
    data = request.get_json(silent=True) or {}
    title = clean_text(data.get("title"), 255)
    if not title:
        return jsonify({"errors": {"title": "Exam title is required."}}), 400
    duration, duration_error = _duration(data)
    if duration_error:
        return jsonify({"errors": {"duration": duration_error}}), 400
    exam_id, error = COURSE.add_exam(
        course_id, title, data.get("questions", []), data.get("status", "active"), duration
    )
    if error:
        return _error_response(error)
    return jsonify({"message": "Exam added", "exam_id": exam_id}), 201


@courses_bp.route("/<course_id>/exams/<exam_id>", methods=["PUT"])
@require_capability("courses", "write")
def update_exam(course_id, exam_id):
    """
    Body: { "title": "string", "status": "active" | "inactive", "duration": number }
    """
    data = request.get_json(silent=True) or {}
    title = clean_text(data.get("title"), 255)
    if len(title) < 2:
        return jsonify({"errors": {"title": "Exam title is required."}}), 400
    duration, duration_error = _duration(data)
    if duration_error:
        return jsonify({"errors": {"duration": duration_error}}), 400
    error = COURSE.update_exam(course_id, exam_id, title, data.get("status") or "active", duration)
    if error:
        return _error_response(error)
    return jsonify({"message": "Exam updated"}), 200


@courses_bp.route("/<course_id>/exams/<exam_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_exam(course_id, exam_id):
    error = COURSE.delete_exam(course_id, exam_id)
    if error:
        return _error_response(error)
    return jsonify({"message": "Exam deleted"}), 200


@courses_bp.route("/<course_id>/exams/<exam_id>/status", methods=["PATCH"])
@require_capability("courses", "write")
def set_exam_status(course_id, exam_id):
    status = (request.get_json(silent=True) or {}).get("status")
    if status not in ("active", "inactive"):
        return jsonify({"errors": {"status": "status must be 'active' or 'inactive'"}}), 400
    if not COURSE.set_exam_status(course_id, exam_id, status):
        return jsonify({"error": "Exam not found"}), 404
    return jsonify({"message": "Exam updated", "status": status}), 200


def _question_from_request():
    data = request.get_json(silent=True) or {}
    return {k: data[k] for k in QUESTION_FIELDS if k in data}


@courses_bp.route("/<course_id>/exams/<exam_id>/questions", methods=["POST"])
@require_capability("courses", "write")
def add_question(course_id, exam_id):
    question_id, error = COURSE.add_question(course_id, exam_id, _question_from_request())
    if error:
        return _error_response(error)
    return jsonify({"message": "Question added", "question_id": question_id}), 201


@courses_bp.route("/<course_id>/exams/<exam_id>/questions/<question_id>", methods=["PUT"])
@require_capability("courses", "write")
def update_question(course_id, exam_id, question_id):
    error = COURSE.update_question(course_id, exam_id, question_id, _question_from_request())
    if error:
        return _error_response(error)
    return jsonify({"message": "Question updated"}), 200


@courses_bp.route("/<course_id>/exams/<exam_id>/questions/<question_id>", methods=["DELETE"])
@require_capability("courses", "write")
def delete_question(course_id, exam_id, question_id):
    error = COURSE.delete_question(course_id, exam_id, question_id)
    if error:
        return _error_response(error)
    return jsonify({"message": "Question deleted"}), 200


# --- Student views ---

@student_bp.route("/courses/<iitp_no>", methods=["GET"])
@require_capability("courses", "read_own")
def student_courses(iitp_no):
    iitp_no = normalize_iitp_no(iitp_no)
    if g.auth.subject_id != iitp_no:
        return jsonify({"error": "Forbidden"}), 403

    participant = PARTICIPANT.get_doc_by_iitp_no(iitp_no)
    if not participant:
        return jsonify({"error": "Participant not found"}), 404

    denied = set(participant.get("deniedCourses") or [])
    courses = [
        {**c, "exams": [_strip_answers(e) for e in c["exams"] if e.get("status") != "inactive"]}
        for c in COURSE.get_all()
        if PARTICIPANT.is_enrolled(participant, c["name"]) and c["id"] not in denied
    ]
    return jsonify({
        "iitpNo": iitp_no,
        "completedLessons": participant.get("completedLessons") or [],
        "courses": courses,
    }), 200


@student_bp.route("/lessons/<lesson_id>/complete", methods=["POST"])
@require_capability("lessons", "complete")
def complete_lesson(lesson_id):
    participant = PARTICIPANT.get_doc_by_iitp_no(g.auth.subject_id)
    if not participant:
        return jsonify({"error": "Participant not found"}), 404

    course, lesson = COURSE.find_lesson(lesson_id)
    if not lesson:
        return jsonify({"error": "Lesson not found"}), 404
    if not PARTICIPANT.is_enrolled(participant, course["name"]) or course["id"] in (participant.get("deniedCourses") or []):
        return jsonify({"error": "You are not enrolled in the course for this lesson."}), 403

    PARTICIPANT.mark_lesson_complete(participant["_id"], lesson_id)
    return jsonify({"message": "Lesson marked as complete"}), 200


# --- Exams ---

@exams_bp.route("/<exam_id>/verify", methods=["POST"])
@limiter.limit('20 per minute')
def verify_access(exam_id):
    """
    Exam login: check an IITP No. may sit this exam.
    Body: { "iitpNo": "string" }
    """
    iitp_no = (request.get_json(silent=True) or {}).get("iitpNo")
    result = verify_exam_access(iitp_no, exam_id)
    if not result["success"]:
        return jsonify(result), 403
    return jsonify(result), 200


def _open_attempt(exam_id):
    """Resolve the signed-in student's access and current attempt, or an error response."""
    data = request.get_json(silent=True) or {}
    answers = data.get("answers")
    error = answers_error(answers)
    if error:
        return None, None, (jsonify({"errors": {"answers": error}}), 400)

    access = verify_exam_access(g.auth.subject_id, exam_id)
    if not access["success"]:
        return None, None, (jsonify(access), 403)

    participant = PARTICIPANT.get_doc(access["participant_id"])
    attempt = (participant.get("examProgress") or {}).get(exam_id) or {}
    if attempt.get("isSubmitted"):
        return None, None, (jsonify({"error": "This exam has already been submitted."}), 409)
    return access, answers, None


@exams_bp.route("/<exam_id>/progress", methods=["PUT"])
@require_capability("exams", "take")
def save_progress(exam_id):
    """
    Save draft answers. The first save records when the attempt started.
    Body: { "answers": { "<questionId>": "option" | ["option", ...] } }
    """
    access, answers, err = _open_attempt(exam_id)
    if err:
        return err
    attempt = PARTICIPANT.save_progress(access["participant_id"], exam_id, answers)
    return jsonify({"message": "Progress saved", "startedAt": to_iso(attempt["startedAt"])}), 200


@exams_bp.route("/<exam_id>/submit", methods=["POST"])
@require_capability("exams", "take")
def submit_exam(exam_id):
    """
    Body: { "answers": { "<questionId>": "option" | ["option", ...] } }
    """
    access, answers, err = _open_attempt(exam_id)
    if err:
        return err

    _, exam = COURSE.find_exam(exam_id)
    score, total = grade_submission(exam, answers)
    PARTICIPANT.save_submission(access["participant_id"], exam_id, answers, score)
    current_app.logger.info(f"{g.auth.subject_id} submitted exam {exam_id}: {score}/{total}")
    return jsonify({"message": "Exam submitted", "score": score, "totalQuestions": total}), 200


@exams_bp.route("/<exam_id>/results", methods=["GET"])
@require_capability("exams", "results")
def exam_results(exam_id):
    _, exam = COURSE.find_exam(exam_id)
    if not exam:
        return jsonify({"error": "Exam not found"}), 404

    total = gradable_count(exam)
    results = []
    for p in PARTICIPANT.submitted_for_exam(exam_id):
        attempt = p["examProgress"][exam_id]
        results.append({
            "participantId": str(p["_id"]),
            "participantName": p.get("name", ""),
            "iitpNo": p.get("iitpNo", ""),
            "score": attempt.get("score", 0),
            "totalQuestions": total,
            "submittedAt": to_iso(attempt.get("submittedAt")),
        })
    results.sort(key=lambda r: r["score"], reverse=True)
    return jsonify({"exam_id": exam_id, "results": results}), 200


@exams_bp.route("/<exam_id>/attempts/<participant_id>", methods=["DELETE"])
@require_capability("exams", "manage")
def delete_attempt(exam_id, participant_id):
    if not PARTICIPANT.get_doc(participant_id):
        return jsonify({"error": "Participant not found."}), 404
    PARTICIPANT.delete_attempt(participant_id, exam_id)
    return jsonify({"message": "Attempt deleted"}), 200
