"""
Meeting and exam access checks.

Both checks report failure as a value, ``{"success": False, "error": msg}``,
so callers can show the message inline instead of handling exceptions.
"""
import logging
from portal.models.batch import BATCH
from portal.models.course import COURSE
from portal.models.participant import PARTICIPANT
from portal.models.registration import REGISTRATION
from portal.utils.validation import normalize_iitp_no

logger = logging.getLogger(__name__)


def _fail(message):
    return {"success": False, "error": message}


def verify_meeting_access(iitp_no, batch_id):
    """
    Let an enrolled participant into a batch meeting.

    Registers the participant in the batch on first join; later joins find
    the existing registration and succeed without writing.
    """
    iitp_no = normalize_iitp_no(iitp_no)
    if not iitp_no or not batch_id:
        return _fail("IITP No. and batch are required.")

    batch = BATCH.get_by_id(batch_id)
    if not batch:
        return _fail("The event you are trying to join does not exist.")
    if batch["isCancelled"]:
        reason = batch["cancellationReason"]
        return _fail(f"This session has been cancelled. {reason}".strip())
    if not batch["active"]:
        return _fail("This session is not accepting participants right now.")

    participant = PARTICIPANT.get_doc_by_iitp_no(iitp_no)
    if not participant:
        return _fail("No participant found with this IITP No. Please register or contact an admin.")

    registration = REGISTRATION.find_in_batch(batch_id, iitp_no)
    created = registration is None
    if registration:
        registration = REGISTRATION.normalize(registration)
    else:
        registration = REGISTRATION.create(
            batch_id,
            name=participant.get("name", ""),
            iitp_no=participant["iitpNo"],
            organization=participant.get("organization", ""),
            mobile=participant.get("mobile", ""),
        )
        logger.info(f"Registered {iitp_no} for batch {batch_id} on join")

    return {"success": True, "batch_id": batch["id"], "registration": registration, "created": created}


def verify_exam_access(iitp_no, exam_id):
    """Check that a participant may sit exam_id. Success carries the owning course id."""
    iitp_no = normalize_iitp_no(iitp_no)
    if not iitp_no or not exam_id:
        return _fail("Invalid data")

    participant = PARTICIPANT.get_doc_by_iitp_no(iitp_no)
    if not participant:
        return _fail("No participant found with this IITP No.")

    course, exam = COURSE.find_exam(exam_id)
    if not course or not exam:
        return _fail("Exam not found in any course.")

    if exam.get("status") == "inactive":
        return _fail("This exam is not currently active. Please contact an administrator.")

    if not PARTICIPANT.is_enrolled(participant, course["name"]):
        return _fail(f"You are not enrolled in the course required for this exam ({course['name']}).")

    if course["id"] in (participant.get("deniedCourses") or []):
        return _fail("Your access to the course for this exam has been revoked. Please contact an admin.")

    return {"success": True, "course_id": course["id"], "participant_id": str(participant["_id"])}
