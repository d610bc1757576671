import re
from datetime import datetime
from email_validator import validate_email as email_validate, EmailNotValidError

URL_RE = re.compile(r"^https?://[^\s/$.?#].[^\s]*$", re.IGNORECASE)
TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def clean_text(text, max_length=None):
    """Trim surrounding whitespace and clip to max_length."""
    if text is None:
        return ""
    cleaned = str(text).strip()
    if max_length and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def normalize_iitp_no(value):
    """IITP numbers are compared exactly; only surrounding whitespace is dropped."""
    if value is None:
        return ""
    return str(value).strip()


def validate_email(email):
    """Validate email address format"""
    try:
        valid = email_validate(email, check_deliverability=False)
        return True, valid.normalized
    except EmailNotValidError:
        return False, None


def validate_password(password, min_length=6):
    if not password or len(password) < min_length:
        return False, f"Password must be at least {min_length} characters."
    return True, "Password is valid"


def is_valid_url(value):
    return isinstance(value, str) and bool(URL_RE.match(value.strip()))


def validate_registration_data(data):
    """
    Validate a meeting registration form. Returns (errors, cleaned).
    """
    errors = {}
    cleaned = {}

    name = clean_text(data.get("name"), 255)
    if len(name) < 2:
        errors["name"] = "Name must be at least 2 characters."
    cleaned["name"] = name

    iitp_no = normalize_iitp_no(data.get("iitpNo"))
    if not iitp_no:
        errors["iitpNo"] = "IITP No. is required."
    cleaned["iitpNo"] = iitp_no

    mobile = clean_text(data.get("mobile"), 20)
    if mobile and len(mobile) < 10:
        errors["mobile"] = "A valid mobile number is required."
    cleaned["mobile"] = mobile

    # optional; kept verbatim so link lookup sees exactly what was chosen
    organization = data.get("organization")
    cleaned["organization"] = "" if organization is None else str(organization)

    return errors, cleaned


def validate_participant_data(data, partial=False):
    """
    Validate a participant record. With partial=True only the supplied
    fields are checked (used for updates).
    """
    errors = {}
    cleaned = {}

    if not partial or "name" in data:
        name = clean_text(data.get("name"), 255)
        if len(name) < 2:
            errors["name"] = "Name must be at least 2 characters."
        cleaned["name"] = name

    if not partial or "iitpNo" in data:
        iitp_no = normalize_iitp_no(data.get("iitpNo"))
        if not iitp_no:
            errors["iitpNo"] = "IITP No. is required."
        cleaned["iitpNo"] = iitp_no

    for field in ("mobile", "organization", "year", "semester"):
        if field in data:
            cleaned[field] = clean_text(data.get(field), 255)

    if data.get("email"):
        ok, normalized = validate_email(str(data["email"]).strip())
        if not ok:
            errors["email"] = "Invalid email format"
        else:
            cleaned["email"] = normalized

    for field in ("enrolledCourses", "deniedCourses"):
        if field in data:
            value = data.get(field)
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                errors[field] = f"{field} must be a list of strings"
            else:
                cleaned[field] = [v.strip() for v in value if v.strip()]

    return errors, cleaned


def validate_trainer_data(data, require_password=True):
    errors = {}
    cleaned = {}

    name = clean_text(data.get("name"), 255)
    if len(name) < 2:
        errors["name"] = "Trainer name must be at least 2 characters."
    cleaned["name"] = name

    username = clean_text(data.get("username"), 64)
    if len(username) < 3:
        errors["username"] = "Username must be at least 3 characters."
    cleaned["username"] = username

    meeting_link = clean_text(data.get("meetingLink"))
    if not is_valid_url(meeting_link):
        errors["meetingLink"] = "Must be a valid meeting URL."
    cleaned["meetingLink"] = meeting_link

    cleaned["mobile"] = clean_text(data.get("mobile"), 20)

    password = data.get("password") or ""
    if password or require_password:
        ok, message = validate_password(password)
        if not ok:
            errors["password"] = message
        else:
            cleaned["password"] = password

    return errors, cleaned


def validate_batch_data(data):
    errors = {}
    cleaned = {}

    name = clean_text(data.get("name"), 255)
    if len(name) < 2:
        errors["name"] = "Name must be at least 2 characters."
    cleaned["name"] = name

    for field in ("startTime", "endTime"):
        value = clean_text(data.get(field)) or "00:00"
        if not TIME_RE.match(value):
            errors[field] = "Time must be in HH:MM (24-hour) format."
        cleaned[field] = value

    organizations = data.get("organizations", [])
    if not isinstance(organizations, list):
        errors["organizations"] = "organizations must be a list"
    else:
        cleaned["organizations"] = [str(o) for o in organizations]

    for field in ("course", "trainerId", "semester", "meetingLink", "startDate"):
        if data.get(field) is not None:
            cleaned[field] = clean_text(data.get(field))

    if cleaned.get("meetingLink") and not is_valid_url(cleaned["meetingLink"]):
        errors["meetingLink"] = "Must be a valid meeting URL."

    if cleaned.get("startDate"):
        try:
            datetime.fromisoformat(cleaned["startDate"].replace("Z", "+00:00"))
        except ValueError:
            errors["startDate"] = "Start date must be an ISO date, e.g. 2024-06-01."

    return errors, cleaned


ENROLLMENT_SEASONS = ("Summer", "Winter")


def validate_lesson_data(data):
    errors = {}
    cleaned = {}

    title = clean_text(data.get("title"), 255)
    if len(title) < 2:
        errors["title"] = "Lesson title is required."
    cleaned["title"] = title

    video_url = clean_text(data.get("videoUrl"))
    if not is_valid_url(video_url):
        errors["videoUrl"] = "A valid video URL is required."
    cleaned["videoUrl"] = video_url

    document_url = clean_text(data.get("documentUrl"))
    if document_url and not is_valid_url(document_url):
        errors["documentUrl"] = "Must be a valid URL."
    cleaned["documentUrl"] = document_url

    cleaned["description"] = clean_text(data.get("description"), 5000)

    duration = data.get("duration")
    if duration is not None and (isinstance(duration, bool) or not isinstance(duration, (int, float))):
        errors["duration"] = "Duration must be a number of minutes."
    cleaned["duration"] = duration

    return errors, cleaned


def validate_bulk_update(data):
    """Fields that can be set on many participants at once: year, semester, enrollmentSeason."""
    errors = {}
    cleaned = {}

    ids = data.get("ids")
    if not isinstance(ids, list) or not ids or not all(isinstance(i, str) and i for i in ids):
        errors["ids"] = "ids must be a non-empty list of participant ids"

    for field in ("year", "semester"):
        if data.get(field):
            cleaned[field] = clean_text(data.get(field), 32)

    season = data.get("enrollmentSeason")
    if season:
        if season not in ENROLLMENT_SEASONS:
            errors["enrollmentSeason"] = f"enrollmentSeason must be one of {', '.join(ENROLLMENT_SEASONS)}"
        else:
            cleaned["enrollmentSeason"] = season

    if not errors and not cleaned:
        errors["fields"] = "No update values were provided."
    return errors, cleaned


def validate_staff_data(role, data, partial=False):
    """
    Validate a superadmin, supervisor or form admin account. A password is
    required on create; on update a blank password leaves the old one.
    """
    errors = {}
    cleaned = {}

    if not partial or "name" in data:
        name = clean_text(data.get("name"), 255)
        if len(name) < 2:
            errors["name"] = "Name must be at least 2 characters."
        cleaned["name"] = name

    if not partial or "username" in data:
        username = clean_text(data.get("username"), 64)
        if len(username) < 3:
            errors["username"] = "Username must be at least 3 characters."
        cleaned["username"] = username

    password = data.get("password") or ""
    if password or not partial:
        ok, message = validate_password(password)
        if not ok:
            errors["password"] = message
        else:
            cleaned["password"] = password

    if "mobile" in data:
        cleaned["mobile"] = clean_text(data.get("mobile"), 20)

    if role == "superadmin" and "canManageAdmins" in data:
        if not isinstance(data["canManageAdmins"], bool):
            errors["canManageAdmins"] = "canManageAdmins must be true or false"
        else:
            cleaned["canManageAdmins"] = data["canManageAdmins"]

    if role == "supervisor" and "organization" in data:
        cleaned["organization"] = clean_text(data.get("organization"), 255)

    return errors, cleaned
