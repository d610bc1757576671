import csv
import io
import logging
from flask import Response
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

# field -> header, in column order
REGISTRATION_COLUMNS = (
    ("name", "Name"),
    ("iitpNo", "IITP No"),
    ("organization", "Organization"),
    ("submissionTime", "Submission Time"),
)


def _row(registration):
    return ["" if registration.get(key) is None else str(registration.get(key))
            for key, _ in REGISTRATION_COLUMNS]


def registrations_to_csv(registrations):
    """
    Render registrations as CSV text.

    Fields holding a comma, quote or line break are quoted with inner quotes
    doubled. Rows are CRLF separated with no trailing line break. Returns None
    (and logs a warning) when there is nothing to export.
    """
    if not registrations:
        logger.warning("No data to export.")
        return None

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow([header for _, header in REGISTRATION_COLUMNS])
    for registration in registrations:
        writer.writerow(_row(registration))
    return output.getvalue()[:-len("\r\n")]


def csv_download(registrations, filename="registrations.csv"):
    content = registrations_to_csv(registrations)
    if content is None:
        return None
    filename = secure_filename(filename) or "registrations.csv"
    if not filename.lower().endswith(".csv"):
        filename += ".csv"
    resp = Response(content.encode("utf-8"), mimetype="text/csv")
    resp.headers["Content-Type"] = "text/csv; charset=utf-8"
    # Headers.set quotes the filename when it needs quoting
    resp.headers.set("Content-Disposition", "attachment", filename=filename)
    return resp


def read_participant_rows(text):
    """
    Parse an uploaded participants CSV into dicts keyed by model field names.
    Header matching ignores case, spaces, underscores and dots.
    """
    reader = csv.DictReader(io.StringIO(text))
    aliases = {
        "name": "name",
        "iitpno": "iitpNo",
        "mobile": "mobile",
        "organization": "organization",
        "email": "email",
        "enrolledcourses": "enrolledCourses",
        "semester": "semester",
        "year": "year",
    }
    header_map = {}
    for column in reader.fieldnames or []:
        key = (column or "").replace(" ", "").replace("_", "").replace(".", "").lower()
        if key in aliases:
            header_map[column] = aliases[key]

    rows = []
    for raw in reader:
        row = {}
        for column, field in header_map.items():
            value = (raw.get(column) or "").strip()
            if field == "enrolledCourses":
                row[field] = [c.strip() for c in value.split(";") if c.strip()]
            elif value:
                row[field] = value
        rows.append(row)
    return rows
