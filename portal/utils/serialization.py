from datetime import datetime, date, timezone
from bson import ObjectId


def to_iso(value, default_now=True):
    """
    Normalize a stored timestamp to an ISO-8601 string.

    - datetime: naive values are treated as UTC (pymongo returns naive UTC)
    - str: parsed and re-emitted, so legacy formats never leak out
    - None, or a string that does not parse: current UTC time when
      default_now, otherwise ""
    """
    if isinstance(value, str) and value:
        try:
            value = parse_iso(value)
        except ValueError:
            value = None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).isoformat()
    if default_now:
        return utcnow().isoformat()
    return ""


def utcnow():
    return datetime.now(timezone.utc)


def parse_iso(value):
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def serialize_doc(value):
    """Recursively turn ObjectIds and datetimes into JSON-safe strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return to_iso(value)
    if isinstance(value, dict):
        return {k: serialize_doc(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_doc(v) for v in value]
    return value
