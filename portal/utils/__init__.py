from .validation import validate_email, validate_password, clean_text, normalize_iitp_no
from .serialization import to_iso, serialize_doc
from .csv_export import registrations_to_csv, csv_download
from .meeting_links import resolve_meeting_link

__all__ = ['validate_email', 'validate_password', 'clean_text', 'normalize_iitp_no', 'to_iso', 'serialize_doc', 'registrations_to_csv', 'csv_download', 'resolve_meeting_link']
