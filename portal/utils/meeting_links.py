"""
Organization to meeting-link lookup.

Registrants are sent to the meeting room of their plant. Matching is on the
exact organization string offered by the registration form; any other value
(including case or whitespace variants) gets the general room.
"""

ORGANIZATIONS = (
    "TE Connectivity, Shirwal",
    "BSA Plant, Chakan",
    "Belden India",
)

MEETING_LINKS = {
    "TE Connectivity, Shirwal": "https://meet.google.com/tec-shir-wal",
    "BSA Plant, Chakan": "https://meet.google.com/bsa-chak-kan",
    "Belden India": "https://meet.google.com/bel-deni-ndi",
}

DEFAULT_MEETING_LINK = "https://meet.google.com/iit-pgen-ral"


def resolve_meeting_link(name=None, iitp_no=None, organization=None):
    """Return the meeting URL for a registrant. Only ``organization`` decides."""
    if not isinstance(organization, str):
        return DEFAULT_MEETING_LINK
    return MEETING_LINKS.get(organization, DEFAULT_MEETING_LINK)
