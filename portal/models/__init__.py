from .batch import BATCH
from .registration import REGISTRATION
from .participant import PARTICIPANT
from .course import COURSE
from .staff import TRAINER, authenticate, create_staff, public_user
from .session import PORTAL_SESSION


__all__ = [
    'BATCH',
    'REGISTRATION',
    'PARTICIPANT',
    'COURSE',
    'TRAINER',
    'authenticate',
    'create_staff',
    'public_user',
    'PORTAL_SESSION',
]
