"""
Persistence models and domain records for the relay.
"""

from .counselor import Counselor, CounselorStudent, normalize_email
from .relationship import InsertOutcome, Relationship, StudentEntry

__all__ = [
    "Counselor",
    "CounselorStudent",
    "normalize_email",
    "InsertOutcome",
    "Relationship",
    "StudentEntry",
]
