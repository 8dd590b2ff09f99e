"""Database models"""

from screener.app.models.base import TimestampMixin
from screener.app.models.candidate import Candidate, CandidateStatus
from screener.app.models.job import Job
from screener.app.models.activity_log import ActivityLog

__all__ = [
    "TimestampMixin",
    "Candidate",
    "CandidateStatus",
    "Job",
    "ActivityLog",
]
