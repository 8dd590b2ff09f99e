"""Data access layer"""

from screener.app.repositories.candidate_repository import CandidateRepository
from screener.app.repositories.job_repository import JobRepository
from screener.app.repositories.activity_log_repository import ActivityLogRepository

__all__ = ['CandidateRepository', 'JobRepository', 'ActivityLogRepository']
