"""Queue task schemas"""

import enum
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TaskStatus(str, enum.Enum):
    """Lifecycle of a queued analysis task"""
    QUEUED = "queued"
    DELAYED = "delayed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AnalysisTask(BaseModel):
    """One queued candidate analysis request"""
    
    task_id: str
    candidate_id: str = Field(..., min_length=1)
    cv_location: str = Field(..., min_length=1)
    job_id: Optional[str] = None
    attempt: int = Field(default=0, ge=0)
    max_attempts: int = Field(default=3, ge=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    
    @staticmethod
    def make_task_id(candidate_id: str, created_ms: Optional[int] = None) -> str:
        """Task id derived from the candidate id and creation time"""
        created_ms = created_ms if created_ms is not None else int(time.time() * 1000)
        return f"candidate-{candidate_id}-{created_ms}"
    
    @classmethod
    def create(
        cls,
        candidate_id: str,
        cv_location: str,
        job_id: Optional[str] = None,
        max_attempts: int = 3
    ) -> "AnalysisTask":
        return cls(
            task_id=cls.make_task_id(candidate_id),
            candidate_id=candidate_id,
            cv_location=cv_location,
            job_id=job_id,
            max_attempts=max_attempts,
        )
    
    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempt)


class TaskHandle(BaseModel):
    """Returned to callers of enqueue"""
    task_id: str
    candidate_id: str
    status: TaskStatus


class TaskRecord(BaseModel):
    """Status record kept for a task while it is active and for its retention window"""
    task_id: str
    status: TaskStatus
    task: Dict[str, Any]
    attempt: int = 0
    progress: int = 0
    result_data: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
