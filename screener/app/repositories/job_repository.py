"""Job repository for reading scoring context"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from screener.app.core.exceptions import StoreUnavailableException
from screener.app.core.logging import get_logger
from screener.app.models.job import Job
from screener.app.schemas.analysis import JobContext

logger = get_logger(__name__)


class JobRepository:
    """Repository for job posting reads"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def get_job_context(self, job_id: Optional[str]) -> JobContext:
        """
        Snapshot the scoring-relevant fields of a job posting
        
        An empty context is returned when no job is referenced or the job does
        not exist; scoring then runs against the CV alone.
        """
        if not job_id:
            return JobContext()
        
        try:
            result = await self.session.execute(select(Job).where(Job.id == job_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to load job {job_id}: {e}")
            raise StoreUnavailableException(f"Failed to load job: {e}") from e
        
        job = result.scalar_one_or_none()
        if job is None:
            logger.warning(f"Job not found: {job_id}")
            return JobContext()
        
        return JobContext(
            title=job.title,
            description=job.description,
            requirements=job.requirements,
            skills_required=list(job.skills_required or []),
            experience_level=job.experience_level,
            location=job.location,
        )
