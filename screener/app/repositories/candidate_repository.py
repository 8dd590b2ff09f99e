"""Candidate repository for database operations"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from screener.app.core.exceptions import NotFoundException, StoreUnavailableException
from screener.app.core.logging import get_logger
from screener.app.models.candidate import Candidate, CandidateStatus
from screener.app.schemas.analysis import StatusHistoryEntry

logger = get_logger(__name__)


class CandidateRepository:
    """Repository for candidate database operations"""
    
    def __init__(self, session: AsyncSession):
        """
        Initialize repository
        
        Args:
            session: Database session
        """
        self.session = session
    
    async def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        """
        Get candidate by ID
        
        Args:
            candidate_id: Candidate identifier
        
        Returns:
            Candidate if found, None otherwise
        """
        try:
            result = await self.session.execute(
                select(Candidate).where(Candidate.id == candidate_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to load candidate {candidate_id}: {e}")
            raise StoreUnavailableException(f"Failed to load candidate: {e}") from e
        return result.scalar_one_or_none()
    
    async def get_required(self, candidate_id: str) -> Candidate:
        """Get candidate by ID or raise NotFoundException"""
        candidate = await self.get_by_id(candidate_id)
        if candidate is None:
            raise NotFoundException(f"Candidate not found: {candidate_id}")
        return candidate
    
    async def _commit(self, candidate_id: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to update candidate {candidate_id}: {e}")
            raise StoreUnavailableException(f"Failed to update candidate: {e}") from e
    
    async def save_analysis(
        self,
        candidate_id: str,
        status: CandidateStatus,
        update_data: Dict[str, Any]
    ) -> Candidate:
        """
        Persist analysis results and the new status
        
        Args:
            candidate_id: Candidate identifier
            status: Status decided for the candidate
            update_data: Column values (ai_score, scores, ai_analysis, cv_text, cv_entities, notes)
        
        Returns:
            Updated candidate
        """
        candidate = await self.get_required(candidate_id)
        
        for key, value in update_data.items():
            if hasattr(candidate, key):
                setattr(candidate, key, value)
        candidate.status = status
        candidate.updated_at = datetime.now(timezone.utc)
        
        await self._commit(candidate_id)
        logger.info(f"Saved analysis for candidate {candidate_id}", extra={"candidate_id": candidate_id, "status": status.value})
        return candidate
    
    async def append_status_history(
        self,
        candidate_id: str,
        status: CandidateStatus,
        reason: str
    ) -> StatusHistoryEntry:
        """
        Append one entry to the candidate's status history
        
        The history list is replaced rather than mutated in place so the JSON
        column change is detected.
        """
        candidate = await self.get_required(candidate_id)
        entry = StatusHistoryEntry(status=status.value, reason=reason)
        
        history = list(candidate.status_history or [])
        history.append(entry.model_dump(mode="json"))
        candidate.status_history = history
        
        await self._commit(candidate_id)
        return entry
    
    async def mark_processing_failed(self, candidate_id: str, reason: str) -> Candidate:
        """Set status to processing-failed and record the reason in notes"""
        candidate = await self.get_required(candidate_id)
        candidate.status = CandidateStatus.PROCESSING_FAILED
        candidate.notes = reason
        candidate.updated_at = datetime.now(timezone.utc)
        
        await self._commit(candidate_id)
        logger.info(f"Marked candidate {candidate_id} as processing-failed", extra={"candidate_id": candidate_id})
        return candidate
