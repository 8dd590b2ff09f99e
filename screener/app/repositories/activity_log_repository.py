"""Activity log repository"""

from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from screener.app.core.exceptions import StoreUnavailableException
from screener.app.models.activity_log import ActivityLog


class ActivityLogRepository:
    """Append-only writes to the activity log"""
    
    def __init__(self, session: AsyncSession):
        self.session = session
    
    async def log(
        self,
        candidate_id: str,
        action: str,
        description: str,
        details: Optional[Dict[str, Any]] = None
    ) -> ActivityLog:
        entry = ActivityLog(
            candidate_id=candidate_id,
            action=action,
            description=description,
            details=details,
        )
        self.session.add(entry)
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StoreUnavailableException(f"Failed to write activity log: {e}") from e
        return entry
