"""Activity log model"""

from sqlalchemy import Column, Integer, String, Text
from screener.app.core.database import Base
from screener.app.models.base import TimestampMixin, JSONType


class ActivityLog(Base, TimestampMixin):
    """Audit trail of actions taken on a candidate"""
    
    __tablename__ = "activity_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    candidate_id = Column(String(64), nullable=False, index=True)
    action = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSONType, nullable=True)
    
    def __repr__(self):
        return f"<ActivityLog(candidate_id={self.candidate_id}, action={self.action})>"
