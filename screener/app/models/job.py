"""Job posting model"""

from sqlalchemy import Column, String, Text
from screener.app.core.database import Base
from screener.app.models.base import TimestampMixin, JSONType
import uuid


class Job(Base, TimestampMixin):
    """Job posting; only the scoring-relevant columns are read by the pipeline"""
    
    __tablename__ = "jobs"
    
    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    requirements = Column(Text, nullable=True)
    skills_required = Column(JSONType, nullable=True)
    experience_level = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="open", index=True)
    
    def __repr__(self):
        return f"<Job(id={self.id}, title={self.title})>"
