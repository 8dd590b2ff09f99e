"""Candidate model"""

from sqlalchemy import Column, String, Float, Text, Enum as SQLEnum
from screener.app.core.database import Base
from screener.app.models.base import TimestampMixin, JSONType
import uuid
import enum


class CandidateStatus(str, enum.Enum):
    """Candidate screening status"""
    PENDING = "pending"
    PROCESSING = "processing"
    SCREENING_PASSED = "screening-passed"
    BORDERLINE = "borderline"
    REJECTED = "rejected"
    PROCESSING_FAILED = "processing-failed"


class Candidate(Base, TimestampMixin):
    """Candidate record mutated by the analysis pipeline"""
    
    __tablename__ = "candidates"
    
    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    full_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    job_id = Column(String(64), nullable=True, index=True)
    cv_url = Column(String(1000), nullable=True)
    status = Column(
        SQLEnum(CandidateStatus, values_callable=lambda e: [m.value for m in e], name="candidatestatus"),
        nullable=False,
        default=CandidateStatus.PENDING,
        index=True
    )
    ai_score = Column(Float, nullable=True)
    scores = Column(JSONType, nullable=True)
    ai_analysis = Column(JSONType, nullable=True)
    cv_text = Column(Text, nullable=True)
    cv_entities = Column(JSONType, nullable=True)
    status_history = Column(JSONType, nullable=False, default=list)
    notes = Column(Text, nullable=True)
    
    def __repr__(self):
        return f"<Candidate(id={self.id}, name={self.full_name}, status={self.status})>"
