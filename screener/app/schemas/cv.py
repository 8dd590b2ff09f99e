"""Extracted CV schemas"""

from typing import List, Optional
from pydantic import BaseModel, Field


class CvEntities(BaseModel):
    """Best-effort structured entities found in CV text"""
    email: Optional[str] = None
    phone: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    experience: List[str] = Field(default_factory=list)
    education: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)


class CvMeta(BaseModel):
    """Metadata about the source file"""
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: int = 0
    file_type: str
    pages: Optional[int] = None


class CvDocument(BaseModel):
    """Result of document extraction"""
    text: str = ""
    entities: CvEntities = Field(default_factory=CvEntities)
    meta: CvMeta
