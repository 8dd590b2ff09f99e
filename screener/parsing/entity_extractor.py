"""Entity extraction from CV text"""

import re
from typing import List, Protocol

from screener.app.core.logging import get_logger
from screener.app.schemas.cv import CvEntities

logger = get_logger(__name__)


class EntityExtractor(Protocol):
    """Strategy that turns CV text into structured entities; must never raise"""
    
    def extract(self, text: str) -> CvEntities: ...


class KeywordEntityExtractor:
    """Regex and keyword-dictionary entity extraction"""
    
    EMAIL_PATTERN = re.compile(r'[\w.-]+@[\w.-]+\.\w+')
    PHONE_PATTERN = re.compile(r'(\+?\d{1,3}[-.\s]?)?(\(?\d{3}\)?[-.\s]?)?\d{3}[-.\s]?\d{4}')
    EXPERIENCE_PATTERN = re.compile(r'(\d+)\s*\+?\s*years?\s*(of\s*)?experience', re.IGNORECASE)
    
    TECH_SKILLS = [
        "JavaScript", "TypeScript", "Python", "Java", "C#", "C++", "Ruby", "Go",
        "Rust", "PHP", "React", "Node.js", "Angular", "Vue", "SQL", "MongoDB",
        "PostgreSQL", "MySQL", "Redis", "Docker", "Kubernetes", "AWS", "Azure",
        "GCP", "Git", "CI/CD", "Agile", "Scrum", "REST API", "GraphQL", "TDD",
        "Express", "Django", "Flask", "Spring", "Laravel", ".NET",
    ]
    
    LANGUAGES = [
        "English", "Vietnamese", "Chinese", "Japanese",
        "Korean", "French", "German", "Spanish",
    ]
    
    EDUCATION_KEYWORDS = ["Bachelor", "Master", "PhD", "Degree", "University", "College"]
    
    def __init__(self, skills: List[str] = None, languages: List[str] = None):
        self.skills = skills if skills is not None else list(self.TECH_SKILLS)
        self.languages = languages if languages is not None else list(self.LANGUAGES)
        self._education_patterns = [
            re.compile(rf'{re.escape(keyword)}[^.\n]{{0,100}}(?:\.|\n)', re.IGNORECASE)
            for keyword in self.EDUCATION_KEYWORDS
        ]
    
    def extract(self, text: str) -> CvEntities:
        """Run every pattern over ``text``; missing matches leave fields empty"""
        entities = CvEntities()
        if not text:
            return entities
        
        email_match = self.EMAIL_PATTERN.search(text)
        if email_match:
            entities.email = email_match.group(0)
        
        phone_match = self.PHONE_PATTERN.search(text)
        if phone_match:
            entities.phone = phone_match.group(0).strip()
        
        lower_text = text.lower()
        entities.skills = [skill for skill in self.skills if skill.lower() in lower_text]
        entities.languages = [lang for lang in self.languages if lang.lower() in lower_text]
        
        entities.experience = [m.group(0).strip() for m in self.EXPERIENCE_PATTERN.finditer(text)]
        
        education = []
        for pattern in self._education_patterns:
            education.extend(m.group(0).strip() for m in pattern.finditer(text))
        entities.education = education
        
        logger.debug(
            f"Extracted entities: {len(entities.skills)} skills, "
            f"{len(entities.languages)} languages, {len(entities.education)} education mentions"
        )
        return entities
