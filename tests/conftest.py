"""Pytest configuration and shared fixtures"""

import io
import json
from typing import AsyncGenerator, List

import pytest
from docx import Document
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from screener.app.core.database import Base
from screener.app.models import Candidate, CandidateStatus, Job


SAMPLE_CV_LINES = [
    "Jane Doe",
    "jane.doe@example.com | +1 555-123-4567",
    "Senior Software Engineer with 6 years of experience",
    "Skills: Python, Django, PostgreSQL, Docker, AWS",
    "Languages: English, French",
    "Master of Computer Science, University of Lyon.",
]


def make_pdf_bytes(lines: List[str] = None) -> bytes:
    """Build a one-page PDF containing ``lines``"""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    y = 750
    for line in lines if lines is not None else SAMPLE_CV_LINES:
        c.drawString(72, y, line)
        y -= 20
    c.save()
    return buffer.getvalue()


def make_docx_bytes(lines: List[str] = None) -> bytes:
    """Build a DOCX with one paragraph per line"""
    doc = Document()
    for line in lines if lines is not None else SAMPLE_CV_LINES:
        doc.add_paragraph(line)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def scoring_payload(**overrides) -> dict:
    """A valid oracle scoring object"""
    payload = {
        "score_overall": 80,
        "score_tech": 75,
        "score_experience": 70,
        "score_language": 90,
        "score_culture_fit": 60,
        "strengths": ["Python", "Django"],
        "weaknesses": ["No Kubernetes"],
        "matched_skills": ["Python", "Django", "PostgreSQL"],
        "missing_skills": ["Kubernetes"],
        "summary": "Strong backend engineer.",
        "notes_for_interviewer": ["Ask about scaling Postgres"],
        "recommended_questions": ["How do you design a job queue?"],
    }
    payload.update(overrides)
    return payload


def gemini_envelope(text: str) -> dict:
    """Wrap answer text the way generateContent returns it"""
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def gemini_answer(**overrides) -> dict:
    return gemini_envelope(json.dumps(scoring_payload(**overrides)))


@pytest.fixture
def sample_pdf() -> bytes:
    return make_pdf_bytes()


@pytest.fixture
def sample_docx() -> bytes:
    return make_docx_bytes()


@pytest.fixture
async def test_engine(tmp_path):
    """SQLite database with the full schema, one per test"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'screener_test.db'}", echo=False)
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield engine
    
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def sample_job(session_factory) -> Job:
    async with session_factory() as session:
        job = Job(
            id="job-1",
            title="Backend Engineer",
            description="Build and run the hiring platform backend.",
            requirements="5+ years with Python services.",
            skills_required=["Python", "Django", "PostgreSQL", "Kubernetes"],
            experience_level="senior",
            location="Remote",
        )
        session.add(job)
        await session.commit()
        return job


@pytest.fixture
async def sample_candidate(session_factory, sample_job) -> Candidate:
    async with session_factory() as session:
        candidate = Candidate(
            id="cand-1",
            full_name="Jane Doe",
            email="jane.doe@example.com",
            job_id=sample_job.id,
            cv_url="cvs/cand-1/jane-doe.pdf",
            status=CandidateStatus.PROCESSING,
            status_history=[],
        )
        session.add(candidate)
        await session.commit()
        return candidate
