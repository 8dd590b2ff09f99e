"""Unit tests for CV document extraction"""

import io
import zipfile

import pytest
from reportlab.pdfgen import canvas

from screener.app.core.exceptions import CorruptDocumentException, UnsupportedFormatException
from screener.app.schemas.cv import CvEntities
from screener.parsing.document_extractor import DocumentExtractor
from screener.parsing.entity_extractor import KeywordEntityExtractor
from screener.parsing.text_extractor import TextExtractor
from tests.conftest import make_docx_bytes


class TestDocumentExtractor:
    """Format resolution and extraction results"""
    
    @pytest.fixture
    def extractor(self):
        return DocumentExtractor()
    
    def test_extract_pdf(self, extractor, sample_pdf):
        cv = extractor.extract(sample_pdf, "pdf", file_name="jane.pdf", mime_type="application/pdf")
        
        assert "Jane Doe" in cv.text
        assert cv.meta.file_type == "pdf"
        assert cv.meta.pages == 1
        assert cv.meta.size == len(sample_pdf)
        assert cv.meta.file_name == "jane.pdf"
        assert cv.entities.email == "jane.doe@example.com"
    
    def test_extract_docx(self, extractor, sample_docx):
        cv = extractor.extract(sample_docx, "cvs/cand-1/jane.docx")
        
        assert "Senior Software Engineer" in cv.text
        assert cv.meta.file_type == "docx"
        assert cv.meta.pages is None
        assert "Python" in cv.entities.skills
    
    def test_docx_tables_are_extracted(self, extractor):
        from docx import Document
        
        doc = Document()
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Kubernetes"
        table.rows[0].cells[1].text = "3 years"
        buffer = io.BytesIO()
        doc.save(buffer)
        
        cv = extractor.extract(buffer.getvalue(), "docx")
        
        assert "Kubernetes" in cv.text
    
    @pytest.mark.parametrize("hint", ["pdf", ".pdf", "PDF", "upload.pdf", "application/pdf"])
    def test_pdf_hints(self, extractor, hint):
        assert extractor.detect_format(b"", hint) == "pdf"
    
    @pytest.mark.parametrize(
        "hint",
        ["docx", "resume.DOCX", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"],
    )
    def test_docx_hints(self, extractor, hint):
        assert extractor.detect_format(b"", hint) == "docx"
    
    @pytest.mark.parametrize("hint", ["doc", "resume.txt", "image/png", "rtf"])
    def test_unsupported_hint(self, extractor, sample_pdf, hint):
        with pytest.raises(UnsupportedFormatException):
            extractor.extract(sample_pdf, hint)
    
    def test_hint_wins_over_content(self, extractor, sample_pdf):
        # PDF bytes declared as DOCX are parsed as DOCX and fail
        with pytest.raises(CorruptDocumentException):
            extractor.extract(sample_pdf, "docx")
    
    def test_sniffs_pdf_without_hint(self, extractor, sample_pdf):
        assert extractor.extract(sample_pdf).meta.file_type == "pdf"
    
    def test_sniffs_docx_without_hint(self, extractor, sample_docx):
        assert extractor.extract(sample_docx).meta.file_type == "docx"
    
    def test_plain_zip_is_not_docx(self, extractor):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("readme.txt", "hello")
        
        with pytest.raises(UnsupportedFormatException):
            extractor.extract(buffer.getvalue())
    
    def test_unknown_content_without_hint(self, extractor):
        with pytest.raises(UnsupportedFormatException):
            extractor.extract(b"just some text")
    
    def test_corrupt_pdf(self, extractor):
        with pytest.raises(CorruptDocumentException):
            extractor.extract(b"%PDF-1.4 this is not really a pdf", "pdf")
    
    def test_corrupt_docx(self, extractor):
        with pytest.raises(CorruptDocumentException):
            extractor.extract(b"PK\x03\x04 broken archive", "docx")
    
    def test_empty_pdf_gives_empty_text(self, extractor):
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer)
        c.showPage()
        c.save()
        
        cv = extractor.extract(buffer.getvalue(), "pdf")
        
        assert cv.text == ""
        assert cv.entities == CvEntities()
    
    def test_entity_extractor_failure_is_not_fatal(self, sample_docx):
        class BrokenEntityExtractor:
            def extract(self, text):
                raise RuntimeError("model not loaded")
        
        cv = DocumentExtractor(entity_extractor=BrokenEntityExtractor()).extract(sample_docx, "docx")
        
        assert "Jane Doe" in cv.text
        assert cv.entities == CvEntities()


class TestTextExtractor:
    """Direct format extractors"""
    
    def test_pdf_page_count(self):
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer)
        for page in range(3):
            c.drawString(72, 750, f"Page {page + 1}")
            c.showPage()
        c.save()
        
        text, pages = TextExtractor.extract_from_pdf(buffer.getvalue())
        
        assert pages == 3
        assert "Page 3" in text
    
    def test_docx_skips_blank_paragraphs(self):
        text = TextExtractor.extract_from_docx(make_docx_bytes(["First", "   ", "Second"]))
        
        assert text == "First\nSecond"


class TestKeywordEntityExtractor:
    """Regex and dictionary entity extraction"""
    
    @pytest.fixture
    def extractor(self):
        return KeywordEntityExtractor()
    
    def test_contact_details(self, extractor):
        entities = extractor.extract("Reach me at john.smith@mail.co or +1 555-987-6543")
        
        assert entities.email == "john.smith@mail.co"
        assert "555-987-6543" in entities.phone
    
    def test_skills_are_case_insensitive(self, extractor):
        entities = extractor.extract("Worked with DOCKER, kubernetes and react daily")
        
        assert {"Docker", "Kubernetes", "React"} <= set(entities.skills)
    
    def test_languages(self, extractor):
        entities = extractor.extract("Languages: English (fluent), Japanese (basic)")
        
        assert entities.languages == ["English", "Japanese"]
    
    def test_experience_mentions(self, extractor):
        entities = extractor.extract("Over 7+ years of experience in backend work and 2 years experience in ML")
        
        assert len(entities.experience) == 2
        assert entities.experience[0].startswith("7")
    
    def test_education_mentions(self, extractor):
        entities = extractor.extract("Bachelor of Science in Physics.\nWorked at ACME.")
        
        assert entities.education == ["Bachelor of Science in Physics."]
    
    def test_empty_text(self, extractor):
        assert extractor.extract("") == CvEntities()
    
    def test_custom_dictionaries(self):
        extractor = KeywordEntityExtractor(skills=["COBOL"], languages=["Latin"])
        
        entities = extractor.extract("COBOL programmer, reads Latin and Python")
        
        assert entities.skills == ["COBOL"]
        assert entities.languages == ["Latin"]
