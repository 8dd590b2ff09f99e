"""CV document extraction orchestration"""

import io
import zipfile
from pathlib import PurePosixPath
from typing import Optional

from screener.app.core.logging import get_logger
from screener.app.core.exceptions import UnsupportedFormatException
from screener.app.schemas.cv import CvDocument, CvEntities, CvMeta
from screener.parsing.entity_extractor import EntityExtractor, KeywordEntityExtractor
from screener.parsing.text_extractor import TextExtractor

logger = get_logger(__name__)


class DocumentExtractor:
    """Turn raw CV bytes into text, entities and metadata"""
    
    SUPPORTED_FORMATS = ("pdf", "docx")
    
    MIME_TYPES = {
        "application/pdf": "pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    }
    
    def __init__(self, entity_extractor: EntityExtractor = None):
        self.text_extractor = TextExtractor()
        self.entity_extractor = entity_extractor or KeywordEntityExtractor()
    
    def detect_format(self, buffer: bytes, hinted_format: Optional[str] = None) -> str:
        """
        Resolve the file format
        
        The hint (extension, file name or MIME type) is authoritative. Content
        sniffing is only used when no hint is given.
        
        Raises:
            UnsupportedFormatException: If no supported format can be determined
        """
        if hinted_format:
            hint = hinted_format.strip().lower()
            if hint in self.MIME_TYPES:
                return self.MIME_TYPES[hint]
            suffix = PurePosixPath(hint).suffix or f".{hint.lstrip('.')}"
            fmt = suffix.lstrip(".")
            if fmt not in self.SUPPORTED_FORMATS:
                raise UnsupportedFormatException(
                    f"Unsupported file format: {fmt or hint}. Supported formats: {list(self.SUPPORTED_FORMATS)}",
                    details={"hinted_format": hinted_format}
                )
            return fmt
        
        sniffed = self._sniff(buffer)
        if not sniffed:
            raise UnsupportedFormatException("Could not determine file format from content")
        logger.info(f"No format hint given, sniffed content as {sniffed}")
        return sniffed
    
    @staticmethod
    def _sniff(buffer: bytes) -> Optional[str]:
        if buffer[:5] == b"%PDF-":
            return "pdf"
        if buffer[:4] == b"PK\x03\x04":
            try:
                with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
                    if "word/document.xml" in archive.namelist():
                        return "docx"
            except zipfile.BadZipFile:
                return None
        return None
    
    def extract(
        self,
        buffer: bytes,
        hinted_format: Optional[str] = None,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None
    ) -> CvDocument:
        """
        Extract text and entities from a CV
        
        Args:
            buffer: Raw file bytes
            hinted_format: Extension, file name or MIME type of the upload
            file_name: Original file name, kept in metadata
            mime_type: Original MIME type, kept in metadata
        
        Returns:
            CvDocument with text, entities and metadata
        
        Raises:
            UnsupportedFormatException: If the format is not PDF or DOCX
            CorruptDocumentException: If the bytes cannot be parsed
        """
        file_type = self.detect_format(buffer, hinted_format)
        
        pages = None
        if file_type == "pdf":
            text, pages = self.text_extractor.extract_from_pdf(buffer)
        else:
            text = self.text_extractor.extract_from_docx(buffer)
        
        try:
            entities = self.entity_extractor.extract(text)
        except Exception as e:
            logger.warning(f"Entity extraction failed, continuing without entities: {e}")
            entities = CvEntities()
        
        return CvDocument(
            text=text,
            entities=entities,
            meta=CvMeta(
                file_name=file_name,
                mime_type=mime_type,
                size=len(buffer),
                file_type=file_type,
                pages=pages,
            ),
        )
