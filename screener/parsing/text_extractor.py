"""Text extraction from CV file bytes"""

import io
import zipfile

import docx
import pypdf
from pypdf.errors import PyPdfError

from screener.app.core.logging import get_logger
from screener.app.core.exceptions import CorruptDocumentException

logger = get_logger(__name__)


class TextExtractor:
    """Extract text from PDF and DOCX buffers"""
    
    @staticmethod
    def extract_from_pdf(buffer: bytes) -> tuple[str, int]:
        """
        Extract text from a PDF buffer
        
        Args:
            buffer: Raw PDF bytes
        
        Returns:
            Tuple of (extracted text, page count)
        
        Raises:
            CorruptDocumentException: If the PDF cannot be read
        """
        try:
            pdf_reader = pypdf.PdfReader(io.BytesIO(buffer))
            
            if pdf_reader.is_encrypted:
                # Many CVs are "encrypted" with an empty user password
                if not pdf_reader.decrypt(""):
                    raise CorruptDocumentException("PDF file is encrypted and cannot be processed")
            
            text_parts = []
            for page in pdf_reader.pages:
                text = page.extract_text()
                if text:
                    text_parts.append(text)
            
            extracted_text = '\n'.join(text_parts)
            logger.info(f"Extracted {len(extracted_text)} characters from {len(pdf_reader.pages)} PDF pages")
            return extracted_text, len(pdf_reader.pages)
        
        except CorruptDocumentException:
            raise
        except PyPdfError as e:
            logger.error(f"PDF read error: {str(e)}")
            raise CorruptDocumentException(f"Failed to read PDF file: {str(e)}") from e
        except Exception as e:
            logger.error(f"PDF extraction error: {str(e)}")
            raise CorruptDocumentException(f"Failed to extract text from PDF: {str(e)}") from e
    
    @staticmethod
    def extract_from_docx(buffer: bytes) -> str:
        """
        Extract text from a DOCX buffer
        
        Args:
            buffer: Raw DOCX bytes
        
        Returns:
            Extracted text
        
        Raises:
            CorruptDocumentException: If the DOCX cannot be read
        """
        try:
            doc = docx.Document(io.BytesIO(buffer))
            
            text_parts = []
            
            for paragraph in doc.paragraphs:
                if paragraph.text.strip():
                    text_parts.append(paragraph.text)
            
            for table in doc.tables:
                for row in table.rows:
                    for cell in row.cells:
                        if cell.text.strip():
                            text_parts.append(cell.text)
            
            extracted_text = '\n'.join(text_parts)
            logger.info(f"Extracted {len(extracted_text)} characters from DOCX")
            return extracted_text
        
        except zipfile.BadZipFile as e:
            logger.error(f"DOCX is not a valid archive: {str(e)}")
            raise CorruptDocumentException(f"Failed to read DOCX file: {str(e)}") from e
        except Exception as e:
            logger.error(f"DOCX extraction error: {str(e)}")
            raise CorruptDocumentException(f"Failed to extract text from DOCX: {str(e)}") from e
