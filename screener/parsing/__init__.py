"""CV document parsing module"""

from screener.parsing.text_extractor import TextExtractor
from screener.parsing.entity_extractor import EntityExtractor, KeywordEntityExtractor
from screener.parsing.document_extractor import DocumentExtractor

__all__ = [
    'TextExtractor',
    'EntityExtractor',
    'KeywordEntityExtractor',
    'DocumentExtractor',
]
