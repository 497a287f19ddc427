"""文档读取层：PDF / Word / 纯文本的文本提取。"""

from legal_skill.documents.extractors import (
    SUPPORTED_EXTENSIONS,
    ExtractedDocument,
    UnsupportedDocumentError,
    extract_text,
    is_supported_document,
)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "ExtractedDocument",
    "UnsupportedDocumentError",
    "extract_text",
    "is_supported_document",
]
