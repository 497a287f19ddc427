"""文档文本提取。

按扩展名家族选择实现：
- PDF（.pdf）：pdfplumber，逐页提取文本并返回页数。
- 文字处理文档（.docx / .doc）：mammoth 提取纯文本。
- 纯文本（.txt / .md / .markdown / .text / .rst）：按 UTF-8 读取。
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import mammoth
import pdfplumber


PDF_EXTENSIONS = (".pdf",)
WORD_EXTENSIONS = (".docx", ".doc")
TEXT_EXTENSIONS = (".txt", ".md", ".markdown", ".text", ".rst")
SUPPORTED_EXTENSIONS = PDF_EXTENSIONS + WORD_EXTENSIONS + TEXT_EXTENSIONS


class UnsupportedDocumentError(ValueError):
    """扩展名不在支持列表中。"""


@dataclass
class ExtractedDocument:
    text: str
    page_count: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


def is_pdf_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(PDF_EXTENSIONS)


def is_word_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(WORD_EXTENSIONS)


def is_text_file(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(TEXT_EXTENSIONS)


def is_supported_document(path: Union[str, Path]) -> bool:
    return str(path).lower().endswith(SUPPORTED_EXTENSIONS)


def parse_pdf(path: Path) -> ExtractedDocument:
    texts = []
    with pdfplumber.open(path) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                texts.append(text)
        page_count = len(pdf.pages)
        info = dict(pdf.metadata or {})
    return ExtractedDocument(text="\n\n".join(texts), page_count=page_count, metadata={"info": info})


def parse_word(path: Path) -> ExtractedDocument:
    with open(path, "rb") as fh:
        result = mammoth.extract_raw_text(fh)
    return ExtractedDocument(
        text=result.value,
        metadata={"messages": [str(m) for m in result.messages]},
    )


def parse_text(path: Path) -> ExtractedDocument:
    return ExtractedDocument(text=path.read_text(encoding="utf-8"), metadata={"encoding": "utf-8"})


def extract_text(path: Union[str, Path]) -> ExtractedDocument:
    """读取文档并返回文本。

    Raises:
        FileNotFoundError: 路径不存在。
        UnsupportedDocumentError: 扩展名不受支持。
    """

    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"File not found: {resolved}")
    if is_pdf_file(resolved):
        return parse_pdf(resolved)
    if is_word_file(resolved):
        return parse_word(resolved)
    if is_text_file(resolved):
        return parse_text(resolved)
    raise UnsupportedDocumentError(
        f"Unsupported file type: {resolved.suffix}. Supported types: {', '.join(SUPPORTED_EXTENSIONS)}"
    )
