from types import SimpleNamespace

import pytest

from legal_skill.documents import UnsupportedDocumentError, extract_text, is_supported_document
from legal_skill.documents import extractors


def test_text_file(tmp_path):
    f = tmp_path / "nda.md"
    f.write_text("# Mutual NDA\nTerm: 3 years", encoding="utf-8")
    doc = extract_text(f)
    assert "Term: 3 years" in doc.text
    assert doc.page_count is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError) as exc:
        extract_text(tmp_path / "missing.pdf")
    assert str(exc.value).startswith("File not found: ")


def test_unsupported_extension(tmp_path):
    f = tmp_path / "sheet.xlsx"
    f.write_bytes(b"x")
    assert not is_supported_document(f)
    with pytest.raises(UnsupportedDocumentError):
        extract_text(f)


def test_extension_match_is_case_insensitive():
    assert is_supported_document("CONTRACT.PDF")
    assert is_supported_document("notes.Markdown")
    assert is_supported_document("old.doc")


def test_pdf_pages_joined(tmp_path, monkeypatch):
    f = tmp_path / "msa.pdf"
    f.write_bytes(b"%PDF-1.4")

    class FakePdf:
        pages = [
            SimpleNamespace(extract_text=lambda: "Page one"),
            SimpleNamespace(extract_text=lambda: None),
            SimpleNamespace(extract_text=lambda: "Page three"),
        ]
        metadata = {"Title": "MSA"}

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

    monkeypatch.setattr(extractors.pdfplumber, "open", lambda path: FakePdf())
    doc = extract_text(f)
    assert doc.text == "Page one\n\nPage three"
    assert doc.page_count == 3
    assert doc.metadata["info"] == {"Title": "MSA"}


def test_word_document(tmp_path, monkeypatch):
    f = tmp_path / "sow.docx"
    f.write_bytes(b"PK")
    seen = {}

    def fake_extract(fh):
        seen["name"] = fh.name
        return SimpleNamespace(value="Statement of Work", messages=[])

    monkeypatch.setattr(extractors.mammoth, "extract_raw_text", fake_extract)
    doc = extract_text(f)
    assert doc.text == "Statement of Work"
    assert seen["name"].endswith("sow.docx")
