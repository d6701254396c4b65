from pathlib import Path

import pytest

from jobportal.core.extraction import (
    UploadedDocument,
    extract_text,
    extract_uploaded_document,
    temporary_upload,
)
from jobportal.errors import ExtractionFailed, UnsupportedFileType


def test_pdf_text_layer_is_extracted(pdf_resume: bytes) -> None:
    text = extract_text(pdf_resume, ".pdf")
    assert "seasoned clerk" in text


def test_docx_paragraphs_are_extracted(docx_resume: bytes) -> None:
    text = extract_text(docx_resume, ".DOCX")
    assert text.splitlines() == ["Resume of a seasoned clerk", "Filing and records management"]


@pytest.mark.parametrize("extension", [".txt", ".doc", ".png", ""])
def test_unsupported_extension_is_rejected(extension: str) -> None:
    with pytest.raises(UnsupportedFileType):
        extract_text(b"irrelevant", extension)


def test_unsupported_upload_leaves_no_file_behind(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedFileType):
        extract_uploaded_document(UploadedDocument("resume.txt", b"plain text"), tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_corrupt_upload_fails_and_temp_file_is_removed(tmp_path: Path) -> None:
    with pytest.raises(ExtractionFailed):
        extract_uploaded_document(UploadedDocument("resume.pdf", b"%PDF-garbage"), tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_successful_upload_removes_temp_file(tmp_path: Path, docx_resume: bytes) -> None:
    text = extract_uploaded_document(UploadedDocument("My Resume.docx", docx_resume), tmp_path)
    assert "seasoned clerk" in text
    assert list(tmp_path.iterdir()) == []


def test_temporary_upload_is_deleted_when_block_raises(tmp_path: Path) -> None:
    seen: list[Path] = []
    with pytest.raises(RuntimeError):
        with temporary_upload(b"data", suffix=".pdf", directory=tmp_path) as path:
            seen.append(path)
            assert path.read_bytes() == b"data"
            raise RuntimeError("boom")
    assert seen and not seen[0].exists()
