from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

import docx
from PyPDF2 import PdfReader

from jobportal.errors import ExtractionFailed, UnsupportedFileType

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".docx"})


@dataclass(slots=True)
class UploadedDocument:
    filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()


def extract_text(buffer: bytes, extension: str) -> str:
    extension = extension.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType("Unsupported file type. Only DOCX and PDF are supported.")

    try:
        if extension == ".docx":
            return extract_docx_text(buffer)
        return extract_pdf_text(buffer)
    except Exception as exc:
        raise ExtractionFailed(f"Failed to extract text from {extension} document: {exc}") from exc


def extract_pdf_text(buffer: bytes) -> str:
    reader = PdfReader(BytesIO(buffer))
    return "\n".join((page.extract_text() or "").strip() for page in reader.pages).strip()


def extract_docx_text(buffer: bytes) -> str:
    document = docx.Document(BytesIO(buffer))
    blocks = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            blocks.append("\t".join(cell.text for cell in row.cells))
    return "\n".join(block.strip() for block in blocks if block.strip())


@contextmanager
def temporary_upload(content: bytes, *, suffix: str, directory: Path | None = None) -> Iterator[Path]:
    """Back ``content`` with a temp file that is removed however the block exits."""
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(suffix=suffix, dir=directory)
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Failed to delete temporary upload %s", path)


def extract_uploaded_document(document: UploadedDocument, upload_dir: Path | None = None) -> str:
    extension = document.extension
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFileType(
            f"Unsupported file type '{extension or document.filename}'. Only DOCX and PDF are supported."
        )

    with temporary_upload(document.content, suffix=extension, directory=upload_dir) as path:
        text = extract_text(path.read_bytes(), extension)
    logger.debug("Extracted %d characters from %s", len(text), document.filename)
    return text


async def extract_uploaded_document_async(document: UploadedDocument, upload_dir: Path | None = None) -> str:
    return await asyncio.to_thread(extract_uploaded_document, document, upload_dir)
