import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from zipfile import BadZipFile

from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from beanstalk.core.config import settings
from beanstalk.core.exceptions import (
    EmptyContentError, FileTooLargeError, UnsupportedFormatError, ValidationError
)
from beanstalk.core.logging import get_logger

logger = get_logger(__name__)

CONTENT_TYPES = {
    ".txt": "text/plain",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
}


@dataclass
class ExtractedDocument:
    content: str
    filename: str
    content_type: str


def file_extension(filename: str) -> str:
    return Path(filename or "").suffix.lower()


def validate_upload(size: int, filename: str) -> str:
    """Check size and extension before any parsing; returns the extension"""
    if size > settings.max_file_size:
        raise FileTooLargeError(
            "File too large",
            detail=f"Maximum size is {settings.max_file_size // (1024 * 1024)}MB, got {size} bytes",
        )

    extension = file_extension(filename)
    if extension == ".pdf":
        raise UnsupportedFormatError(
            "PDF files are not supported yet",
            detail="Please upload the transcript as a TXT or DOCX file",
        )
    if extension not in settings.allowed_file_types:
        raise UnsupportedFormatError(
            f"Unsupported file type '{extension or filename}'",
            detail=f"Accepted types: {', '.join(settings.allowed_file_types)}",
        )
    return extension


def _read_docx(path: Path) -> str:
    try:
        document = DocxDocument(str(path))
    except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as e:
        raise ValidationError("Failed to parse DOCX file", detail=str(e)) from e

    parts = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.append(" | ".join(cell.text for cell in row.cells))
    return "\n".join(parts)


def extract_text(file_bytes: bytes, filename: str) -> ExtractedDocument:
    """Convert an uploaded transcript into text.

    The bytes are parsed from a temporary directory that is removed whether
    parsing succeeds or fails.
    """
    extension = validate_upload(len(file_bytes), filename)
    start_time = time.time()

    with tempfile.TemporaryDirectory(prefix="beanstalk-upload-") as temp_dir:
        temp_path = Path(temp_dir) / f"upload{extension}"
        temp_path.write_bytes(file_bytes)

        if extension == ".docx":
            content = _read_docx(temp_path)
        else:
            # .txt and the tolerated .doc fallback
            content = temp_path.read_bytes().decode("utf-8", errors="replace")

    if not content.strip():
        raise EmptyContentError("File appears to be empty or unreadable", detail=filename)

    logger.info(
        "Text extracted",
        filename=filename,
        extension=extension,
        characters=len(content),
        duration=time.time() - start_time,
    )
    return ExtractedDocument(
        content=content.strip(),
        filename=filename,
        content_type=CONTENT_TYPES.get(extension, "text/plain"),
    )
