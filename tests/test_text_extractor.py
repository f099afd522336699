"""Tests for transcript upload validation and text extraction."""

import io
import tempfile

import pytest
from docx import Document

from beanstalk.core.config import settings
from beanstalk.core.exceptions import (
    EmptyContentError, FileTooLargeError, UnsupportedFormatError, ValidationError
)
from beanstalk.services.text_extractor import extract_text, file_extension, validate_upload


def docx_bytes(*paragraphs, table_rows=()):
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row, values in zip(table.rows, table_rows):
            for cell, value in zip(row.cells, values):
                cell.text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


class TestValidateUpload:
    """Size and extension checks run before any parsing."""

    def test_exactly_max_size_is_accepted(self):
        assert validate_upload(settings.max_file_size, "call.txt") == ".txt"

    def test_one_byte_over_is_rejected(self):
        with pytest.raises(FileTooLargeError):
            validate_upload(10 * 1024 * 1024 + 1, "call.txt")

    def test_too_large_is_a_validation_error(self):
        assert issubclass(FileTooLargeError, ValidationError)

    def test_pdf_has_specific_message(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            validate_upload(100, "notes.PDF")
        assert exc_info.value.message == "PDF files are not supported yet"

    def test_unknown_extension_rejected(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            validate_upload(100, "image.png")
        assert ".png" in exc_info.value.message

    def test_extension_is_case_insensitive(self):
        assert file_extension("Call.DOCX") == ".docx"
        assert file_extension("no-extension") == ""


class TestExtractText:
    """Extraction of plain text and Word documents."""

    def test_plain_text(self):
        document = extract_text(b"  Broker: we need reminders.\n", "call.txt")
        assert document.content == "Broker: we need reminders."
        assert document.filename == "call.txt"
        assert document.content_type == "text/plain"

    def test_invalid_utf8_is_replaced_not_fatal(self):
        document = extract_text(b"caf\xe9 meeting notes", "call.txt")
        assert "meeting notes" in document.content

    def test_oversized_bytes_rejected(self):
        with pytest.raises(FileTooLargeError):
            extract_text(b"a" * (settings.max_file_size + 1), "call.txt")

    def test_pdf_not_processed_as_text(self):
        with pytest.raises(UnsupportedFormatError):
            extract_text(b"%PDF-1.4 plain looking text", "call.pdf")

    def test_blank_file_rejected(self):
        with pytest.raises(EmptyContentError):
            extract_text(b"   \n\t ", "call.txt")

    def test_docx_paragraphs_and_tables(self):
        payload = docx_bytes(
            "Interviewer: what do you need?",
            "Broker: a client list.",
            table_rows=[("Feature", "Priority"), ("Reminders", "High")],
        )
        document = extract_text(payload, "call.docx")
        assert "Broker: a client list." in document.content
        assert "Reminders | High" in document.content
        assert document.content_type.endswith("wordprocessingml.document")

    def test_corrupt_docx_is_validation_error(self):
        with pytest.raises(ValidationError):
            extract_text(b"definitely not a zip archive", "call.docx")

    def test_doc_falls_back_to_text_decoding(self):
        document = extract_text(b"Legacy transcript text", "call.doc")
        assert document.content == "Legacy transcript text"
        assert document.content_type == "application/msword"


class TestTemporaryFiles:
    """Uploads are staged in a scratch directory that never outlives the call."""

    @pytest.fixture
    def scratch(self, tmp_path, monkeypatch):
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
        return tmp_path

    def test_removed_after_success(self, scratch):
        extract_text(docx_bytes("Broker: a client list."), "call.docx")
        assert list(scratch.iterdir()) == []

    def test_removed_after_corrupt_docx(self, scratch):
        with pytest.raises(ValidationError):
            extract_text(b"definitely not a zip archive", "call.docx")
        assert list(scratch.iterdir()) == []

    def test_removed_after_blank_text(self, scratch):
        with pytest.raises(EmptyContentError):
            extract_text(b"   ", "call.txt")
        assert list(scratch.iterdir()) == []
