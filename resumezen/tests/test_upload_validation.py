import pytest

from resumezen.core.errors import ValidationError
from resumezen.features.uploads.validation import (
    check_upload,
    general_upload_policy,
    quick_upload_policy,
    validate_upload,
)
from resumezen.models.upload import DOC, DOCX, PDF, UploadedDocument
from resumezen.tests.mocks import make_pdf

MB = 1024 * 1024


def test_general_accepts_exactly_five_megabytes():
    doc = make_pdf(5 * MB)
    assert check_upload(doc, general_upload_policy()) is None
    assert validate_upload(doc, general_upload_policy()) is doc


def test_general_rejects_one_byte_over():
    with pytest.raises(ValidationError) as exc:
        validate_upload(make_pdf(5 * MB + 1), general_upload_policy())
    assert exc.value.code == "file_too_large"
    assert exc.value.status_code == 413


def test_quick_upload_ceiling_is_one_megabyte():
    policy = quick_upload_policy()
    assert check_upload(make_pdf(MB), policy) is None
    assert "1MB" in check_upload(make_pdf(MB + 1), policy)


def test_general_accepts_word_documents():
    docx = UploadedDocument("cv.docx", DOCX, b"PK\x03\x04" + b"x" * 100)
    doc = UploadedDocument("cv.doc", DOC, b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"x" * 100)
    assert check_upload(docx, general_upload_policy()) is None
    assert check_upload(doc, general_upload_policy()) is None


def test_quick_upload_rejects_docx():
    docx = UploadedDocument("cv.docx", DOCX, b"PK\x03\x04" + b"x" * 100)
    with pytest.raises(ValidationError) as exc:
        validate_upload(docx, quick_upload_policy())
    assert exc.value.code == "unsupported_file_type"
    assert exc.value.status_code == 400


@pytest.mark.parametrize("mime", ["image/png", "text/plain", ""])
def test_unsupported_types_rejected(mime):
    doc = UploadedDocument("cv.png", mime, b"%PDF-1.4 whatever")
    with pytest.raises(ValidationError) as exc:
        validate_upload(doc, general_upload_policy())
    assert exc.value.code == "unsupported_file_type"


def test_empty_file_rejected():
    with pytest.raises(ValidationError) as exc:
        validate_upload(UploadedDocument("cv.pdf", PDF, b""), general_upload_policy())
    assert exc.value.code == "empty_file"


def test_pdf_without_magic_bytes_rejected():
    fake = UploadedDocument("cv.pdf", PDF, b"<html>not a pdf</html>")
    with pytest.raises(ValidationError) as exc:
        validate_upload(fake, general_upload_policy())
    assert exc.value.code == "invalid_file_content"


def test_mime_parameters_ignored():
    doc = UploadedDocument("cv.pdf", "Application/PDF; charset=binary", b"%PDF-1.4 x")
    assert check_upload(doc, quick_upload_policy()) is None


def test_ceiling_follows_settings(monkeypatch):
    from resumezen.core.config import settings

    monkeypatch.setattr(settings, "QUICK_UPLOAD_MAX_BYTES", 100)
    assert check_upload(make_pdf(100), quick_upload_policy()) is None
    assert check_upload(make_pdf(101), quick_upload_policy()) is not None
