"""
Upload gate: file type and size checks before anything leaves the service.

Two entry points, one ceiling each:
- GENERAL_UPLOAD: generic uploader, PDF/DOCX/DOC up to UPLOAD_MAX_BYTES (5 MB)
- QUICK_UPLOAD: dashboard quick upload, PDF only up to QUICK_UPLOAD_MAX_BYTES (1 MB)

Rejection is terminal for the attempt; nothing is retried.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional

from resumezen.core.config import settings
from resumezen.core.errors import ValidationError
from resumezen.models.upload import DOC, DOCX, PDF, UploadedDocument

TYPE_NAMES = {PDF: "PDF", DOCX: "DOCX", DOC: "DOC"}

# Leading bytes per type; DOCX is a zip container, DOC an OLE2 compound file
_MAGIC = {
    PDF: (b"%PDF-",),
    DOCX: (b"PK\x03\x04",),
    DOC: (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
}


@dataclass(frozen=True)
class UploadPolicy:
    name: str
    allowed_types: FrozenSet[str]
    max_bytes: int

    def describe_types(self) -> str:
        return ", ".join(sorted(TYPE_NAMES[t] for t in self.allowed_types))


def _megabytes(n: int) -> str:
    mb = n / (1024 * 1024)
    return f"{mb:g}MB"


def general_upload_policy() -> UploadPolicy:
    return UploadPolicy("general", frozenset({PDF, DOCX, DOC}), settings.UPLOAD_MAX_BYTES)


def quick_upload_policy() -> UploadPolicy:
    return UploadPolicy("quick", frozenset({PDF}), settings.QUICK_UPLOAD_MAX_BYTES)


def _normalize_mime(mime_type: Optional[str]) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def _rejection(document: UploadedDocument, policy: UploadPolicy):
    """Return (code, reason) for a rejected document, or None."""
    mime = _normalize_mime(document.mime_type)
    if mime not in policy.allowed_types:
        return "unsupported_file_type", f"Unsupported file type. Please upload a {policy.describe_types()} file."
    if document.size == 0:
        return "empty_file", "The selected file is empty."
    if document.size > policy.max_bytes:
        return "file_too_large", f"File size must be less than {_megabytes(policy.max_bytes)}."
    if not document.content.startswith(_MAGIC[mime]):
        return "invalid_file_content", f"The file does not look like a valid {TYPE_NAMES[mime]} document."
    return None


def check_upload(document: UploadedDocument, policy: UploadPolicy) -> Optional[str]:
    """Human-readable rejection reason, or None when the document is accepted."""
    rejection = _rejection(document, policy)
    return rejection[1] if rejection else None


def validate_upload(document: UploadedDocument, policy: UploadPolicy) -> UploadedDocument:
    """Return the document unchanged when accepted.

    Raises:
        ValidationError: with code unsupported_file_type, empty_file,
            file_too_large (HTTP 413) or invalid_file_content
    """
    rejection = _rejection(document, policy)
    if rejection is None:
        return document
    code, reason = rejection
    status = 413 if code == "file_too_large" else 400
    raise ValidationError(
        reason,
        code=code,
        status_code=status,
        technical_detail=f"policy={policy.name} mime={_normalize_mime(document.mime_type)!r} size={document.size}",
    )
