"""
resumezen/models/upload.py

Transient upload objects. Not persisted by the service; the object store
keeps the bytes.
"""

from dataclasses import dataclass, field

from resumezen.models.base import CamelModel

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"


@dataclass(frozen=True)
class UploadedDocument:
    filename: str
    mime_type: str
    content: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[1].lower()


class StoredDocument(CamelModel):
    """Where the object store put an uploaded document."""
    url: str
    public_id: str
    format: str
    size: int
