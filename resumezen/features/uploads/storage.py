"""
Object storage for uploaded documents.

Defines the storage protocol and the Cloudinary implementation (the
cloudinary SDK uploader, resource_type "auto").
"""

import io
import logging
from typing import Callable, Optional, Protocol

import cloudinary.exceptions
import cloudinary.uploader

from resumezen.core.config import settings
from resumezen.core.errors import ProviderError
from resumezen.core.metrics import provider_calls_total
from resumezen.models.upload import StoredDocument, UploadedDocument

logger = logging.getLogger("resumezen")

STORAGE_FAILED_MESSAGE = "We couldn't upload your file. Please try again."


class ObjectStorage(Protocol):
    """
    Protocol for object stores.

    Implementations must return a publicly fetchable URL for the OCR
    provider and raise ProviderError(provider="storage") on failure.
    """

    def upload(self, document: UploadedDocument) -> StoredDocument:
        ...


def _failed(detail: str, status: str = "error", status_code: Optional[int] = None) -> ProviderError:
    provider_calls_total.inc(labels={"provider": "storage", "status": status})
    message = "The upload took too long. Please try again." if status == "timeout" else STORAGE_FAILED_MESSAGE
    return ProviderError(message, provider="storage", status_code=status_code, technical_detail=detail)


class CloudinaryStorage:
    """Cloudinary upload client over the SDK uploader."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        folder: str = "resumes",
        timeout: float = 60.0,
        upload_fn: Optional[Callable[..., dict]] = None,
    ):
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.folder = folder
        self.timeout = timeout
        self._upload_fn = upload_fn

    @classmethod
    def from_settings(cls) -> "CloudinaryStorage":
        return cls(
            cloud_name=settings.CLOUDINARY_CLOUD_NAME or "",
            api_key=settings.CLOUDINARY_API_KEY or "",
            api_secret=settings.CLOUDINARY_API_SECRET or "",
            folder=settings.CLOUDINARY_FOLDER,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def upload(self, document: UploadedDocument) -> StoredDocument:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise ProviderError(
                STORAGE_FAILED_MESSAGE,
                provider="storage",
                status_code=503,
                technical_detail="Cloudinary credentials are not configured",
            )

        upload_fn = self._upload_fn or cloudinary.uploader.upload
        try:
            body = upload_fn(
                io.BytesIO(document.content),
                filename=document.filename,
                resource_type="auto",
                folder=self.folder,
                use_filename=True,
                unique_filename=True,
                cloud_name=self.cloud_name,
                api_key=self.api_key,
                api_secret=self.api_secret,
                timeout=self.timeout,
            )
        except cloudinary.exceptions.Error as e:
            # The SDK folds transport errors (urllib3 timeouts included) into its own Error
            if "timed out" in str(e).lower():
                raise _failed(str(e) or "storage timeout", status="timeout", status_code=504)
            raise _failed(f"Cloudinary {type(e).__name__}: {str(e)[:300]}")

        if not isinstance(body, dict):
            raise _failed(f"Cloudinary returned {type(body).__name__}, expected an object")
        url = body.get("secure_url")
        public_id = body.get("public_id")
        if not url or not public_id:
            raise _failed(f"Cloudinary response missing secure_url/public_id: {sorted(body)[:10]}")

        try:
            size = int(body.get("bytes") or document.size)
        except (TypeError, ValueError):
            size = document.size

        provider_calls_total.inc(labels={"provider": "storage", "status": "ok"})
        logger.info(f"[storage] uploaded public_id={public_id} bytes={size}")
        return StoredDocument(
            url=url,
            public_id=public_id,
            format=body.get("format") or document.extension or "pdf",
            size=size,
        )
