"""
OCR.space client.

The stored document's URL is handed to OCR.space, which fetches it itself;
no bytes are downloaded here. One attempt per call, bounded by the
provider timeout.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

from resumezen.core.config import settings
from resumezen.core.errors import ProviderError, ValidationError
from resumezen.core.metrics import provider_calls_total

logger = logging.getLogger("resumezen")

OCR_FAILED_MESSAGE = "We couldn't read text from your document. Please try again."
VALID_ENGINES = (1, 2, 3)


@dataclass(frozen=True)
class OcrOptions:
    language: str = "eng"
    is_table: bool = True
    engine: int = 2
    scale: bool = True
    detect_orientation: bool = False

    def __post_init__(self):
        if self.engine not in VALID_ENGINES:
            raise ValidationError(
                f"OCR engine must be one of {', '.join(str(e) for e in VALID_ENGINES)}.",
                technical_detail=f"engine={self.engine!r}",
            )

    def as_form(self) -> Dict[str, str]:
        return {
            "language": self.language,
            "isTable": str(self.is_table).lower(),
            "OCREngine": str(self.engine),
            "scale": str(self.scale).lower(),
            "detectOrientation": str(self.detect_orientation).lower(),
            "isCreateSearchablePdf": "true",
            "isSearchablePdfHideTextLayer": "false",
        }


@dataclass
class OcrResult:
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class OcrClient(Protocol):
    def extract(self, url: str, options: OcrOptions) -> OcrResult:
        ...


def _error_text(payload: Dict[str, Any]) -> str:
    message = payload.get("ErrorMessage") or payload.get("ErrorDetails") or "unknown OCR error"
    if isinstance(message, list):
        message = "; ".join(str(m) for m in message)
    return str(message)


def format_ocr_payload(payload: Dict[str, Any]) -> OcrResult:
    """Join ParsedText across pages and collect metadata.

    Raises ProviderError when OCR.space reports an error or yields no text.
    """
    if payload.get("IsErroredOnProcessing"):
        raise ProviderError(OCR_FAILED_MESSAGE, provider="ocr", technical_detail=_error_text(payload))

    pages = payload.get("ParsedResults") or []
    text = "\n".join((page.get("ParsedText") or "") for page in pages).strip()
    if not text:
        raise ProviderError(
            "No text could be extracted from your document. Is it a scanned image or empty?",
            provider="ocr",
            technical_detail="OCR returned no text",
        )

    metadata = {
        "exitCode": payload.get("OCRExitCode"),
        "processingTimeInMs": payload.get("ProcessingTimeInMilliseconds"),
        "ocrEngine": payload.get("OCREngine") or None,
        "pageCount": len(pages),
        "searchablePdfUrl": payload.get("SearchablePDFURL") or None,
    }
    return OcrResult(text=text, metadata=metadata)


class OcrSpaceClient:
    def __init__(
        self,
        api_key: str,
        *,
        url: str = "https://api.ocr.space/parse/image",
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls) -> "OcrSpaceClient":
        return cls(
            api_key=settings.OCR_SPACE_API_KEY or "",
            url=settings.OCR_SPACE_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )

    def _post(self, data: Dict[str, str]) -> httpx.Response:
        headers = {"apikey": self.api_key}
        if self._client is not None:
            return self._client.post(self.url, data=data, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.url, data=data, headers=headers)

    def extract(self, url: str, options: Optional[OcrOptions] = None) -> OcrResult:
        if not self.api_key:
            raise ProviderError(
                OCR_FAILED_MESSAGE,
                provider="ocr",
                status_code=503,
                technical_detail="OCR_SPACE_API_KEY is not configured",
            )
        options = options or OcrOptions()
        data = dict(options.as_form(), url=url)

        logger.info(
            f"[ocr] extracting engine={options.engine} language={options.language} table={options.is_table}"
        )
        started = time.perf_counter()
        try:
            response = self._post(data)
        except httpx.TimeoutException as e:
            provider_calls_total.inc(labels={"provider": "ocr", "status": "timeout"})
            raise ProviderError(
                "Text extraction took too long. Please try again.",
                provider="ocr",
                status_code=504,
                technical_detail=str(e) or "ocr timeout",
            )
        except httpx.HTTPError as e:
            provider_calls_total.inc(labels={"provider": "ocr", "status": "error"})
            raise ProviderError(OCR_FAILED_MESSAGE, provider="ocr", technical_detail=str(e))

        if response.status_code >= 400:
            provider_calls_total.inc(labels={"provider": "ocr", "status": "error"})
            raise ProviderError(
                OCR_FAILED_MESSAGE,
                provider="ocr",
                technical_detail=f"OCR.space HTTP {response.status_code}: {response.text[:300]}",
            )

        try:
            payload = response.json()
        except ValueError:
            provider_calls_total.inc(labels={"provider": "ocr", "status": "error"})
            raise ProviderError(OCR_FAILED_MESSAGE, provider="ocr", technical_detail="OCR.space returned non-JSON body")

        try:
            result = format_ocr_payload(payload)
        except ProviderError:
            provider_calls_total.inc(labels={"provider": "ocr", "status": "error"})
            raise

        provider_calls_total.inc(labels={"provider": "ocr", "status": "ok"})
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"[ocr] extracted chars={len(result.text)} pages={result.metadata['pageCount']} ms={elapsed_ms}")
        return result
