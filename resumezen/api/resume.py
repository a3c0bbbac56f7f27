"""
Resume upload, processing and history endpoints.

The handlers are plain (sync) functions: the pipeline makes blocking
provider calls and FastAPI runs them in its threadpool.
"""

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import Field

from resumezen.core.auth import get_current_user_id
from resumezen.features.analysis import history
from resumezen.features.analysis.ocr import OcrOptions
from resumezen.features.analysis.orchestrator import (
    AnalysisContext,
    AnalysisOutcome,
    AnalysisServices,
    analyze_upload,
    build_analysis_services,
    process_document,
    upload_document,
)
from resumezen.features.uploads.validation import general_upload_policy
from resumezen.models.base import CamelModel
from resumezen.models.upload import StoredDocument, UploadedDocument

router = APIRouter(prefix="/api/resume", tags=["resume"])


def get_analysis_services() -> AnalysisServices:
    """Provider bundle; tests override this dependency with fakes."""
    return build_analysis_services()


class OcrOptionsIn(CamelModel):
    language: str = "eng"
    is_table: bool = True
    engine: Literal[1, 2, 3] = 2
    scale: bool = True
    detect_orientation: bool = False

    def to_options(self) -> OcrOptions:
        return OcrOptions(
            language=self.language,
            is_table=self.is_table,
            engine=self.engine,
            scale=self.scale,
            detect_orientation=self.detect_orientation,
        )


class ProcessRequest(CamelModel):
    url: str = Field(..., min_length=1)
    ocr_options: OcrOptionsIn = OcrOptionsIn()
    ai_model: Optional[str] = None


def _read_upload(file: UploadFile) -> UploadedDocument:
    return UploadedDocument(
        filename=file.filename or "resume",
        mime_type=file.content_type or "",
        content=file.file.read(),
    )


def _outcome_payload(outcome: AnalysisOutcome) -> Dict[str, Any]:
    return {
        "extraction": {"text": outcome.extraction.text, "metadata": outcome.extraction.metadata},
        "analysis": {"structured": outcome.structured.model_dump(by_alias=True, mode="json")},
        "resumeAnalysisId": outcome.record.analysis_id,
        "creditsLeft": outcome.credits.credits_left,
        "isUnlimited": outcome.credits.is_unlimited,
    }


@router.post("/upload", response_model=StoredDocument)
def post_upload(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    services: AnalysisServices = Depends(get_analysis_services),
):
    """Store a PDF/DOCX/DOC (5 MB max) and return its URL. No credit is used."""
    ctx = AnalysisContext(user_id=user_id)
    return upload_document(ctx, _read_upload(file), services, general_upload_policy())


@router.post("/process")
def post_process(
    body: ProcessRequest,
    user_id: str = Depends(get_current_user_id),
    services: AnalysisServices = Depends(get_analysis_services),
):
    ctx = AnalysisContext(user_id=user_id)
    outcome = process_document(
        ctx,
        body.url,
        services,
        ocr_options=body.ocr_options.to_options(),
        ai_model=body.ai_model,
    )
    return _outcome_payload(outcome)


@router.post("/analyze")
def post_analyze(
    file: UploadFile = File(...),
    ai_model: Optional[str] = Form(None, alias="aiModel"),
    user_id: str = Depends(get_current_user_id),
    services: AnalysisServices = Depends(get_analysis_services),
):
    """Dashboard quick upload: PDF up to 1 MB, uploaded and analyzed in one call."""
    ctx = AnalysisContext(user_id=user_id)
    outcome = analyze_upload(ctx, _read_upload(file), services, ai_model=ai_model)
    payload = _outcome_payload(outcome)
    payload["url"] = outcome.record.resume_url
    return payload


@router.get("/history")
def get_history(
    limit: int = Query(50, ge=1, le=history.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
):
    records = history.list_by_user(user_id, limit=limit, offset=offset)
    return {
        "items": [record.model_dump(by_alias=True, mode="json") for record in records],
        "total": history.count_by_user(user_id),
        "limit": limit,
        "offset": offset,
    }


@router.get("/history/{analysis_id}")
def get_history_item(analysis_id: str, user_id: str = Depends(get_current_user_id)):
    return history.get_analysis(analysis_id, user_id).model_dump(by_alias=True, mode="json")
