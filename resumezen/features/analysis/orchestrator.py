"""
resumezen/features/analysis/orchestrator.py

Analysis pipeline for one resume submission.

    IDLE -> UPLOADING -> UPLOADED -> EXTRACTING -> STRUCTURING -> VALIDATING
         -> COMPLETED | REJECTED_AS_NON_RESUME | FAILED

Credit rules:
- eligibility is checked before any provider is called
- the credit is consumed right after structuring succeeds
- a non-resume verdict refunds that credit exactly once
- any failure after the consume also refunds it
Both credit calls carry the attempt id, so a replayed settlement is a no-op.

No step is retried; the user re-submits from IDLE.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Tuple
from uuid import uuid4

from resumezen.core.errors import NonResumeError, ProviderError
from resumezen.core.logging import get_request_id, log_event
from resumezen.core.metrics import analyses_in_flight, analyses_total
from resumezen.core.tracing import start_span
from resumezen.features.analysis import history
from resumezen.features.analysis.ai import AiClientFactory, get_ai_client
from resumezen.features.analysis.ocr import OcrClient, OcrOptions, OcrResult, OcrSpaceClient
from resumezen.features.analysis.validator import ResumeValidator
from resumezen.features.credits.service import CreditMutation, consume, refund, require_eligible
from resumezen.features.uploads.storage import CloudinaryStorage, ObjectStorage
from resumezen.features.uploads.validation import UploadPolicy, quick_upload_policy, validate_upload
from resumezen.models.analysis import AnalysisRecord, StructuredResume
from resumezen.models.base import ensure_utc, utc_now
from resumezen.models.upload import StoredDocument, UploadedDocument

logger = logging.getLogger("resumezen")

NON_RESUME_MESSAGE = (
    "This document doesn't look like a resume. Your credit has been refunded. "
    "Please upload your resume or CV."
)


class AnalysisState(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    EXTRACTING = "extracting"
    STRUCTURING = "structuring"
    VALIDATING = "validating"
    COMPLETED = "completed"
    REJECTED_AS_NON_RESUME = "rejected_as_non_resume"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {AnalysisState.COMPLETED, AnalysisState.REJECTED_AS_NON_RESUME, AnalysisState.FAILED}
)

_TRANSITIONS = {
    # processing a stored URL starts straight at EXTRACTING
    AnalysisState.IDLE: {AnalysisState.UPLOADING, AnalysisState.EXTRACTING, AnalysisState.FAILED},
    AnalysisState.UPLOADING: {AnalysisState.UPLOADED, AnalysisState.FAILED},
    AnalysisState.UPLOADED: {AnalysisState.EXTRACTING, AnalysisState.FAILED},
    AnalysisState.EXTRACTING: {AnalysisState.STRUCTURING, AnalysisState.FAILED},
    AnalysisState.STRUCTURING: {AnalysisState.VALIDATING, AnalysisState.FAILED},
    AnalysisState.VALIDATING: {
        AnalysisState.COMPLETED,
        AnalysisState.REJECTED_AS_NON_RESUME,
        AnalysisState.FAILED,
    },
}


@dataclass
class AnalysisContext:
    """State of one submission. Lives for a single request."""
    user_id: str
    attempt_id: str = field(default_factory=lambda: uuid4().hex)
    request_id: Optional[str] = field(default_factory=get_request_id)
    state: AnalysisState = AnalysisState.IDLE
    history: List[Tuple[AnalysisState, AnalysisState]] = field(default_factory=list)

    def transition(self, target: AnalysisState) -> None:
        if target not in _TRANSITIONS.get(self.state, set()):
            raise RuntimeError(f"Illegal analysis transition {self.state.value} -> {target.value}")
        self.history.append((self.state, target))
        log_event(
            "info",
            f"analysis.{target.value}",
            request_id=self.request_id,
            user_id=self.user_id,
            attempt_id=self.attempt_id,
            event_type="analysis.transition",
            extra={"from_state": self.state.value},
        )
        self.state = target

    def fail(self) -> None:
        if self.state not in TERMINAL_STATES:
            self.transition(AnalysisState.FAILED)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass
class AnalysisServices:
    storage: ObjectStorage
    ocr: OcrClient
    ai_factory: AiClientFactory
    validator: Any


def build_analysis_services() -> AnalysisServices:
    return AnalysisServices(
        storage=CloudinaryStorage.from_settings(),
        ocr=OcrSpaceClient.from_settings(),
        ai_factory=get_ai_client,
        validator=ResumeValidator(),
    )


@dataclass
class AnalysisOutcome:
    record: AnalysisRecord
    extraction: OcrResult
    structured: StructuredResume
    credits: CreditMutation


def upload_document(
    ctx: AnalysisContext,
    document: UploadedDocument,
    services: AnalysisServices,
    policy: UploadPolicy,
) -> StoredDocument:
    """Gate the document, then hand it to object storage."""
    try:
        validate_upload(document, policy)
        ctx.transition(AnalysisState.UPLOADING)
        with start_span("analysis.upload", {"attempt_id": ctx.attempt_id, "bytes": document.size}):
            stored = services.storage.upload(document)
        ctx.transition(AnalysisState.UPLOADED)
    except Exception:
        ctx.fail()
        raise
    return stored


def _refund_after_failure(ctx: AnalysisContext, user_plan_id: str) -> None:
    try:
        refund(user_plan_id, attempt_id=ctx.attempt_id)
    except Exception:
        # The original failure is what the caller sees
        logger.error(
            f"[analysis] refund after failure did not complete attempt={ctx.attempt_id}",
            exc_info=True,
            extra={"user_id": ctx.user_id, "user_plan_id": user_plan_id, "attempt_id": ctx.attempt_id},
        )


def process_document(
    ctx: AnalysisContext,
    url: str,
    services: AnalysisServices,
    *,
    ocr_options: Optional[OcrOptions] = None,
    ai_model: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AnalysisOutcome:
    """
    Extract, structure, validate and record one stored document.

    Raises:
        EligibilityError: no usable plan (before any provider call)
        ProviderError: OCR or AI failed, state FAILED, credit refunded if taken
        NonResumeError: not a resume, state REJECTED_AS_NON_RESUME, credit refunded
    """
    try:
        plan = require_eligible(ctx.user_id, now)
    except Exception:
        ctx.fail()
        raise

    consumed = False
    analyses_in_flight.inc()
    try:
        ctx.transition(AnalysisState.EXTRACTING)
        with start_span("analysis.extract", {"attempt_id": ctx.attempt_id}):
            extraction = services.ocr.extract(url, ocr_options or OcrOptions())

        ctx.transition(AnalysisState.STRUCTURING)
        ai_client = services.ai_factory(ai_model)
        with start_span("analysis.structure", {"attempt_id": ctx.attempt_id, "model": ai_client.model}):
            completion = ai_client.structure(extraction.text)
        try:
            structured = StructuredResume.from_provider(completion.data)
        except ValueError as e:
            raise ProviderError(
                "The AI returned an unreadable analysis. Please try again.",
                provider="ai",
                technical_detail=str(e),
            )

        credits = consume(plan.user_plan_id, attempt_id=ctx.attempt_id)
        consumed = True

        ctx.transition(AnalysisState.VALIDATING)
        with start_span("analysis.validate", {"attempt_id": ctx.attempt_id}):
            details = services.validator.validate(extraction.text, structured)

        if not details.is_resume:
            refund(plan.user_plan_id, attempt_id=ctx.attempt_id)
            consumed = False
            ctx.transition(AnalysisState.REJECTED_AS_NON_RESUME)
            raise NonResumeError(
                NON_RESUME_MESSAGE,
                validation_details=details.model_dump(by_alias=True),
                technical_detail=f"score={details.score}",
            )

        record = AnalysisRecord.from_structured(
            analysis_id=uuid4().hex,
            user_id=ctx.user_id,
            user_plan_id=plan.user_plan_id,
            resume_url=url,
            structured=structured,
            ai_model=completion.model,
            raw_response=completion.content,
            created_at=ensure_utc(now) if now else utc_now(),
        )
        history.append(record)
        ctx.transition(AnalysisState.COMPLETED)
    except NonResumeError:
        analyses_total.inc(labels={"outcome": "rejected"})
        raise
    except Exception:
        if consumed:
            _refund_after_failure(ctx, plan.user_plan_id)
        ctx.fail()
        analyses_total.inc(labels={"outcome": "failed"})
        raise
    finally:
        analyses_in_flight.dec()

    analyses_total.inc(labels={"outcome": "completed"})
    log_event(
        "info",
        "analysis.recorded",
        request_id=ctx.request_id,
        user_id=ctx.user_id,
        attempt_id=ctx.attempt_id,
        user_plan_id=plan.user_plan_id,
        event_type="analysis.completed",
        extra={"analysis_id": record.analysis_id, "ats_score": record.analysis.ats_score},
    )
    return AnalysisOutcome(record=record, extraction=extraction, structured=structured, credits=credits)


def analyze_upload(
    ctx: AnalysisContext,
    document: UploadedDocument,
    services: AnalysisServices,
    *,
    ocr_options: Optional[OcrOptions] = None,
    ai_model: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AnalysisOutcome:
    """Quick upload: PDF gate, eligibility, upload, then the full pipeline."""
    policy = quick_upload_policy()
    try:
        validate_upload(document, policy)
        require_eligible(ctx.user_id, now)
    except Exception:
        ctx.fail()
        raise
    stored = upload_document(ctx, document, services, policy)
    return process_document(ctx, stored.url, services, ocr_options=ocr_options, ai_model=ai_model, now=now)
