from resumezen.features.analysis.validator import ResumeValidator
from resumezen.models.analysis import StructuredResume
from resumezen.tests.mocks import INVOICE_STRUCTURED, INVOICE_TEXT, SAMPLE_RESUME_TEXT, SAMPLE_STRUCTURED


def test_resume_scores_high():
    details = ResumeValidator(min_score=40).validate(
        SAMPLE_RESUME_TEXT, StructuredResume.from_provider(SAMPLE_STRUCTURED)
    )
    assert details.is_resume
    assert 40 <= details.score <= 100
    assert any("resume keywords" in r for r in details.reasons)


def test_invoice_rejected():
    details = ResumeValidator(min_score=40).validate(
        INVOICE_TEXT, StructuredResume.from_provider(INVOICE_STRUCTURED)
    )
    assert not details.is_resume
    assert details.score == 0
    assert any("invoice" in r for r in details.reasons)


def test_text_only_resume_still_passes():
    details = ResumeValidator(min_score=40).validate(SAMPLE_RESUME_TEXT)
    assert details.is_resume


def test_empty_text_is_not_a_resume():
    details = ResumeValidator(min_score=40).validate("")
    assert not details.is_resume
    assert "very little text extracted" in details.reasons


def test_threshold_is_configurable():
    text = "Skills: Python. Education: none listed."
    assert ResumeValidator(min_score=10).validate(text).is_resume
    assert not ResumeValidator(min_score=90).validate(text).is_resume


def test_details_serialize_camel_case():
    payload = ResumeValidator(min_score=40).validate(INVOICE_TEXT).model_dump(by_alias=True)
    assert set(payload) == {"isResume", "score", "reasons"}
