"""
Is-this-a-resume check.

Weighted phrase signals over the OCR text, plus signals from the
structured output (contact details, jobs, education, skills). Negative
signals cover invoices, receipts, academic papers and source code.
"""

import logging
import re
from typing import List, Optional, Tuple

from resumezen.core.config import settings
from resumezen.models.analysis import NA, StructuredResume, ValidationDetails

logger = logging.getLogger("resumezen")

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_PHONE_RE = re.compile(r"(\+\d{1,3}[ -]?)?\(?\d{3}\)?[ -]?\d{3}[ -]?\d{4}")


class ResumeValidator:
    RESUME_SIGNALS: List[Tuple[str, int]] = [
        ("linkedin.com", 6),
        ("github.com", 4),
        ("work experience", 8),
        ("professional experience", 8),
        ("employment history", 8),
        ("experience", 4),
        ("education", 8),
        ("skills", 6),
        ("technical skills", 4),
        ("certifications", 4),
        ("projects", 3),
        ("objective", 3),
        ("summary", 3),
        ("achievements", 3),
        ("bachelor", 4),
        ("master", 3),
        ("university", 4),
        ("degree", 3),
        ("responsible for", 3),
        ("developed", 2),
        ("managed", 2),
        ("proficient in", 3),
    ]

    NON_RESUME_SIGNALS: List[Tuple[str, int]] = [
        # invoices and receipts
        ("invoice", 10),
        ("receipt", 8),
        ("amount due", 10),
        ("bill to", 8),
        ("subtotal", 8),
        ("tax invoice", 10),
        ("payment terms", 6),
        # academic papers
        ("abstract", 6),
        ("bibliography", 8),
        ("literature review", 8),
        ("hypothesis", 6),
        ("methodology", 4),
        # source code and technical docs
        ("def ", 4),
        ("import ", 3),
        ("class {", 6),
        ("function(", 4),
        ("api endpoint", 4),
        ("requirements document", 8),
    ]

    STRUCTURE_WEIGHTS = {
        "email": 10,
        "phone": 6,
        "work_experience": 12,
        "education": 10,
        "skills": 8,
        "name": 4,
    }

    def __init__(self, min_score: Optional[int] = None):
        self.min_score = settings.RESUME_MIN_SCORE if min_score is None else min_score

    def _text_score(self, text: str, reasons: List[str]) -> int:
        lower = text.lower()
        positive = [(p, w) for p, w in self.RESUME_SIGNALS if p in lower]
        negative = [(p, w) for p, w in self.NON_RESUME_SIGNALS if p in lower]
        if positive:
            reasons.append("resume keywords: " + ", ".join(p for p, _ in positive))
        if negative:
            reasons.append("non-resume keywords: " + ", ".join(p.strip() for p, _ in negative))
        return sum(w for _, w in positive) - sum(w for _, w in negative)

    def _structure_score(self, text: str, structured: Optional[StructuredResume], reasons: List[str]) -> int:
        found = set()
        if _EMAIL_RE.search(text):
            found.add("email")
        if _PHONE_RE.search(text):
            found.add("phone")

        if structured is not None:
            contact = structured.contact_information
            if contact.email != NA:
                found.add("email")
            if contact.phone != NA:
                found.add("phone")
            if contact.name != NA:
                found.add("name")
            if any(job.company != NA or job.position != NA for job in structured.work_experience):
                found.add("work_experience")
            if any(edu.institution != NA or edu.degree != NA for edu in structured.education):
                found.add("education")
            if structured.skills.technical or structured.skills.soft:
                found.add("skills")

        missing = [k for k in self.STRUCTURE_WEIGHTS if k not in found]
        if found:
            reasons.append("found " + ", ".join(k for k in self.STRUCTURE_WEIGHTS if k in found).replace("_", " "))
        if missing:
            reasons.append("missing " + ", ".join(missing).replace("_", " "))
        return sum(self.STRUCTURE_WEIGHTS[k] for k in found)

    def validate(self, text: str, structured: Optional[StructuredResume] = None) -> ValidationDetails:
        text = text or ""
        reasons: List[str] = []
        if len(text.split()) < 30:
            reasons.append("very little text extracted")

        raw = self._text_score(text, reasons) + self._structure_score(text, structured, reasons)
        score = max(0, min(100, raw))
        is_resume = score >= self.min_score

        logger.info(f"[validator] score={score} min={self.min_score} is_resume={is_resume}")
        return ValidationDetails(is_resume=is_resume, score=score, reasons=reasons)
