"""Provider fakes and sample documents shared by the tests."""

import json

from resumezen.core.errors import ProviderError
from resumezen.features.analysis.ai import AiCompletion
from resumezen.features.analysis.ocr import OcrResult
from resumezen.models.upload import PDF, StoredDocument, UploadedDocument

SAMPLE_RESUME_TEXT = """Jane Doe
jane.doe@example.com | +1 415 555 0134 | San Francisco, CA | linkedin.com/in/janedoe

Summary
Backend engineer with 6 years of experience building payment and data platforms.

Work Experience
Senior Software Engineer, Acme Payments (2020 - Present)
- Responsible for the settlement service handling 2M transactions per day
- Developed an idempotent ledger API in Python and PostgreSQL
- Managed a team of four engineers

Software Engineer, DataWorks (2017 - 2020)
- Developed ETL pipelines and reporting dashboards

Education
Bachelor of Science in Computer Science, State University, 2017

Skills
Python, PostgreSQL, FastAPI, Docker, Kubernetes, communication, mentoring

Certifications
AWS Certified Solutions Architect
"""

INVOICE_TEXT = """TAX INVOICE
Invoice #10023
Bill To: Widget Traders Pvt Ltd
Item            Qty   Price
Steel bolts     400   1,200.00
Subtotal                1,200.00
GST 18%                   216.00
Amount Due              1,416.00
Payment terms: 30 days. Thank you for your business.
"""

SAMPLE_STRUCTURED = {
    "contactInformation": {
        "name": "Jane Doe",
        "email": "jane.doe@example.com",
        "phone": "+1 415 555 0134",
        "location": "San Francisco, CA",
        "linkedin": "linkedin.com/in/janedoe",
    },
    "skills": {
        "technical": ["Python", "PostgreSQL", "FastAPI", "Docker"],
        "soft": ["Communication", "Mentoring"],
    },
    "workExperience": [
        {
            "company": "Acme Payments",
            "position": "Senior Software Engineer",
            "duration": "2020 - Present",
            "responsibilities": ["Settlement service", "Ledger API"],
            "achievements": ["2M transactions per day"],
        }
    ],
    "education": [
        {
            "institution": "State University",
            "degree": "Bachelor of Science",
            "field": "Computer Science",
            "graduationDate": "2017",
        }
    ],
    "certifications": ["AWS Certified Solutions Architect"],
    "summary": "Backend engineer with 6 years of experience.",
    "analysis": {
        "strengths": ["Quantified impact", "Clear structure"],
        "areasForImprovement": ["Add a projects section"],
        "keywords": ["Python", "PostgreSQL", "FastAPI"],
        "atsScore": 82,
    },
}

INVOICE_STRUCTURED = {
    "contactInformation": {"name": None, "email": None},
    "skills": [],
    "summary": "An invoice for steel bolts.",
    "analysis": {"atsScore": 5},
}


def pdf_bytes(size: int = 2048) -> bytes:
    """A byte string of exactly size bytes that passes the PDF magic check."""
    header = b"%PDF-1.7\n"
    return header + b"0" * max(0, size - len(header))


def make_pdf(size: int = 2048, filename: str = "resume.pdf") -> UploadedDocument:
    return UploadedDocument(filename=filename, mime_type=PDF, content=pdf_bytes(size))


class FakeStorage:
    def __init__(self, url: str = "https://res.cloudinary.com/demo/raw/upload/resumes/resume.pdf", error=None):
        self.url = url
        self.error = error
        self.uploads = []

    def upload(self, document):
        self.uploads.append(document)
        if self.error:
            raise self.error
        return StoredDocument(url=self.url, public_id="resumes/resume", format="pdf", size=document.size)


class FakeOcr:
    def __init__(self, text: str = SAMPLE_RESUME_TEXT, error=None):
        self.text = text
        self.error = error
        self.calls = []

    def extract(self, url, options=None):
        self.calls.append((url, options))
        if self.error:
            raise self.error
        return OcrResult(text=self.text, metadata={"exitCode": 1, "pageCount": 1})


class FakeAiClient:
    def __init__(self, data=None, content=None, error=None, model: str = "meta-llama/llama-4-maverick:free"):
        self.data = SAMPLE_STRUCTURED if data is None else data
        self.content = content
        self.error = error
        self.model = model
        self.calls = []

    def factory(self, model=None):
        if model:
            self.model = model
        return self

    def structure(self, resume_text):
        self.calls.append(resume_text)
        if self.error:
            raise self.error
        content = self.content if self.content is not None else json.dumps(self.data)
        return AiCompletion(model=self.model, content=content, data=self.data)


def ocr_failure(message: str = "E301: unable to download file") -> ProviderError:
    return ProviderError("We couldn't read text from your document. Please try again.", provider="ocr", technical_detail=message)


class FakeMessage:
    def __init__(self, content):
        self.content = content


class FakeChoice:
    def __init__(self, content):
        self.message = FakeMessage(content)


class FakeCompletion:
    def __init__(self, content):
        self.choices = [FakeChoice(content)]


class FakeCompletions:
    def __init__(self, content, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return FakeCompletion(self.content)


class FakeChat:
    def __init__(self, completions):
        self.completions = completions


class FakeGroq:
    """Stands in for groq.Groq: chat.completions.create(...) -> completion."""

    def __init__(self, content: str = "", error=None):
        self.chat = FakeChat(FakeCompletions(content, error))
