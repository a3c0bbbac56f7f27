"""Prompts and sampling settings for resume structuring, per model family."""

DEFAULT_MODEL = "meta-llama/llama-4-maverick:free"

FREE_MODELS = [
    "meta-llama/llama-4-maverick:free",
    "deepseek/deepseek-v3-base:free",
    "mistralai/mistral-small-3.1-24b-instruct:free",
]

MAX_TOKENS = 4000

BASE_SYSTEM_PROMPT = (
    "You are an expert resume analyst. Your task is to extract key information from resumes and provide "
    "professional insights and feedback. Analyze the resume text thoroughly and return a structured JSON "
    "response with extracted information and analysis. Focus on accuracy of information extraction and "
    "providing constructive, actionable feedback."
)

_FAMILY_SUFFIX = {
    "llama": (
        "Return your analysis in valid JSON format without any markdown formatting, explanations, or text "
        "outside the JSON structure."
    ),
    "deepseek": (
        "Return only valid, parseable JSON without explanations or preamble. Do not include markdown "
        "formatting or text outside the JSON object."
    ),
    "mistral": (
        "Return only the JSON object with no other text or explanations. The JSON should be correctly "
        "formatted and directly parseable."
    ),
    "gpt": (
        "Respond ONLY with valid, parseable JSON. Do not include any explanations, markdown formatting, or "
        "text outside the JSON structure."
    ),
    "gemini": (
        "Respond with valid, parseable JSON without any explanations or additional text. Do not use markdown "
        "code blocks."
    ),
}

_TEMPERATURES = {"llama": 0.3, "mistral": 0.4, "deepseek": 0.2}
DEFAULT_TEMPERATURE = 0.5

SIMPLE_USER_PROMPT = """Format the following resume text into a JSON object with these sections:
- contactInformation (name, email, phone, location)
- skills (technical and soft)
- workExperience (list of jobs with company, position, duration, responsibilities)
- education (list of degrees with institution, degree, field, graduationDate)
- certifications (list)
- summary (brief professional summary)
- analysis (strengths, areasForImprovement, keywords, and atsScore from 0-100)

Return only valid JSON with no other text.

Resume text:
{resume_text}
"""

FULL_USER_PROMPT = """Please analyze this resume and extract the following information in a structured JSON format:

{{
  "contactInformation": {{
    "name": "Full Name",
    "email": "email@example.com",
    "phone": "Phone number",
    "location": "City, State/Country",
    "linkedin": "LinkedIn URL (if present)"
  }},
  "skills": {{
    "technical": ["List of technical skills"],
    "soft": ["List of soft skills"]
  }},
  "workExperience": [
    {{
      "company": "Company name",
      "position": "Position title",
      "duration": "Employment period",
      "responsibilities": ["Key responsibilities"],
      "achievements": ["Notable achievements"]
    }}
  ],
  "education": [
    {{
      "institution": "Institution name",
      "degree": "Degree obtained",
      "field": "Field of study",
      "graduationDate": "Graduation date"
    }}
  ],
  "certifications": ["List of certifications"],
  "summary": "Brief professional summary extracted from the resume",
  "analysis": {{
    "strengths": ["2-5 resume strengths"],
    "areasForImprovement": ["2-5 suggested improvements"],
    "keywords": ["5-10 keywords likely to be important for ATS systems"],
    "atsScore": 85
  }}
}}

IMPORTANT GUIDELINES:
1. Use only information present in the resume; don't invent details
2. If a section has no information, use an empty array or null value
3. For the analysis section, be specific and constructive
4. atsScore is a number from 0 to 100
5. Return properly formatted JSON without any additional text

Here is the resume text extracted via OCR:

{resume_text}
"""


def model_family(model: str) -> str:
    model = (model or "").lower()
    for family in ("llama", "deepseek", "mistral", "claude", "gpt", "gemini"):
        if family in model:
            return family
    return "default"


def system_prompt(model: str) -> str:
    family = model_family(model)
    # claude shares the llama wording
    suffix = _FAMILY_SUFFIX.get("llama" if family == "claude" else family)
    return f"{BASE_SYSTEM_PROMPT}\n\n{suffix}" if suffix else BASE_SYSTEM_PROMPT


def user_prompt(resume_text: str, model: str) -> str:
    if model_family(model) in ("deepseek", "mistral"):
        return SIMPLE_USER_PROMPT.format(resume_text=resume_text)
    return FULL_USER_PROMPT.format(resume_text=resume_text)


def temperature_for(model: str) -> float:
    return _TEMPERATURES.get(model_family(model), DEFAULT_TEMPERATURE)
