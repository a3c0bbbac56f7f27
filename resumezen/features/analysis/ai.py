"""
AI structuring clients.

Model ids prefixed with "groq/" run on Groq through the groq SDK; every
other id goes to OpenRouter chat completions over httpx. Both return the
raw completion text and the parsed JSON object. There is no fabricated
fallback: an unusable completion is a ProviderError.
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

import groq
import httpx

from resumezen.core.config import settings
from resumezen.core.errors import ProviderError
from resumezen.core.metrics import provider_calls_total
from resumezen.features.analysis.prompts import (
    DEFAULT_MODEL,
    MAX_TOKENS,
    system_prompt,
    temperature_for,
    user_prompt,
)

logger = logging.getLogger("resumezen")

AI_FAILED_MESSAGE = "AI analysis failed. Please try again."
GROQ_PREFIX = "groq/"
APP_TITLE = "ResumeZen AI Analysis"

_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*|\s*```$")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


@dataclass
class AiCompletion:
    model: str
    content: str
    data: Dict[str, Any]


class AiClient(Protocol):
    model: str

    def structure(self, resume_text: str) -> AiCompletion:
        ...


def extract_first_json_object(text: str) -> Optional[str]:
    """First balanced {...} in text, respecting string literals and escapes."""
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if ch == "\\":
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def repair_json(text: str) -> str:
    repaired = text.strip()
    repaired = repaired.replace("“", '"').replace("”", '"').replace("’", "'")
    return _TRAILING_COMMA_RE.sub(r"\1", repaired)


def parse_model_json(content: str) -> Dict[str, Any]:
    """Parse a model completion into a JSON object.

    Raises:
        ValueError: no JSON object can be recovered
    """
    if not content or not content.strip():
        raise ValueError("empty completion")

    cleaned = _FENCE_RE.sub("", content.strip())
    candidates = [cleaned]
    extracted = extract_first_json_object(cleaned)
    if extracted and extracted != cleaned:
        candidates.append(extracted)

    for candidate in candidates:
        for text in (candidate, repair_json(candidate)):
            try:
                data = json.loads(text)
            except json.JSONDecodeError:
                continue
            if isinstance(data, dict):
                return data
    raise ValueError("completion does not contain a JSON object")


def build_messages(resume_text: str, model: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": system_prompt(model)},
        {"role": "user", "content": user_prompt(resume_text, model)},
    ]


def _completion(provider: str, model: str, content: Optional[str]) -> AiCompletion:
    if not content:
        provider_calls_total.inc(labels={"provider": provider, "status": "error"})
        raise ProviderError(AI_FAILED_MESSAGE, provider="ai", technical_detail=f"{provider} returned no content")
    try:
        data = parse_model_json(content)
    except ValueError as e:
        provider_calls_total.inc(labels={"provider": provider, "status": "error"})
        raise ProviderError(
            "The AI returned an unreadable analysis. Please try again or pick another model.",
            provider="ai",
            technical_detail=f"{e}: {content[:200]}",
        )
    provider_calls_total.inc(labels={"provider": provider, "status": "ok"})
    return AiCompletion(model=model, content=content, data=data)


class OpenRouterClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        referer: str = "https://resumezen.com",
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.referer = referer
        self.timeout = timeout
        self._client = client

    def _post(self, body: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return self._client.post(self.url, json=body, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.url, json=body, headers=headers)

    def structure(self, resume_text: str) -> AiCompletion:
        if not self.api_key:
            raise ProviderError(
                AI_FAILED_MESSAGE,
                provider="ai",
                status_code=503,
                technical_detail="OPENROUTER_API_KEY is not configured",
            )
        body = {
            "model": self.model,
            "messages": build_messages(resume_text, self.model),
            "temperature": temperature_for(self.model),
            "max_tokens": MAX_TOKENS,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": APP_TITLE,
        }

        logger.info(f"[ai] openrouter model={self.model} chars={len(resume_text)}")
        started = time.perf_counter()
        try:
            response = self._post(body, headers)
        except httpx.TimeoutException as e:
            provider_calls_total.inc(labels={"provider": "openrouter", "status": "timeout"})
            raise ProviderError(
                "AI analysis took too long. Please try again.",
                provider="ai",
                status_code=504,
                technical_detail=str(e) or "openrouter timeout",
            )
        except httpx.HTTPError as e:
            provider_calls_total.inc(labels={"provider": "openrouter", "status": "error"})
            raise ProviderError(AI_FAILED_MESSAGE, provider="ai", technical_detail=str(e))

        if response.status_code >= 400:
            provider_calls_total.inc(labels={"provider": "openrouter", "status": "error"})
            raise ProviderError(
                AI_FAILED_MESSAGE,
                provider="ai",
                technical_detail=f"OpenRouter HTTP {response.status_code}: {response.text[:300]}",
            )

        try:
            payload = response.json()
            content = payload["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            provider_calls_total.inc(labels={"provider": "openrouter", "status": "error"})
            raise ProviderError(
                AI_FAILED_MESSAGE,
                provider="ai",
                technical_detail=f"Unexpected OpenRouter response shape: {response.text[:300]}",
            )

        logger.info(f"[ai] openrouter completed ms={int((time.perf_counter() - started) * 1000)}")
        return _completion("openrouter", self.model, content)


class GroqClient:
    def __init__(self, api_key: str, model: str, *, timeout: float = 60.0, client: Any = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def groq_model(self) -> str:
        return self.model[len(GROQ_PREFIX):] if self.model.startswith(GROQ_PREFIX) else self.model

    def _sdk(self):
        if self._client is None:
            self._client = groq.Groq(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def structure(self, resume_text: str) -> AiCompletion:
        if not self.api_key and self._client is None:
            raise ProviderError(
                AI_FAILED_MESSAGE,
                provider="ai",
                status_code=503,
                technical_detail="GROQ_API_KEY is not configured",
            )

        logger.info(f"[ai] groq model={self.groq_model} chars={len(resume_text)}")
        try:
            completion = self._sdk().chat.completions.create(
                messages=build_messages(resume_text, self.groq_model),
                model=self.groq_model,
                temperature=temperature_for(self.groq_model),
                max_tokens=MAX_TOKENS,
            )
        except groq.APITimeoutError as e:
            provider_calls_total.inc(labels={"provider": "groq", "status": "timeout"})
            raise ProviderError(
                "AI analysis took too long. Please try again.",
                provider="ai",
                status_code=504,
                technical_detail=str(e) or "groq timeout",
            )
        except groq.APIError as e:
            provider_calls_total.inc(labels={"provider": "groq", "status": "error"})
            raise ProviderError(AI_FAILED_MESSAGE, provider="ai", technical_detail=str(e))

        content = completion.choices[0].message.content if completion.choices else None
        return _completion("groq", self.model, content)


def get_ai_client(model: Optional[str] = None) -> AiClient:
    """Client for a model id, configured from settings."""
    model = model or settings.DEFAULT_AI_MODEL or DEFAULT_MODEL
    if model.startswith(GROQ_PREFIX):
        return GroqClient(settings.GROQ_API_KEY or "", model, timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    return OpenRouterClient(
        settings.OPENROUTER_API_KEY or "",
        model,
        url=settings.OPENROUTER_URL,
        referer=settings.OPENROUTER_REFERER,
        timeout=settings.PROVIDER_TIMEOUT_SECONDS,
    )


AiClientFactory = Callable[[Optional[str]], AiClient]
