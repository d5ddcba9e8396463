import logging
from typing import Any, Mapping, Optional

import httpx

from .errors import ProviderError
from .models import GenerationKind
from .prompts import SYSTEM_PROMPT
from .providers import Artifact, check_response, json_body, translate_transport_errors

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class OpenAITextProvider:
    kind = GenerationKind.TEXT
    name = "openai"
    options = frozenset({"model", "temperature"})

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client=None):
        self._api_key = api_key
        self._model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            if not self._api_key:
                raise ProviderError("missing_credentials", "OPENAI_API_KEY is not set; please configure your .env")
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        import openai

        model = options.get("model") or self._model
        logger.info(f"Calling OpenAI ({model}) to generate story")
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": payload},
        ]
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=options.get("temperature", 0.8),
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            raise ProviderError("timeout", f"OpenAI request timed out: {e}")
        except openai.APIStatusError as e:
            raise ProviderError(f"http_{e.status_code}", f"OpenAI error {e.status_code}: {e.message}")
        except openai.APIError as e:
            raise ProviderError("api_error", f"OpenAI API call failed: {e}")

        if not resp.choices:
            raise ProviderError("malformed_response", "OpenAI returned no choices")
        message = resp.choices[0].message
        refusal = getattr(message, "refusal", None)
        if refusal:
            logger.warning(f"OpenAI refused the story prompt: {refusal}")
            return Artifact(ref=None, rejected=refusal, meta={"model": model})
        if not message.content:
            raise ProviderError("missing_content", "OpenAI response has no message content")
        logger.info("Successfully received response from OpenAI")
        return Artifact(ref=message.content, meta={"model": model})


class GeminiTextProvider:
    kind = GenerationKind.TEXT
    name = "gemini"
    options = frozenset({"model", "temperature"})

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash",
                 timeout: float = 60, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        if not self._api_key:
            raise ProviderError("missing_credentials", "GEMINI_API_KEY is not set; please configure your .env")
        model = options.get("model") or self._model
        body = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": [{"text": payload}]}],
            "generationConfig": {"temperature": options.get("temperature", 0.8)},
        }
        logger.info(f"Calling Gemini ({model}) to generate story")
        with translate_transport_errors("Gemini"):
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.post(
                    f"{GEMINI_API_URL}/{model}:generateContent",
                    headers={"x-goog-api-key": self._api_key, "Content-Type": "application/json"},
                    json=body,
                )
        check_response(r, "Gemini")
        data = json_body(r, "Gemini")

        feedback = data.get("promptFeedback") or {}
        if not isinstance(feedback, dict):
            raise ProviderError("malformed_response", "Gemini promptFeedback is not an object")
        block_reason = feedback.get("blockReason")
        if block_reason:
            return Artifact(ref=None, rejected=f"Prompt blocked: {block_reason}", meta={"model": model})
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise ProviderError("malformed_response", "Gemini returned no candidates")
        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise ProviderError("malformed_response", "Gemini candidate is not an object")
        if candidate.get("finishReason") == "SAFETY":
            return Artifact(ref=None, rejected="Response blocked for safety", meta={"model": model})
        content = candidate.get("content") or {}
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        text = "".join(p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str))
        if not text:
            raise ProviderError("missing_content", "Gemini candidate has no text")
        logger.info("Successfully received response from Gemini")
        return Artifact(ref=text, meta={"model": model})
