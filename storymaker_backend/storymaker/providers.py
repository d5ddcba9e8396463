"""
Provider capability interface and the registry that dispatches requests to it.

Each capability (text, image, speech) has one active implementation chosen
from settings. Adapters make exactly one logical generation call per
``generate`` and report failures as ``ProviderError``; content-safety
refusals come back as an ``Artifact`` with ``rejected`` set instead.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional, Protocol, runtime_checkable

import httpx

from .errors import ProviderError
from .models import GenerationKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    ref: Optional[str]
    meta: Dict[str, Any] = field(default_factory=dict)
    rejected: Optional[str] = None


@runtime_checkable
class Provider(Protocol):
    kind: GenerationKind
    name: str
    options: frozenset

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        ...


@contextmanager
def translate_transport_errors(provider: str) -> Iterator[None]:
    """Turn httpx transport failures into ProviderError."""
    try:
        yield
    except httpx.TimeoutException as e:
        raise ProviderError("timeout", f"{provider} request timed out: {e}")
    except httpx.HTTPError as e:
        raise ProviderError("network", f"{provider} request failed: {e}")


def check_response(resp: httpx.Response, provider: str) -> None:
    if resp.status_code >= 400:
        body = resp.text[:500]
        logger.error(f"{provider} returned {resp.status_code}: {body}")
        raise ProviderError(f"http_{resp.status_code}", f"{provider} error {resp.status_code}: {body}")


def json_body(resp: httpx.Response, provider: str) -> Dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        raise ProviderError("malformed_response", f"{provider} returned a non-JSON body")
    if not isinstance(data, dict):
        raise ProviderError("malformed_response", f"{provider} returned unexpected JSON: {type(data).__name__}")
    return data


class ProviderRegistry:
    def __init__(self, text: Provider, image: Provider, speech: Provider):
        self._providers = {
            GenerationKind.TEXT: text,
            GenerationKind.IMAGE: image,
            GenerationKind.SPEECH: speech,
        }

    def get(self, kind: GenerationKind) -> Provider:
        return self._providers[kind]

    async def generate(self, kind: GenerationKind, payload: str, options: Optional[Mapping[str, Any]] = None) -> Artifact:
        provider = self.get(kind)
        if not isinstance(payload, str) or not payload.strip():
            raise ProviderError("empty_payload", f"{provider.name}: payload must be a non-empty string")
        accepted = {k: v for k, v in (options or {}).items() if k in provider.options and v is not None}
        ignored = set(options or {}) - set(accepted)
        if ignored:
            logger.debug(f"{provider.name}: ignoring options {sorted(ignored)}")
        return await provider.generate(payload, accepted)


def build_providers() -> ProviderRegistry:
    from . import settings
    from .llm import GeminiTextProvider, OpenAITextProvider
    from .replicate_client import ReplicateImageProvider
    from .elevenlabs_client import ElevenLabsSpeechProvider

    if settings.TEXT_PROVIDER == "gemini":
        text = GeminiTextProvider(api_key=settings.GEMINI_API_KEY, model=settings.GEMINI_MODEL)
    else:
        if settings.TEXT_PROVIDER != "openai":
            logger.warning(f"Unknown TEXT_PROVIDER '{settings.TEXT_PROVIDER}', using openai")
        text = OpenAITextProvider(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    image = ReplicateImageProvider(
        api_token=settings.REPLICATE_API_TOKEN,
        poll_interval_s=settings.REPLICATE_POLL_INTERVAL_MS / 1000.0,
        poll_timeout_s=settings.REPLICATE_POLL_TIMEOUT_S,
    )
    speech = ElevenLabsSpeechProvider(api_key=settings.ELEVENLABS_API_KEY)
    logger.info(f"Providers: text={text.name}, image={image.name}, speech={speech.name}")
    return ProviderRegistry(text=text, image=image, speech=speech)
