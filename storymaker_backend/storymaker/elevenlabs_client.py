import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from . import catalog
from .errors import ProviderError
from .media import to_data_url
from .models import GenerationKind
from .providers import Artifact, check_response, translate_transport_errors

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"


class ElevenLabsSpeechProvider:
    kind = GenerationKind.SPEECH
    name = "elevenlabs"
    options = frozenset({"language", "voice", "model", "speed", "output_format", "stability", "similarity_boost"})

    def __init__(self, api_key: str, timeout: float = 60, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise ProviderError("missing_credentials", "ELEVENLABS_API_KEY is not set; please configure your .env")
        return {
            "xi-api-key": self._api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        language = options.get("language")
        voice_id = options.get("voice") or catalog.voice_for(language)
        model_id = options.get("model") or catalog.speech_model_for(language)
        output_format = options.get("output_format") or catalog.DEFAULT_OUTPUT_FORMAT

        voice_settings = {
            "stability": options.get("stability", 0.5),
            "similarity_boost": options.get("similarity_boost", 0.8),
            "style": 0.5,
            "use_speaker_boost": True,
        }
        if options.get("speed") is not None:
            voice_settings["speed"] = options["speed"]
        body = {"text": payload, "model_id": model_id, "voice_settings": voice_settings}

        logger.info(f"Requesting ElevenLabs audio (voice={voice_id}, model={model_id}) for: {payload[:100]}")
        headers = self._headers()
        with translate_transport_errors("ElevenLabs"):
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.post(
                    f"{ELEVENLABS_API_URL}/{voice_id}",
                    params={"output_format": output_format},
                    headers=headers,
                    json=body,
                )
        check_response(r, "ElevenLabs")

        content_type = r.headers.get("content-type", "")
        if "json" in content_type.lower() or "text" in content_type.lower():
            raise ProviderError("malformed_response", f"ElevenLabs returned {content_type} instead of audio")
        if not r.content:
            raise ProviderError("missing_audio", "ElevenLabs returned an empty audio stream")

        meta = {"voice": voice_id, "model": model_id, "outputFormat": output_format, "bytes": len(r.content)}
        return Artifact(ref=to_data_url(r.content, catalog.output_mime(output_format)), meta=meta)
