"""
Static default tables for provider selection.

Built once at import and exposed as read-only mappings, so a lookup can never
mutate process-wide defaults.
"""
from types import MappingProxyType
from typing import Any, Mapping, Optional

_BASE_IMAGE_PARAMS = {"width": 1024, "height": 768, "num_outputs": 1}

IMAGE_MODELS: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "flux-schnell": MappingProxyType({
        "model": "black-forest-labs/flux-schnell",
        "params": MappingProxyType({**_BASE_IMAGE_PARAMS, "disable_safety_checker": False}),
    }),
    "flux-dev": MappingProxyType({
        "model": "black-forest-labs/flux-dev",
        "params": MappingProxyType({**_BASE_IMAGE_PARAMS, "guidance_scale": 3.5, "num_inference_steps": 28}),
    }),
    "sdxl": MappingProxyType({
        "model": "stability-ai/sdxl:39ed52f2a78e934b3ba6e2a89f5b1c712de7dfea535525255b1aa35c5565e08b",
        "params": MappingProxyType({
            **_BASE_IMAGE_PARAMS,
            "scheduler": "DPMSolverMultistep",
            "num_inference_steps": 25,
            "guidance_scale": 7.5,
        }),
    }),
})
DEFAULT_IMAGE_MODEL = "flux-schnell"

# ElevenLabs premade voices
RACHEL = "EXAVITQu4vr4xnSDxMaL"
VOICES_BY_LANGUAGE: Mapping[str, str] = MappingProxyType({
    "en-us": RACHEL,
    "en": RACHEL,
    "english": RACHEL,
    # Multilingual model voices read Spanish text natively
    "es-es": "pNInz6obpgDQGcFmaJgB",
    "es": "pNInz6obpgDQGcFmaJgB",
    "spanish": "pNInz6obpgDQGcFmaJgB",
})
DEFAULT_VOICE = RACHEL

SPEECH_MODELS_BY_LANGUAGE: Mapping[str, str] = MappingProxyType({
    "en-us": "eleven_monolingual_v1",
    "en": "eleven_monolingual_v1",
    "english": "eleven_monolingual_v1",
})
DEFAULT_SPEECH_MODEL = "eleven_multilingual_v2"

OUTPUT_FORMATS: Mapping[str, str] = MappingProxyType({
    "mp3_44100_128": "audio/mpeg",
    "mp3_22050_32": "audio/mpeg",
    "mp3_44100_64": "audio/mpeg",
})
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"

STORY_LANGUAGES: Mapping[str, str] = MappingProxyType({
    "english": "English",
    "en": "English",
    "en-us": "English",
    "spanish": "Spanish",
    "es": "Spanish",
    "es-es": "Spanish",
})
DEFAULT_STORY_LANGUAGE = "English"


def _key(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def image_model_config(name: Optional[str]) -> Mapping[str, Any]:
    return IMAGE_MODELS.get(_key(name)) or IMAGE_MODELS[DEFAULT_IMAGE_MODEL]


def image_model_name(name: Optional[str]) -> str:
    return _key(name) if _key(name) in IMAGE_MODELS else DEFAULT_IMAGE_MODEL


def voice_for(language: Optional[str]) -> str:
    return VOICES_BY_LANGUAGE.get(_key(language), DEFAULT_VOICE)


def speech_model_for(language: Optional[str]) -> str:
    return SPEECH_MODELS_BY_LANGUAGE.get(_key(language), DEFAULT_SPEECH_MODEL)


def output_mime(output_format: Optional[str]) -> str:
    return OUTPUT_FORMATS.get(_key(output_format), "audio/mpeg")


def story_language(language: Optional[str]) -> str:
    return STORY_LANGUAGES.get(_key(language), DEFAULT_STORY_LANGUAGE)
