STORY_SCHEMA = r"""{
  "title": "<main title of the story>",
  "scenes": [
    {
      "id": 1,
      "title": "<scene title>",
      "text": "<scene narration, at most 150 words>",
      "imagePrompt": "<detailed visual description in English for image generation, at most 100 words, very specific>",
      "audioText": "<text for the audio narration, more dramatic and expressive>"
    }
  ]
}"""


SYSTEM_PROMPT = """You are an expert fiction writer who turns short ideas into illustrated, narrated stories.
Output ONLY valid JSON matching the provided schema."""


USER_PROMPT_TEMPLATE = """You are an expert {genre} writer. Create a story based on: "{description}"

IMPORTANT: Respond ONLY with valid JSON in exactly this format:
{schema}

Generate exactly {scene_count} scenes that form a complete story with:
- Introduction
- Development of the conflict
- Climax
- Resolution
- Epilogue

Write "title", "text" and "audioText" in {language}.
Image descriptions must be very specific, visual and always in English.
The audio text must be more dramatic and expressive, for narration."""


IMAGE_STYLE_SUFFIX = (
    "cinematic composition, dramatic lighting, high quality, detailed, "
    "professional photography, 16:9 aspect ratio, vivid colors, sharp focus"
)


def build_story_prompt(genre: str, description: str, language: str, scene_count: int) -> str:
    return USER_PROMPT_TEMPLATE.format(
        genre=genre,
        description=description,
        language=language,
        scene_count=scene_count,
        schema=STORY_SCHEMA,
    )


def enhance_image_prompt(prompt: str) -> str:
    return f"{prompt.strip()}, {IMAGE_STYLE_SUFFIX}"
