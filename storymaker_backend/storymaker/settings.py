import os
from dotenv import load_dotenv
import logging

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load .env file if it exists (for local development)
env_path = os.path.join(os.path.dirname(__file__), "..", ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)
    logger.info("Loaded .env file for local development")
else:
    logger.info("No .env file found, using environment variables")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
REPLICATE_API_TOKEN = os.getenv("REPLICATE_API_TOKEN", "")
ELEVENLABS_API_KEY = os.getenv("ELEVENLABS_API_KEY", "")

# "openai" or "gemini"
TEXT_PROVIDER = os.getenv("TEXT_PROVIDER", "openai").strip().lower()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# Pauses between provider calls within a stage, to stay under rate limits
IMAGE_PACING_MS = int(os.getenv("IMAGE_PACING_MS", "2000"))
AUDIO_PACING_MS = int(os.getenv("AUDIO_PACING_MS", "1500"))
ITEM_TIMEOUT_S = float(os.getenv("ITEM_TIMEOUT_S", "60"))

REPLICATE_POLL_INTERVAL_MS = int(os.getenv("REPLICATE_POLL_INTERVAL_MS", "1500"))
REPLICATE_POLL_TIMEOUT_S = int(os.getenv("REPLICATE_POLL_TIMEOUT_S", "120"))

SCENE_COUNT = int(os.getenv("SCENE_COUNT", "5"))

# 0 disables slicing; serverless deployments with a short execution ceiling
# should set this so each call stays under the limit.
IMAGE_BATCH_SIZE = int(os.getenv("IMAGE_BATCH_SIZE", "0"))

# Comma-separated list of allowed origins for CORS (e.g., "https://app.vercel.app,https://www.example.com").
_allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "").strip()
if _allowed_origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _allowed_origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = ["*"]

def _text_key_name() -> str:
    return "GEMINI_API_KEY" if TEXT_PROVIDER == "gemini" else "OPENAI_API_KEY"

def has_all_keys() -> bool:
    text_key = GEMINI_API_KEY if TEXT_PROVIDER == "gemini" else OPENAI_API_KEY
    keys_present = all([text_key, REPLICATE_API_TOKEN, ELEVENLABS_API_KEY])
    if not keys_present:
        missing = []
        if not text_key: missing.append(_text_key_name())
        if not REPLICATE_API_TOKEN: missing.append("REPLICATE_API_TOKEN")
        if not ELEVENLABS_API_KEY: missing.append("ELEVENLABS_API_KEY")
        logger.warning(f"Missing API keys: {', '.join(missing)}")
    return keys_present
