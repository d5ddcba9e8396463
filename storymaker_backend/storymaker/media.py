import base64, binascii, io, time, logging
from typing import Optional
from PIL import Image, UnidentifiedImageError
from .errors import ProviderError

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_BASE = "https://picsum.photos/1024/768"

# Short silent MP3 used when narration for a scene could not be generated
SILENT_AUDIO = "data:audio/mpeg;base64,SUQzBAAAAAAAI1RTU0UAAAAPAAADTGF2ZjU4Ljc2LjEwMAAAAAAAAAAAAAAA//tQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAASW5mbwAAAA8AAAACAAABIADAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA//////////////////////////////////////////////////////////////////8AAAAATGF2YzU4LjEzAAAAAAAAAAAAAAAAJAQKAAAAAAAAASABTxItAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"


def to_data_url(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def image_data_url(data: bytes) -> str:
    """Inline image bytes, labelled with the format Pillow detects."""
    if not data:
        raise ProviderError("missing_image", "Image download returned no data")
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise ProviderError("malformed_image", f"Downloaded bytes are not an image: {e}")
    mime = Image.MIME.get(fmt or "", "image/png")
    return to_data_url(data, mime)


def placeholder_image_url(index: int, now_ms: Optional[int] = None) -> str:
    # Seeded by time and index so repeated placeholders differ visually
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{PLACEHOLDER_IMAGE_BASE}?random={now_ms}-{index}"


def artifact_size(ref: Optional[str]) -> int:
    """Decoded byte size of an inline data URL; remote locators count as 0."""
    if not ref or not ref.startswith("data:"):
        return 0
    _, _, encoded = ref.partition(",")
    try:
        return len(base64.b64decode(encoded, validate=False))
    except (binascii.Error, ValueError):
        logger.warning("Could not decode inline artifact for size accounting")
        return 0
