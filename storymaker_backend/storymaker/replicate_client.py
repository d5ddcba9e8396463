import time, asyncio, logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

import httpx

from . import catalog
from .errors import ProviderError
from .media import image_data_url
from .models import GenerationKind
from .prompts import enhance_image_prompt
from .providers import Artifact, check_response, json_body, translate_transport_errors

logger = logging.getLogger(__name__)

REPLICATE_API_URL = "https://api.replicate.com/v1"
TERMINAL_STATUSES = ("succeeded", "failed", "canceled")
_SAFETY_MARKERS = ("nsfw", "safety", "content policy", "flagged")


def _parse_selector(selector: str) -> Tuple[str, Dict[str, str]]:
    # "owner/name:version" pins a version; "owner/name" runs the model's latest.
    owner_name, _, version = selector.partition(":")
    if version:
        return "version", {"version": version}
    owner, name = owner_name.split("/", 1)
    return "model", {"owner": owner, "name": name}


def _is_safety_rejection(error: Any) -> bool:
    text = str(error or "").lower()
    return any(marker in text for marker in _SAFETY_MARKERS)


def _first_output_url(output: Any) -> Optional[str]:
    if isinstance(output, list) and output:
        output = output[0]
    if isinstance(output, str) and output:
        return output
    return None


class ReplicateImageProvider:
    kind = GenerationKind.IMAGE
    name = "replicate"
    options = frozenset({"model"})

    def __init__(self, api_token: str, poll_interval_s: float = 1.5, poll_timeout_s: float = 120,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._api_token = api_token
        self._poll_interval_s = poll_interval_s
        self._poll_timeout_s = poll_timeout_s
        self._transport = transport
        self._sleep = sleep

    def _headers(self) -> Dict[str, str]:
        if not self._api_token:
            raise ProviderError("missing_credentials", "REPLICATE_API_TOKEN is not set; please configure your .env")
        return {"Authorization": f"Bearer {self._api_token}", "Content-Type": "application/json"}

    async def generate(self, payload: str, options: Mapping[str, Any]) -> Artifact:
        model_name = catalog.image_model_name(options.get("model"))
        config = catalog.image_model_config(model_name)
        enhanced = enhance_image_prompt(payload)
        meta = {"model": config["model"], "enhancedPrompt": enhanced}
        logger.info(f"Starting Replicate image generation with {config['model']}: {enhanced[:100]}...")

        request_body = {"input": {"prompt": enhanced, **config["params"]}}
        mode, data = _parse_selector(config["model"])
        if mode == "version":
            request_body["version"] = data["version"]
            url = f"{REPLICATE_API_URL}/predictions"
        else:
            url = f"{REPLICATE_API_URL}/models/{data['owner']}/{data['name']}/predictions"

        headers = self._headers()
        with translate_transport_errors("Replicate"):
            async with httpx.AsyncClient(timeout=90, transport=self._transport) as client:
                r = await client.post(url, headers={**headers, "Prefer": "wait"}, json=request_body)
                check_response(r, "Replicate")
                pred = await self._wait_for(client, json_body(r, "Replicate"), headers)

                if pred.get("status") != "succeeded":
                    error_detail = pred.get("error")
                    if _is_safety_rejection(error_detail):
                        logger.warning(f"Replicate rejected prompt on content grounds: {error_detail}")
                        return Artifact(ref=None, rejected=str(error_detail), meta=meta)
                    raise ProviderError("prediction_failed", f"Replicate failed: {pred.get('status')}. error={error_detail}")

                image_url = _first_output_url(pred.get("output"))
                if not image_url:
                    raise ProviderError("missing_output", "Replicate succeeded but no output URL")
                meta["originalUrl"] = image_url
                return await self._inline(client, image_url, meta)

    async def _wait_for(self, client: httpx.AsyncClient, pred: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        pred_id = pred.get("id")
        if not pred_id:
            raise ProviderError("malformed_response", "Replicate prediction has no id")
        start = time.time()
        while pred.get("status") not in TERMINAL_STATUSES:
            if time.time() - start > self._poll_timeout_s:
                raise ProviderError("timeout", f"Replicate polling timeout for prediction {pred_id}")
            await self._sleep(self._poll_interval_s)
            s = await client.get(f"{REPLICATE_API_URL}/predictions/{pred_id}", headers=headers)
            check_response(s, "Replicate")
            pred = json_body(s, "Replicate")
            logger.info(f"Replicate prediction {pred_id} status: {pred.get('status')}")
        return pred

    async def _inline(self, client: httpx.AsyncClient, image_url: str, meta: Dict[str, Any]) -> Artifact:
        # Prefer inline data so the caller doesn't depend on Replicate's expiring URLs
        try:
            img = await client.get(image_url)
            img.raise_for_status()
            return Artifact(ref=image_data_url(img.content), meta=meta)
        except (httpx.HTTPError, ProviderError) as e:
            logger.warning(f"Could not inline image, using original URL: {e}")
            return Artifact(ref=image_url, meta={**meta, "note": "Using original URL (not inlined)"})
